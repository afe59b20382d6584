"""Tests for the agent tool surface and its status strings."""

import pytest

from tileforge.engine import TileEngine
from tileforge.palette import FENCE_TILES
from tileforge.tools import TileToolkit


def make_toolkit(width: int = 12, height: int = 10) -> TileToolkit:
    engine = TileEngine(width, height, base=[[0] * width for _ in range(height)], verbose=False)
    return TileToolkit(engine)


def test_every_tool_is_registered():
    toolkit = make_toolkit()

    assert set(toolkit.tool_names) == {
        "add", "box", "ClearBox", "randomDecor", "fence", "partial_fence", "house",
        "name_layer", "select_layer", "rename_layer", "delete_layer", "list_layers",
        "undo", "undo_last",
        "get_tile_at", "find_tile", "get_selection_info", "get_map_info",
        "search_tiles", "get_tile_info",
    }
    schema = toolkit.get("box").json_schema()
    assert "tile_id" in schema["properties"]


def test_unknown_tool_and_invalid_payload():
    toolkit = make_toolkit()

    assert toolkit.invoke("teleport").startswith('Error: Unknown tool "teleport"')

    feedback = toolkit.invoke("add", {"x": 0, "y": "north"})
    assert feedback.startswith("Error: invalid arguments for add.")
    assert "y: " in feedback
    assert "tile_id: Field required [type=missing]" in feedback


def test_placement_tools_need_a_selection():
    toolkit = make_toolkit()

    assert toolkit.invoke("add", {"x": 0, "y": 0, "tile_id": 45}) == (
        "Error: No valid selection. Please select an area first."
    )


def test_add_reports_success_then_block():
    toolkit = make_toolkit()
    toolkit.engine.select(2, 2, 3, 3)

    placed = toolkit.invoke("add", {"x": 1, "y": 1, "tile_id": 45})
    assert placed.startswith("Tile placed successfully!")
    assert "Previous tile: grass" in placed
    assert toolkit.engine.tile_at(3, 3) == 45

    blocked = toolkit.invoke("add", {"x": 1, "y": 1, "tile_id": 0})
    assert blocked.startswith("Tile placement blocked!")
    assert "priority: 4" in blocked
    assert toolkit.engine.tile_at(3, 3) == 45


def test_box_success_partial_and_total_failure_are_distinct():
    toolkit = make_toolkit()
    toolkit.engine.select(0, 0, 5, 5)
    toolkit.invoke("add", {"x": 1, "y": 0, "tile_id": 52})

    partial = toolkit.invoke("box", {"x": 0, "y": 0, "width": 3, "height": 1, "tile_id": 45, "filled": True})
    assert partial.startswith("Box partially placed.")
    assert "Tiles placed: 2/3" in partial
    assert "Tiles blocked: 1" in partial

    failed = toolkit.invoke("box", {"x": 1, "y": 0, "width": 1, "height": 1, "tile_id": 40})
    assert failed.startswith("Box placement failed!")
    assert "All 1 tiles were blocked" in failed

    success = toolkit.invoke("box", {"x": 0, "y": 2, "width": 5, "height": 3, "tile_id": 40})
    assert success.startswith("Box placed successfully!")
    assert "hollow rectangle (outline)" in success
    assert "Tiles placed: 12" in success


def test_box_outside_selection_is_an_error():
    toolkit = make_toolkit()
    toolkit.engine.select(0, 0, 3, 3)

    result = toolkit.invoke("box", {"x": 2, "y": 2, "width": 2, "height": 2, "tile_id": 40})

    assert result.startswith("Error: Box from (2, 2) with size 2x2 exceeds selection bounds (3x3).")


def test_clear_box_removes_tiles():
    toolkit = make_toolkit()
    toolkit.engine.select(0, 0, 4, 4)
    toolkit.invoke("box", {"x": 0, "y": 0, "width": 4, "height": 4, "tile_id": 52, "filled": True})

    result = toolkit.invoke("ClearBox", {"x": 0, "y": 0, "width": 2, "height": 2})

    assert result.startswith("Area cleared successfully!")
    assert "Total tiles cleared: 4" in result
    assert toolkit.engine.tile_at(0, 0) == 0
    assert toolkit.engine.tile_at(3, 3) == 52


def test_fence_and_decor_tools():
    toolkit = make_toolkit()
    toolkit.engine.select(0, 0, 8, 8)

    fence = toolkit.invoke("fence", {"width": 6, "height": 6, "seed": 2})
    assert fence.startswith("Fence placed successfully!")
    assert "Size: 6x6 tiles" in fence
    assert toolkit.engine.tile_at(1, 1) == 44

    fence_cells = [
        (x, y) for y in range(8) for x in range(8) if toolkit.engine.tile_at(x, y) in FENCE_TILES
    ]
    assert len(fence_cells) == 20

    decor = toolkit.invoke("randomDecor", {"density": 1.0, "seed": 2})
    # Only the wheelbarrow (house tier) can replace fence pieces
    survivors = [cell for cell in fence_cells if toolkit.engine.tile_at(*cell) in FENCE_TILES]
    assert all(toolkit.engine.tile_at(*cell) in FENCE_TILES | {57} for cell in fence_cells)
    assert decor.startswith("Decor partially placed.")
    assert f"Tiles blocked: {len(survivors)} " in decor

    missing = toolkit.invoke("select_layer", {"layer_name": "missing"})
    assert missing == 'Error: Layer "missing" not found. Available layers: none'


def test_layer_tools_round_trip():
    toolkit = make_toolkit()
    toolkit.engine.select(0, 0, 6, 6)

    created = toolkit.invoke("name_layer", {"name": "farm"})
    assert created.startswith("Layer created successfully!")
    assert "Size: 6x6 tiles" in created

    duplicate = toolkit.invoke("name_layer", {"name": "farm"})
    assert duplicate.startswith("Error:") and "already exists" in duplicate

    renamed = toolkit.invoke("rename_layer", {"old_name": "farm", "new_name": "ranch"})
    assert 'New name: "ranch"' in renamed

    listing = toolkit.invoke("list_layers")
    assert listing.startswith("Found 1 named layer(s):")
    assert '"ranch"' in listing and "Area: 36 total tiles" in listing

    toolkit.engine.clear_selection()
    selected = toolkit.invoke("select_layer", {"layer_name": "ranch"})
    assert "Position: global (0, 0)" in selected
    assert toolkit.engine.selection.is_active

    deleted = toolkit.invoke("delete_layer", {"layer_name": "ranch"})
    assert deleted.startswith("Layer deleted!")
    assert "remain on the map" in deleted
    assert toolkit.invoke("list_layers").startswith("No named layers exist.")


def test_undo_tools():
    toolkit = make_toolkit()

    assert toolkit.invoke("undo") == "Error: Nothing to undo. No previous state available."

    toolkit.engine.select(0, 0, 4, 4)
    with toolkit.agent_turn():
        assert toolkit.engine.selection.locked
        toolkit.invoke("add", {"x": 0, "y": 0, "tile_id": 45})
        toolkit.invoke("add", {"x": 1, "y": 0, "tile_id": 45})
    assert not toolkit.engine.selection.locked

    assert toolkit.invoke("undo").startswith("Undo successful!")
    assert toolkit.engine.tile_at(0, 0) == 0
    assert toolkit.engine.tile_at(1, 0) == 0

    toolkit.invoke("add", {"x": 2, "y": 2, "tile_id": 40})
    assert toolkit.invoke("undo_last").startswith("Undo successful!")
    assert toolkit.engine.tile_at(2, 2) == 0


def test_tile_queries():
    toolkit = make_toolkit()
    toolkit.engine.select(3, 3, 4, 4)
    toolkit.invoke("add", {"x": 1, "y": 2, "tile_id": 45})

    local = toolkit.invoke("get_tile_at", {"x": 1, "y": 2, "coordinate_type": "local"})
    assert "Global coordinates: (4, 5)" in local
    assert "Tile ID: 45" in local

    assert toolkit.invoke("get_tile_at", {"x": 40, "y": 0}).startswith("Error: Coordinates (40, 0)")

    found = toolkit.invoke("find_tile", {"tile_id": 45})
    assert "1. Global (4, 5) | Local (1, 2)" in found
    assert toolkit.invoke("find_tile", {"tile_id": 52}).startswith("No tiles found!")


def test_selection_and_map_info():
    toolkit = make_toolkit()
    assert toolkit.invoke("get_selection_info").startswith("No active selection.")

    toolkit.engine.select(0, 0, 2, 2)
    toolkit.invoke("name_layer", {"name": "corner"})
    info = toolkit.invoke("get_selection_info")
    assert "Size: 2x2 tiles" in info
    assert "grass (ID: 0): 4 tiles" in info

    map_info = toolkit.invoke("get_map_info")
    assert "Width: 12 tiles" in map_info
    assert "  - corner" in map_info


def test_tile_dictionary_tools():
    toolkit = make_toolkit()

    fences = toolkit.invoke("search_tiles", {"search_term": "FENCE"})
    assert "ID 44:" in fences

    trees = toolkit.invoke("search_tiles", {"search_term": "tree top"})
    assert "ID 4: green tree top [NOT PLACEABLE]" in trees

    assert "Placeable: NO (part of multi-tile structure)" in toolkit.invoke("get_tile_info", {"tile_id": 4})
    assert "Placeable: Yes" in toolkit.invoke("get_tile_info", {"tile_id": 45})
    assert "not found in tile dictionary" in toolkit.invoke("get_tile_info", {"tile_id": 9999})
    assert toolkit.invoke("search_tiles", {"search_term": "dragon"}).startswith("No tiles found")


@pytest.mark.parametrize("payload", [{"tile_id": -3}, {}])
def test_tile_info_validation(payload):
    toolkit = make_toolkit()
    assert toolkit.invoke("get_tile_info", payload).startswith("Error: invalid arguments for get_tile_info.")


def test_toolkit_reads_configured_tile_dictionary(monkeypatch, tmp_path):
    from tileforge.config import Config

    path = tmp_path / "tiles.json"
    path.write_text('{"45": "picket fence"}', "utf-8")
    monkeypatch.setattr(Config, "TILE_DICTIONARY_PATH", str(path))

    toolkit = make_toolkit()

    assert toolkit.tile_names == {45: "picket fence"}
    assert "ID 45: picket fence" in toolkit.invoke("search_tiles", {"search_term": "picket"})


def test_house_tool_places_then_runs_out_of_room():
    toolkit = make_toolkit()
    toolkit.engine.select(0, 0, 6, 6)

    first = toolkit.invoke(
        "house", {"style": "grey", "roof": "red", "x": 1, "y": 1, "window_count": 1, "seed": 4}
    )
    assert first.startswith("House placed successfully!")
    assert "Style: grey walls with red roof" in first
    assert "Tiles placed: 16" in first
    assert toolkit.engine.tile_at(1, 3) == 76

    crowded = toolkit.invoke("house", {"seed": 4})
    assert crowded.startswith("Error: Cannot place a 4x4 house - no valid space available!")

    toolkit.engine.select(0, 0, 12, 6)
    moved = toolkit.invoke("house", {"x": 1, "y": 1, "seed": 4})
    assert moved.startswith("House placed successfully!")
    assert "Note: Position adjusted from (1, 1)" in moved
    assert toolkit.engine.tile_at(1, 3) == 76


def test_partial_fence_tool_reports_gate_and_open_sides():
    toolkit = make_toolkit()
    toolkit.engine.select(0, 0, 8, 8)

    ring = toolkit.invoke("partial_fence", {"edges": "top,bottom,left,right"})

    assert ring.startswith("Partial fence placed successfully!")
    assert "Gate: placed on top edge at x=4" in ring
    assert "Open sides: none" in ring
    assert "Tiles placed: 20" in ring
    assert toolkit.engine.tile_at(4, 1) == 69


def test_partial_fence_gate_blocked_by_a_house_piece():
    toolkit = make_toolkit()
    toolkit.engine.select(0, 0, 8, 8)
    toolkit.invoke("add", {"x": 4, "y": 1, "tile_id": 52})

    result = toolkit.invoke("partial_fence", {"edges": ["top"], "seed": 0})

    assert result.startswith("Partial fence partially placed.")
    assert "Tiles blocked: 1 " in result
    assert "Gate:" not in result
    assert "Open sides: bottom, left, right" in result
    assert toolkit.engine.tile_at(4, 1) == 52

    assert toolkit.invoke("partial_fence", {"edges": "top,moat"}).startswith(
        "Error: invalid arguments for partial_fence."
    )


def test_house_tile_names():
    toolkit = make_toolkit()

    assert "Name: red roof top-left" in toolkit.invoke("get_tile_info", {"tile_id": 52})
    roofs = toolkit.invoke("search_tiles", {"search_term": "chimney"})
    assert "ID 51: grey roof chimney" in roofs and "ID 55: red roof chimney" in roofs
