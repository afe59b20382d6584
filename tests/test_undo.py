"""Tests for per-call and per-turn undo."""

from tileforge.engine import TileEngine
from tileforge.schemas import PlacementBuffer, PlacementOptions


def make_engine(width: int = 10, height: int = 8) -> TileEngine:
    return TileEngine(width, height, base=[[0] * width for _ in range(height)], verbose=False)


def tiles(*rows) -> PlacementBuffer:
    return PlacementBuffer(name="test", grid=[list(row) for row in rows])


def test_undo_without_history_reports_nothing_to_undo():
    engine = make_engine()

    turn = engine.undo_turn()
    last = engine.undo_last_call()

    assert not turn.ok and not last.ok
    assert turn.message == "Nothing to undo. No previous state available."
    assert engine.to_json() == [[0] * 10 for _ in range(8)]


def test_turn_undo_reverts_every_call_in_the_turn():
    engine = make_engine()
    engine.select(1, 1, 3, 1)
    engine.place(tiles([40, 40, 40]))
    before_turn = engine.to_json()

    engine.mark_new_turn()
    engine.place(tiles([45, 45, 45]))
    engine.select(5, 5, 2, 1)
    engine.place(tiles([52, 52]))

    result = engine.undo_turn()

    assert result.ok
    assert engine.to_json() == before_turn


def test_turn_undo_is_independent_of_call_count():
    for calls in range(1, 5):
        engine = make_engine()
        engine.mark_new_turn()
        start = engine.to_json()
        for i in range(calls):
            engine.select(i, i, 1, 1)
            engine.place(tiles([45]))
        engine.undo_turn()
        assert engine.to_json() == start


def test_last_call_undo_only_reverts_latest_placement():
    engine = make_engine()
    engine.select(0, 0, 1, 1)
    engine.place(tiles([40]))
    after_first = engine.to_json()
    engine.select(3, 3, 1, 1)
    engine.place(tiles([45]))

    assert engine.undo_last_call().ok
    assert engine.to_json() == after_first
    # The slot is consumed
    assert not engine.undo_last_call().ok


def test_undo_restores_cleared_cells_and_named_layers():
    engine = make_engine()
    engine.select(0, 0, 4, 4)
    engine.name_selection("yard")
    engine.place(tiles([45, 45], [52, 52]))
    before = engine.to_json()

    engine.mark_new_turn()
    engine.place(tiles([-2, -2], [-2, -2]), PlacementOptions(accept_explicit_clear=True))
    assert engine.tile_at(0, 0) == 0

    engine.undo_turn()

    assert engine.to_json() == before
    assert engine.store.get_layer("yard").get(1, 1) == 52


def test_undo_restores_cells_above_lower_priority_overlays():
    engine = make_engine()
    engine.mark_new_turn()
    start = engine.to_json()
    engine.place(tiles([52, 4], [-1, 16]))

    engine.undo_turn()

    assert engine.to_json() == start
    assert engine.store.feature == [[-1] * 10 for _ in range(8)]


def test_new_turn_captures_new_start():
    engine = make_engine()
    engine.mark_new_turn()
    engine.place(tiles([40]))
    engine.undo_turn()

    engine.place(tiles([45]))
    after_second = engine.to_json()
    engine.mark_new_turn()
    engine.place(tiles([52]))
    engine.undo_turn()

    assert engine.to_json() == after_second
