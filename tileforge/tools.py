"""
Conversational-agent tool surface.

``TileToolkit`` exposes the engine as named tools. Each tool takes a small
JSON-like payload, validates it against a pydantic schema, runs one engine
operation, and returns a short status string. Coordinates in placement tools
are local to the current selection.

Placement tools report three outcomes distinctly:
- success: every attempted cell was written
- partial success: some cells were blocked by higher-priority tiles
- failure: every attempted cell was blocked
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Literal, Optional, Type

from pydantic import BaseModel, Field, ValidationError

from .config import Config
from .engine import TileEngine
from .generators import (
    BoxArgs,
    ClearArgs,
    DecorArgs,
    FenceArgs,
    GeneratorBoundsError,
    GeneratorInput,
    HouseArgs,
    PartialFenceArgs,
    TileArgs,
    generate,
)
from .integrity import MULTI_CELL_TILE_IDS
from .logging_utils import log_error, log_info
from .palette import DEFAULT_TILE_NAMES, EMPTY_TILE, FENCE_GATE, load_tile_dictionary, tile_name
from .priority import priority_of
from .schemas import LayerOperationResult, PlacementBuffer, PlacementOptions, PlacementResult
from .validation import validation_feedback

MAX_LISTED_LOCATIONS = 20
MAX_LISTED_MATCHES = 25


# ============================================================================
# Tool argument schemas (generator tools use the records in generators.py)
# ============================================================================


class NoArgs(BaseModel):
    pass


class NameLayerArgs(BaseModel):
    name: str = Field(..., min_length=1, description="The name to assign to the current selection")


class LayerNameArgs(BaseModel):
    layer_name: str = Field(..., description="Name of an existing layer")


class RenameLayerArgs(BaseModel):
    old_name: str = Field(..., description="Current name of the layer")
    new_name: str = Field(..., min_length=1, description="New name for the layer")


class DeleteLayerArgs(BaseModel):
    layer_name: str = Field(..., description="Name of the layer to delete")
    cascade: bool = Field(True, description="Also delete every sub-layer")
    discard_tiles: bool = Field(False, description="Remove the layer's tiles from the map too")


class TileAtArgs(BaseModel):
    x: int
    y: int
    coordinate_type: Literal["global", "local"] = Field(
        "global", description="Whether coordinates are global (map) or local (selection)"
    )


class FindTileArgs(BaseModel):
    tile_id: int = Field(..., ge=0, description="The tile ID to search for")
    search_area: Literal["selection", "global"] = "selection"


class SearchTilesArgs(BaseModel):
    search_term: str = Field(..., min_length=1, description="The term to search for in tile names")


class TileInfoArgs(BaseModel):
    tile_id: int = Field(..., ge=0, description="The tile ID to get information about")


@dataclass
class ToolSpec:
    """One callable tool: schema, handler, and the description shown to the agent."""

    name: str
    description: str
    args_model: Type[BaseModel]
    handler: Callable[[Any], str]

    def json_schema(self) -> Dict[str, Any]:
        return self.args_model.model_json_schema()


def _format_result(result: LayerOperationResult) -> str:
    return result.message if result.ok else f"Error: {result.message}"


class TileToolkit:
    """Named tools bound to one ``TileEngine``."""

    def __init__(self, engine: TileEngine, tile_names: Optional[Dict[int, str]] = None):
        self.engine = engine
        if tile_names is None and Config.TILE_DICTIONARY_PATH:
            tile_names = load_tile_dictionary(Config.TILE_DICTIONARY_PATH)
        self.tile_names = dict(tile_names) if tile_names is not None else dict(DEFAULT_TILE_NAMES)
        self._tools: Dict[str, ToolSpec] = {}
        self._register_tools()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def _register(self, name: str, description: str, args_model: Type[BaseModel], handler: Callable) -> None:
        self._tools[name] = ToolSpec(name, description, args_model, handler)

    def _register_tools(self) -> None:
        self._register(
            "add", "Places a single tile at local coordinates within the current selection.",
            TileArgs, self._add,
        )
        self._register(
            "box", "Draws a rectangle of tiles, filled or outline only. Use height=1 or width=1 for lines.",
            BoxArgs, self._box,
        )
        self._register(
            "ClearBox", "Clears a rectangular area (local coordinates) by removing all placed tiles.",
            ClearArgs, self._clear_box,
        )
        self._register(
            "randomDecor", "Adds random decorative items with the given per-tile density.",
            DecorArgs, self._random_decor,
        )
        self._register(
            "fence", "Adds a complete fence enclosure with a gate on the top or bottom edge.",
            FenceArgs, self._fence,
        )
        self._register(
            "partial_fence", "Adds a partial, worn fence along the chosen edges, e.g. 'top,left'.",
            PartialFenceArgs, self._partial_fence,
        )
        self._register(
            "house",
            "Adds a house. Several houses can share a selection; each is moved to avoid overlapping "
            "existing houses. Style, roof, size (min 3x3, default 4x4), doors and windows are optional.",
            HouseArgs, self._house,
        )
        self._register(
            "name_layer", "Saves the current selection as a named layer.",
            NameLayerArgs, self._name_layer,
        )
        self._register(
            "select_layer", "Re-selects a named layer, making it the active selection.",
            LayerNameArgs, self._select_layer,
        )
        self._register("rename_layer", "Renames an existing layer.", RenameLayerArgs, self._rename_layer)
        self._register(
            "delete_layer", "Deletes a named layer and (by default) its sub-layers. Tiles stay unless discarded.",
            DeleteLayerArgs, self._delete_layer,
        )
        self._register("list_layers", "Lists all named layers with positions and sizes.", NoArgs, self._list_layers)
        self._register("undo", "Reverts ALL modifications made during the current turn.", NoArgs, self._undo)
        self._register("undo_last", "Reverts only the most recent placement.", NoArgs, self._undo_last)
        self._register("get_tile_at", "Reports the visible tile at a coordinate.", TileAtArgs, self._get_tile_at)
        self._register("find_tile", "Finds all occurrences of a tile ID in the selection.", FindTileArgs, self._find_tile)
        self._register(
            "get_selection_info", "Describes the current selection and the tiles inside it.",
            NoArgs, self._get_selection_info,
        )
        self._register("get_map_info", "Reports map dimensions and named layers.", NoArgs, self._get_map_info)
        self._register("search_tiles", "Searches tile names for a term.", SearchTilesArgs, self._search_tiles)
        self._register(
            "get_tile_info", "Reports a tile's name and whether it can be placed individually.",
            TileInfoArgs, self._get_tile_info,
        )

    @property
    def tool_names(self) -> List[str]:
        return list(self._tools)

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._tools.get(name)

    def invoke(self, name: str, payload: Optional[Dict[str, Any]] = None) -> str:
        """Validate ``payload`` for tool ``name`` and run it; always returns a string."""

        tool = self._tools.get(name)
        if tool is None:
            return f"Error: Unknown tool \"{name}\". Available tools: {', '.join(self._tools)}"
        try:
            args = tool.args_model.model_validate(payload or {})
        except ValidationError as exc:
            feedback = validation_feedback(exc, tool_name=name)
            log_error(f"[Tools] {name} rejected: {'; '.join(feedback.issues)}")
            return feedback.text
        log_info(f"[Tools] {name} {args.model_dump(exclude_none=True)}")
        return tool.handler(args)

    @contextmanager
    def agent_turn(self) -> Iterator["TileToolkit"]:
        """Group tool calls into one undoable turn and lock the selection meanwhile."""

        self.engine.mark_new_turn()
        self.engine.selection.lock()
        try:
            yield self
        finally:
            self.engine.selection.unlock()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _name(self, tile_id: int) -> str:
        return tile_name(tile_id, self.tile_names)

    def _section(self) -> Optional[GeneratorInput]:
        selection = self.engine.selection
        if not selection.is_active:
            return None
        return GeneratorInput(
            width=selection.width,
            height=selection.height,
            grid=self.engine.current_tile_state(),
        )

    def _build(self, args: BaseModel) -> PlacementBuffer | str:
        section = self._section()
        if section is None:
            return "Error: No valid selection. Please select an area first."
        try:
            return generate(section, args)
        except GeneratorBoundsError as exc:
            return f"Error: {exc}"

    def _global(self, x: int, y: int) -> tuple[int, int]:
        start_x, start_y = self.engine.selection.top_left
        return start_x + x, start_y + y

    @staticmethod
    def _placement_report(label: str, result: PlacementResult, details: List[str]) -> str:
        lines = [f"- {line}" for line in details]
        if result.fully_blocked:
            return "\n".join(
                [f"{label} placement failed!"]
                + lines
                + [
                    f"- Reason: All {result.total} tiles were blocked by higher-priority existing tiles.",
                    "- Suggestion: Use the clear tool first or choose a different location.",
                ]
            )
        if result.skipped > 0:
            return "\n".join(
                [f"{label} partially placed."]
                + lines
                + [
                    f"- Tiles placed: {result.placed}/{result.total}",
                    f"- Tiles blocked: {result.skipped} (by higher-priority tiles)",
                ]
            )
        return "\n".join(
            [f"{label} placed successfully!"] + lines + [f"- Tiles placed: {result.placed}"]
        )

    # ------------------------------------------------------------------
    # Placement tools
    # ------------------------------------------------------------------

    def _add(self, args: TileArgs) -> str:
        buffer = self._build(args)
        if isinstance(buffer, str):
            return buffer
        global_x, global_y = self._global(args.x, args.y)
        previous = self.engine.tile_at(global_x, global_y)
        result = self.engine.place(buffer)
        actual = self.engine.tile_at(global_x, global_y)

        if actual == args.tile_id:
            return (
                "Tile placed successfully!\n"
                f"- Position: ({args.x}, {args.y}) in local coordinates\n"
                f"- Tile: {self._name(args.tile_id)} (ID: {args.tile_id})\n"
                f"- Previous tile: {self._name(previous)}"
            )
        reason = (
            "Cannot overwrite higher-priority tiles. Use clear tool first or choose a different location."
            if result.skipped
            else "The tile was removed again because it is part of a multi-tile structure."
        )
        return (
            "Tile placement blocked!\n"
            f"- Position: ({args.x}, {args.y}) in local coordinates\n"
            f"- Attempted tile: {self._name(args.tile_id)} (ID: {args.tile_id}, priority: {int(priority_of(args.tile_id))})\n"
            f"- Existing tile: {self._name(actual)} (ID: {actual}, priority: {int(priority_of(actual))})\n"
            f"- Reason: {reason}"
        )

    def _box(self, args: BoxArgs) -> str:
        buffer = self._build(args)
        if isinstance(buffer, str):
            return buffer
        result = self.engine.place(buffer)
        return self._placement_report(
            "Box",
            result,
            [
                f"Position: ({args.x}, {args.y}) to ({args.x + args.width - 1}, {args.y + args.height - 1}) in local coordinates",
                f"Size: {args.width}x{args.height} tiles",
                f"Type: {'filled rectangle' if args.filled else 'hollow rectangle (outline)'}",
                f"Tile: {self._name(args.tile_id)} (ID: {args.tile_id})",
            ],
        )

    def _clear_box(self, args: ClearArgs) -> str:
        buffer = self._build(args)
        if isinstance(buffer, str):
            return buffer
        result = self.engine.place(buffer, PlacementOptions(accept_explicit_clear=True))
        return (
            "Area cleared successfully!\n"
            f"- Position: ({args.x}, {args.y}) to ({args.x + args.width - 1}, {args.y + args.height - 1}) in local coordinates\n"
            f"- Size: {args.width}x{args.height} tiles\n"
            f"- Total tiles cleared: {result.placed}"
        )

    def _random_decor(self, args: DecorArgs) -> str:
        buffer = self._build(args)
        if isinstance(buffer, str):
            return buffer
        result = self.engine.place(buffer)
        selection = self.engine.selection
        area_w = args.width or selection.width - (args.x or 0)
        area_h = args.height or selection.height - (args.y or 0)
        return self._placement_report(
            "Decor",
            result,
            [
                f"Area: {area_w}x{area_h} tiles starting at local ({args.x or 0}, {args.y or 0})",
                f"Density: {args.density * 100:.1f}%",
                buffer.description,
            ],
        )

    def _fence(self, args: FenceArgs) -> str:
        buffer = self._build(args)
        if isinstance(buffer, str):
            return buffer
        result = self.engine.place(buffer)
        poi = buffer.points_of_interest
        top_left, bottom_right, gate = poi["top_left"], poi["bottom_right"], poi["gate"]
        return self._placement_report(
            "Fence",
            result,
            [
                f"Position: starts at local ({top_left.x}, {top_left.y})",
                f"Size: {bottom_right.x - top_left.x + 1}x{bottom_right.y - top_left.y + 1} tiles (width x height)",
                f"Gate: placed on {'top' if gate.y == top_left.y else 'bottom'} edge at x={gate.x}",
                f"Corners: top-left ({top_left.x}, {top_left.y}), bottom-right ({bottom_right.x}, {bottom_right.y})",
            ],
        )

    def _partial_fence(self, args: PartialFenceArgs) -> str:
        buffer = self._build(args)
        if isinstance(buffer, str):
            return buffer
        result = self.engine.place(buffer)
        details = buffer.details
        top_left = buffer.points_of_interest["top_left"]
        lines = [
            f"Position: starts at local ({top_left.x}, {top_left.y})",
            f"Horizontal length: {details['horizontal_length']} tiles",
            f"Vertical length: {details['vertical_length']} tiles",
        ]
        gate = buffer.points_of_interest.get("gate")
        # The gate only counts if it survived priority arbitration
        if gate is not None and self.engine.tile_at(*self._global(gate.x, gate.y)) == FENCE_GATE:
            lines.append(f"Gate: placed on {details['gate_edge']} edge at x={gate.x}")
        lines.append(f"Open sides: {details['open_sides']}")
        return self._placement_report("Partial fence", result, lines)

    def _house(self, args: HouseArgs) -> str:
        buffer = self._build(args)
        if isinstance(buffer, str):
            return buffer
        result = self.engine.place(buffer)
        details = buffer.details
        points = buffer.points_of_interest
        top_left, bottom_right = points["top_left"], points["bottom_right"]
        doors = [point for name, point in points.items() if name.startswith("door")]
        chimney = points.get("chimney")
        lines = [
            f"Position: ({top_left.x}, {top_left.y}) in local coordinates",
            f"Size: {bottom_right.x - top_left.x + 1}x{bottom_right.y - top_left.y + 1} tiles (width x height)",
            f"Style: {details['style']} walls with {details['roof']} roof",
            f"Windows: {details['windows']}",
            f"Doors: {details['doors']} at " + ", ".join(f"({door.x}, {door.y})" for door in doors),
            f"Chimney: present at x={chimney.x}" if chimney is not None else "Chimney: none",
        ]
        if args.x is not None and args.y is not None and (args.x, args.y) != (top_left.x, top_left.y):
            lines.append(f"Note: Position adjusted from ({args.x}, {args.y}) to avoid overlap")
        return self._placement_report("House", result, lines)

    # ------------------------------------------------------------------
    # Layer tools
    # ------------------------------------------------------------------

    def _name_layer(self, args: NameLayerArgs) -> str:
        result = self.engine.name_selection(args.name)
        if not result.ok:
            return _format_result(result)
        layer = self.engine.store.get_layer(args.name.strip())
        return (
            "Layer created successfully!\n"
            f'- Name: "{layer.name}"\n'
            f"- Size: {layer.bounds.width}x{layer.bounds.height} tiles\n"
            f"- Parent: {self.engine.tree.parent_of(layer.name)}\n"
            "- You can now reference this area by name."
        )

    def _select_layer(self, args: LayerNameArgs) -> str:
        result = self.engine.select_layer(args.layer_name)
        if not result.ok:
            return _format_result(result)
        bounds = self.engine.store.get_layer(args.layer_name).bounds
        return (
            "Layer selected!\n"
            f'- Name: "{args.layer_name}"\n'
            f"- Position: global ({bounds.x}, {bounds.y})\n"
            f"- Size: {bounds.width}x{bounds.height} tiles\n"
            "- This area is now the active selection for tool operations."
        )

    def _rename_layer(self, args: RenameLayerArgs) -> str:
        result = self.engine.rename_layer(args.old_name, args.new_name)
        if not result.ok:
            return _format_result(result)
        return (
            "Layer renamed successfully!\n"
            f'- Old name: "{args.old_name}"\n'
            f'- New name: "{args.new_name.strip()}"'
        )

    def _delete_layer(self, args: DeleteLayerArgs) -> str:
        result = self.engine.delete_layer(
            args.layer_name, cascade=args.cascade, discard_tiles=args.discard_tiles
        )
        if not result.ok:
            return _format_result(result)
        sublayers = [name for name in result.affected if name != args.layer_name]
        lines = ["Layer deleted!", f'- Name: "{args.layer_name}"']
        if sublayers:
            lines.append(f"- Sub-layers also removed: {', '.join(sublayers)}")
        elif not args.cascade:
            lines.append("- Sub-layers (if any) were moved up to the parent layer.")
        if args.discard_tiles:
            lines.append("- The tiles within the layer area were removed.")
        else:
            lines.append("- The tiles within the layer area remain on the map.")
        return "\n".join(lines)

    def _list_layers(self, _args: NoArgs) -> str:
        layers = self.engine.list_layers()
        if not layers:
            return (
                "No named layers exist.\n"
                "To create a layer, first make a selection, then use the name_layer tool."
            )
        lines = [f"Found {len(layers)} named layer(s):", ""]
        for summary in layers:
            bounds = summary.bounds
            lines.extend(
                [
                    f'• "{summary.name}"',
                    f"  - Position: global ({bounds.x}, {bounds.y})",
                    f"  - Size: {bounds.width}x{bounds.height} tiles",
                    f"  - Area: {bounds.area} total tiles",
                    f"  - Parent: {summary.parent}",
                    "",
                ]
            )
        return "\n".join(lines).strip()

    def _undo(self, _args: NoArgs) -> str:
        result = self.engine.undo_turn()
        if not result.ok:
            return _format_result(result)
        return f"Undo successful!\n- {result.message}"

    def _undo_last(self, _args: NoArgs) -> str:
        result = self.engine.undo_last_call()
        if not result.ok:
            return _format_result(result)
        return f"Undo successful!\n- {result.message}"

    # ------------------------------------------------------------------
    # Query tools
    # ------------------------------------------------------------------

    def _get_tile_at(self, args: TileAtArgs) -> str:
        global_x, global_y = args.x, args.y
        if args.coordinate_type == "local":
            global_x, global_y = self._global(args.x, args.y)
        engine = self.engine
        if not engine.store.in_bounds(global_x, global_y):
            return (
                f"Error: Coordinates ({global_x}, {global_y}) are outside map bounds "
                f"(0,0) to ({engine.width - 1}, {engine.height - 1})."
            )
        tile_id = engine.tile_at(global_x, global_y)
        lines = ["Tile at position:", "", f"- Global coordinates: ({global_x}, {global_y})"]
        if args.coordinate_type == "local":
            lines.append(f"- Local coordinates: ({args.x}, {args.y})")
        lines.append(f"- Tile ID: {'none (empty)' if tile_id == EMPTY_TILE else tile_id}")
        lines.append(f"- Tile name: {self._name(tile_id)}")
        return "\n".join(lines)

    def _find_tile(self, args: FindTileArgs) -> str:
        name = self._name(args.tile_id)
        if args.search_area == "global":
            return (
                f"Global tile search for {name} (ID: {args.tile_id}):\n"
                "- To search the entire map, first select the full map area, then search with search_area='selection'.\n"
                "- Alternatively, use get_selection_info to see what's in the current selection."
            )
        selection = self.engine.selection
        if not selection.is_active:
            return "Error: No selection active. Please select an area first or search 'global'."
        locations = self.engine.find_tile_in_selection(args.tile_id)
        start_x, start_y = selection.top_left
        if not locations:
            return (
                "No tiles found!\n"
                f"- Searched for: {name} (ID: {args.tile_id})\n"
                f"- Search area: current selection ({selection.width}x{selection.height} at global {start_x},{start_y})"
            )
        lines = [f"Found {len(locations)} occurrence(s) of {name} (ID: {args.tile_id}) in selection:", ""]
        for index, loc in enumerate(locations[:MAX_LISTED_LOCATIONS], start=1):
            lines.append(
                f"{index}. Global ({loc.global_x}, {loc.global_y}) | Local ({loc.local_x}, {loc.local_y})"
            )
        if len(locations) > MAX_LISTED_LOCATIONS:
            lines.append(f"\n... and {len(locations) - MAX_LISTED_LOCATIONS} more locations.")
        return "\n".join(lines)

    def _get_selection_info(self, _args: NoArgs) -> str:
        rect = self.engine.selection.rect
        if rect is None:
            return (
                "No active selection.\n"
                "- Draw a selection box on the map, or\n"
                "- Use the select_layer tool to select a named layer."
            )
        stats = self.engine.selection_stats()
        lines = [
            "Selection Information:",
            "",
            "Position:",
            f"  - Global start: ({rect.x}, {rect.y})",
            f"  - Global end: ({rect.right}, {rect.bottom})",
            f"  - Size: {rect.width}x{rect.height} tiles",
            f"  - Total tiles: {stats.total_tiles}",
            "",
            "Tile Contents:",
            f"  - Empty spaces: {stats.empty_count}",
            f"  - Placed tiles: {stats.total_tiles - stats.empty_count}",
        ]
        top = stats.most_common(10)
        if top:
            lines.append("")
            lines.append("Top tiles by frequency:")
            lines.extend(f"  - {self._name(tile_id)} (ID: {tile_id}): {count} tiles" for tile_id, count in top)
        return "\n".join(lines)

    def _get_map_info(self, _args: NoArgs) -> str:
        engine = self.engine
        names = [summary.name for summary in engine.list_layers()]
        lines = [
            "Map Information:",
            "",
            "Dimensions:",
            f"  - Width: {engine.width} tiles",
            f"  - Height: {engine.height} tiles",
            f"  - Total tiles: {engine.width * engine.height}",
            f"  - Tile size: {Config.TILE_SIZE}x{Config.TILE_SIZE} pixels",
            "",
            f"Named Layers: {len(names)}",
        ]
        lines.extend(f"  - {name}" for name in names)
        if not names:
            lines.append("  (none)")
        return "\n".join(lines)

    def _search_tiles(self, args: SearchTilesArgs) -> str:
        term = args.search_term.lower()
        matches = sorted(
            (tile_id, name) for tile_id, name in self.tile_names.items() if term in name.lower()
        )
        if not matches:
            return (
                f'No tiles found matching "{args.search_term}".\n'
                "Try a different search term or use get_tile_info with a specific ID."
            )
        lines = [f'Found {len(matches)} tile(s) matching "{args.search_term}":', ""]
        for tile_id, name in matches[:MAX_LISTED_MATCHES]:
            marker = " [NOT PLACEABLE]" if tile_id in MULTI_CELL_TILE_IDS else ""
            lines.append(f"- ID {tile_id}: {name}{marker}")
        if len(matches) > MAX_LISTED_MATCHES:
            lines.append(f"\n... and {len(matches) - MAX_LISTED_MATCHES} more matches.")
        return "\n".join(lines)

    def _get_tile_info(self, args: TileInfoArgs) -> str:
        name = self.tile_names.get(args.tile_id)
        if name is None:
            return (
                f"Tile ID {args.tile_id} not found in tile dictionary.\n"
                "- Use search_tiles to look up valid tile IDs by name."
            )
        multi = args.tile_id in MULTI_CELL_TILE_IDS
        lines = [
            "Tile Information:",
            "",
            f"- ID: {args.tile_id}",
            f"- Name: {name}",
            f"- Priority: {priority_of(args.tile_id).name.lower()}",
            f"- Placeable: {'NO (part of multi-tile structure)' if multi else 'Yes'}",
        ]
        if multi:
            lines.append("")
            lines.append(
                "Note: This tile is part of a larger structure (like a tree) and cannot be placed individually."
            )
        return "\n".join(lines)
