"""
Tile engine: the single owner of one editable map.

Fully decoupled from rendering and from the conversational agent.
All collaborators are created here or injected by the caller; nothing is
global.

Coordinates:
1. LayerStore (tile buffers) and its RegionTree
2. SelectionModel (current rectangle and active-layer clamp)
3. PlacementEngine (priority arbitration and integrity pruning)
4. UndoStore (per-call and per-turn snapshots)
5. Listeners (fire-and-forget layer notifications for the UI)

Every mutating operation returns a result record instead of raising for
expected conditions (duplicate names, unknown regions, cycles, nothing to
undo).
"""

import random
from typing import Callable, Dict, List, Optional, Sequence

from .config import Config
from .layers import (
    CycleError,
    LayerStore,
    RegionError,
    RegionTree,
    ROOT_NAME,
)
from .logging_utils import log_deterministic, log_error, log_success
from .palette import EMPTY_TILE
from .placement import PlacementEngine
from .schemas import (
    LayerEvent,
    LayerEventKind,
    LayerOperationResult,
    LayerSummary,
    MapSnapshot,
    PlacementBuffer,
    PlacementOptions,
    PlacementResult,
    SelectionStats,
    TileLocation,
)
from .selection import SelectionModel
from .undo import UndoStore

LayerListener = Callable[[LayerEvent], None]


class TileEngine:
    """
    Owns the layered grid and every collaborator that edits it.

    Listeners receive LayerEvent notifications in registration order. A
    failing listener is reported and skipped; it never undoes the mutation
    that triggered it.
    """

    def __init__(
        self,
        width: Optional[int] = None,
        height: Optional[int] = None,
        *,
        seed: Optional[int] = None,
        base: Optional[Sequence[Sequence[int]]] = None,
        prune_margin: Optional[int] = None,
        verbose: Optional[bool] = None,
        listeners: Optional[List[LayerListener]] = None,
    ):
        """
        Args:
            width, height: Grid size in tiles (defaults from Config)
            seed: Seed for the random ground fill of the base layer
            base: Explicit base-layer grid (overrides the random fill)
            prune_margin: Margin for integrity pruning around changed cells
            verbose: Per-placement diagnostics (defaults to Config.VERBOSE)
            listeners: Initial layer-notification callbacks
        """
        self.width = width if width is not None else Config.GRID_WIDTH
        self.height = height if height is not None else Config.GRID_HEIGHT
        self.verbose = Config.VERBOSE if verbose is None else verbose

        self.store = LayerStore(
            self.width,
            self.height,
            tree=RegionTree(self.width, self.height),
            rng=random.Random(seed),
            base=base,
        )
        self.selection = SelectionModel(self.width, self.height)
        self.placement = PlacementEngine(
            self.store,
            self.selection,
            prune_margin=Config.PRUNE_MARGIN if prune_margin is None else prune_margin,
            verbose=self.verbose,
        )
        self.undo = UndoStore(self.placement, self.store)
        self._listeners: List[LayerListener] = list(listeners or [])

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    @property
    def tree(self) -> RegionTree:
        return self.store.tree

    def add_listener(self, listener: LayerListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: LayerListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, kind: LayerEventKind, name: str, old_name: Optional[str] = None) -> None:
        event = LayerEvent(kind=kind, name=name, old_name=old_name)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:
                log_error(f"[Listener] {kind.value} notification for '{name}' failed: {exc}")

    # ------------------------------------------------------------------
    # Placement and undo
    # ------------------------------------------------------------------

    def place(
        self,
        buffer: PlacementBuffer,
        options: Optional[PlacementOptions] = None,
    ) -> PlacementResult:
        """Apply a generator buffer at the current selection (snapshotting for undo)."""

        return self.undo.place(buffer, options)

    def mark_new_turn(self) -> None:
        self.undo.mark_new_turn()

    def undo_turn(self) -> LayerOperationResult:
        return self.undo.undo_turn()

    def undo_last_call(self) -> LayerOperationResult:
        return self.undo.undo_last_call()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, x: int, y: int, width: int, height: int) -> bool:
        return self.selection.set_rect(x, y, width, height)

    def clear_selection(self) -> None:
        self.selection.clear()

    def set_active_layer(self, name: Optional[str]) -> LayerOperationResult:
        """Confine dragging and placement preference to one named layer (None clears)."""

        if name is None:
            self.placement.active_layer = None
            self.selection.set_active_layer_bounds(None)
            return LayerOperationResult.success("Active layer cleared.")
        layer = self.store.get_layer(name)
        if layer is None:
            return LayerOperationResult.failure(self._not_found_message(name))
        self.placement.active_layer = name
        self.selection.set_active_layer_bounds(layer.bounds)
        return LayerOperationResult.success(f'Active layer set to "{name}".', [name])

    # ------------------------------------------------------------------
    # Named layers
    # ------------------------------------------------------------------

    def _not_found_message(self, name: str) -> str:
        available = list(self.store.named)
        listing = ", ".join(available) if available else "none"
        return f'Layer "{name}" not found. Available layers: {listing}'

    def name_selection(self, name: str) -> LayerOperationResult:
        """Turn the current selection into a named layer."""

        name = name.strip() if name else ""
        if not name:
            return LayerOperationResult.failure("Layer name cannot be empty.")
        rect = self.selection.rect
        if rect is None:
            return LayerOperationResult.failure("No active selection. Select an area first.")
        if name == ROOT_NAME:
            return LayerOperationResult.failure(f'"{ROOT_NAME}" is reserved for the top of the layer tree.')
        try:
            layer = self.store.create_named_layer(name, rect)
        except RegionError as exc:
            log_error(f"[Layers] {exc}")
            return LayerOperationResult.failure(str(exc))

        b = layer.bounds
        log_success(f'[Layers] Layer "{name}" created at ({b.x},{b.y}) size {b.width}x{b.height}')
        self._notify(LayerEventKind.CREATED, name)
        return LayerOperationResult.success(
            f'Layer "{name}" created ({b.width}x{b.height} tiles).', [name]
        )

    def select_layer(self, name: str) -> LayerOperationResult:
        layer = self.store.get_layer(name)
        if layer is None:
            return LayerOperationResult.failure(self._not_found_message(name))
        b = layer.bounds
        self.selection.set_rect(b.x, b.y, b.width, b.height)
        log_deterministic(f'[Layers] Re-selected "{name}" at ({b.x},{b.y}) size {b.width}x{b.height}')
        self._notify(LayerEventKind.SELECTED, name)
        return LayerOperationResult.success(f'Layer "{name}" selected.', [name])

    def rename_layer(self, old_name: str, new_name: str) -> LayerOperationResult:
        new_name = new_name.strip() if new_name else ""
        if not new_name:
            return LayerOperationResult.failure("New layer name cannot be empty.")
        try:
            self.store.rename_named_layer(old_name, new_name)
        except RegionError as exc:
            log_error(f"[Layers] {exc}")
            return LayerOperationResult.failure(str(exc))
        if self.placement.active_layer == old_name:
            self.placement.active_layer = new_name
        log_success(f'[Layers] Renamed "{old_name}" to "{new_name}"')
        self._notify(LayerEventKind.RENAMED, new_name, old_name=old_name)
        return LayerOperationResult.success(
            f'Layer "{old_name}" renamed to "{new_name}".', [old_name, new_name]
        )

    def delete_layer(
        self,
        name: str,
        *,
        cascade: bool = True,
        discard_tiles: bool = False,
    ) -> LayerOperationResult:
        """Delete a layer (and by default its sub-layers).

        Tiles stay on the map unless ``discard_tiles`` is set; see
        ``LayerStore.delete_named_layer`` for where they go.
        """

        if self.store.get_layer(name) is None:
            return LayerOperationResult.failure(self._not_found_message(name))
        parent = self.tree.parent_of(name)
        deleted = self.store.delete_named_layer(name, cascade=cascade, discard_tiles=discard_tiles)

        if self.placement.active_layer in deleted:
            fallback = parent if parent not in (None, ROOT_NAME) and parent not in deleted else None
            self.set_active_layer(fallback)

        log_success(f"[Layers] Deleted {', '.join(deleted)}")
        for deleted_name in deleted:
            self._notify(LayerEventKind.DELETED, deleted_name)
        kept = "removed" if discard_tiles else "kept on the map"
        return LayerOperationResult.success(
            f'Layer "{name}" deleted ({len(deleted)} layer(s)); tiles were {kept}.', deleted
        )

    def move_region(self, name: str, new_parent: str) -> LayerOperationResult:
        try:
            self.tree.move(name, new_parent)
        except CycleError as exc:
            log_error(f"[Layers] {exc}")
            return LayerOperationResult.failure(str(exc))
        except RegionError as exc:
            return LayerOperationResult.failure(str(exc))
        return LayerOperationResult.success(f'"{name}" moved under "{new_parent}".', [name])

    def move_region_to_root(self, name: str) -> LayerOperationResult:
        return self.move_region(name, ROOT_NAME)

    def list_layers(self) -> List[LayerSummary]:
        return [
            LayerSummary(name=layer.name, bounds=layer.bounds, parent=self.tree.parent_of(layer.name))
            for layer in self.store.named_layers()
        ]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def tile_at(self, x: int, y: int) -> int:
        return self.store.read_combined(x, y)

    def current_tile_state(self) -> List[List[int]]:
        """Live combined read of the selection (empty list without a selection)."""

        rect = self.selection.rect
        if rect is None:
            return []
        return self.store.read_live(rect)

    def selection_stats(self) -> SelectionStats:
        counts: Dict[int, int] = {}
        empty = 0
        grid = self.current_tile_state()
        for row in grid:
            for tile in row:
                if tile == EMPTY_TILE:
                    empty += 1
                else:
                    counts[tile] = counts.get(tile, 0) + 1
        return SelectionStats(
            tile_counts=counts,
            empty_count=empty,
            total_tiles=self.selection.width * self.selection.height,
        )

    def find_tile_in_selection(self, tile_id: int) -> List[TileLocation]:
        start_x, start_y = self.selection.top_left
        return [
            TileLocation(global_x=start_x + x, global_y=start_y + y, local_x=x, local_y=y)
            for y, row in enumerate(self.current_tile_state())
            for x, tile in enumerate(row)
            if tile == tile_id
        ]

    def describe_selection(self) -> str:
        """One-paragraph summary of the selection for the agent."""

        rect = self.selection.rect
        if rect is None:
            return "No area is selected."
        if rect.width == 1 and rect.height == 1:
            return f"User has selected a single tile at global ({rect.x}, {rect.y})."
        stats = self.selection_stats()
        placed = stats.total_tiles - stats.empty_count
        return (
            f"User has selected a rectangular region that is this size: {rect.width}x{rect.height}. "
            f"Global coordinates for the selection box: [{rect.x}, {rect.y}] to [{rect.right}, {rect.bottom}]. "
            f"It contains {placed} visible tiles of {len(stats.tile_counts)} distinct kinds."
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_json(self) -> List[List[int]]:
        """Flattened map (``height`` rows of ``width`` ints, row-major)."""

        return self.store.flatten()

    def load_from_json(self, grid: Sequence[Sequence[int]]) -> LayerOperationResult:
        """Replace the map from a flattened grid; layers, selection, and undo are reset."""

        snapshot = MapSnapshot(grid=[list(row) for row in grid])
        self.store.load_grid(snapshot.grid)
        self.selection.clear()
        self.selection.set_active_layer_bounds(None)
        self.placement.active_layer = None
        self.undo.reset()
        log_success(f"[Persistence] Map loaded ({snapshot.width}x{snapshot.height})")
        return LayerOperationResult.success("Map loaded.")
