"""Two-level undo built on flattened snapshots.

``last_call`` holds the map as it was before the most recent placement;
``turn_start`` holds it as it was before the first placement of the current
turn. Snapshots are independent copies, never views of live buffers.
"""

from __future__ import annotations

from typing import List, Optional

from .layers.store import LayerStore
from .logging_utils import log_info, log_success
from .placement import PlacementEngine
from .schemas import LayerOperationResult, PlacementBuffer, PlacementOptions, PlacementResult

Grid = List[List[int]]

RESTORE_OPTIONS = PlacementOptions(world_override=True, accept_explicit_clear=True, is_undo=True)


class UndoStore:
    """Wraps a PlacementEngine, snapshotting before every non-undo placement."""

    def __init__(self, engine: PlacementEngine, store: LayerStore):
        self.engine = engine
        self.store = store
        self.last_call: Optional[Grid] = None
        self.turn_start: Optional[Grid] = None
        # A fresh engine starts a turn immediately
        self.turn_start_pending = True

    def mark_new_turn(self) -> None:
        """Arm the turn-start snapshot for the next placement."""

        self.turn_start_pending = True

    def snapshot_before_call(self) -> None:
        self.last_call = self.store.flatten()

    def snapshot_turn_start_if_needed(self) -> None:
        if not self.turn_start_pending:
            return
        source = self.last_call if self.last_call is not None else self.store.flatten()
        self.turn_start = [list(row) for row in source]
        self.turn_start_pending = False

    def place(
        self,
        buffer: PlacementBuffer,
        options: Optional[PlacementOptions] = None,
    ) -> PlacementResult:
        """Snapshot (unless undoing) and then apply ``buffer``."""

        options = options or PlacementOptions()
        if not options.is_undo:
            self.snapshot_before_call()
            self.snapshot_turn_start_if_needed()
        return self.engine.place(buffer, options)

    def _restore(self, grid: Grid, label: str) -> PlacementResult:
        buffer = PlacementBuffer(name=label, description=label, grid=[list(row) for row in grid])
        return self.engine.place(buffer, RESTORE_OPTIONS)

    def undo_last_call(self) -> LayerOperationResult:
        """Restore the map to its state before the most recent placement."""

        if not self.last_call:
            log_info("[Undo] Nothing to undo for the last call")
            return LayerOperationResult.failure("Nothing to undo. No previous state available.")
        result = self._restore(self.last_call, "Undo last call")
        self.last_call = None
        log_success(f"[Undo] Restored state before the last call ({result.placed} cells)")
        return LayerOperationResult.success("The most recent change has been reverted.")

    def undo_turn(self) -> LayerOperationResult:
        """Restore the map to its state before the first placement of this turn."""

        if not self.turn_start:
            log_info("[Undo] Nothing to undo for this turn")
            return LayerOperationResult.failure("Nothing to undo. No previous state available.")
        result = self._restore(self.turn_start, "Undo turn")
        self.last_call = None
        self.mark_new_turn()
        log_success(f"[Undo] Restored turn-start state ({result.placed} cells)")
        return LayerOperationResult.success(
            "All changes from this turn have been reverted. "
            "The map has been restored to its state before any tool calls were made."
        )

    def reset(self) -> None:
        """Forget all snapshots (used after loading a new map)."""

        self.last_call = None
        self.turn_start = None
        self.turn_start_pending = True
