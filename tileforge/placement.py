"""Placement engine: applies a generator's buffer to the layered grid.

For every buffer cell the engine picks a destination layer, arbitrates by
tile priority against what is already there, records what changed, and
finally prunes multi-cell objects that the write may have broken.

Destination order for a cell:
1. the active layer, when one is set and contains the cell
2. the first named layer (insertion order) whose bounds contain the cell
3. the feature layer

Priority is compared against the destination layer's own tile, except for
the feature-layer fallback which compares against the combined view so a
named layer's tile also blocks it.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from .config import Config
from .integrity import DEFAULT_PRUNE_MARGIN, prune_broken_structures
from .layers.schemas import Point
from .layers.store import LayerStore, NamedLayer
from .logging_utils import log_deterministic
from .palette import CLEAR_TILE, EMPTY_TILE
from .priority import can_overwrite
from .schemas import PlacementBuffer, PlacementOptions, PlacementResult
from .selection import SelectionModel


class PlacementEngine:
    """Resolves and applies placement buffers against a LayerStore."""

    def __init__(
        self,
        store: LayerStore,
        selection: SelectionModel,
        *,
        prune_margin: int = DEFAULT_PRUNE_MARGIN,
        verbose: Optional[bool] = None,
    ):
        self.store = store
        self.selection = selection
        self.prune_margin = prune_margin
        self.verbose = Config.VERBOSE if verbose is None else verbose
        self.active_layer: Optional[str] = None

    def resolve_anchor(self, options: PlacementOptions) -> Tuple[int, int]:
        """World origin when overridden, else the selection's top-left.

        With no active selection any half-finished selection state is
        cleared and the origin is used.
        """

        if options.world_override:
            return (0, 0)
        if self.selection.is_active:
            return self.selection.top_left
        self.selection.clear()
        return (0, 0)

    def _active_layer(self) -> Optional[NamedLayer]:
        if self.active_layer is None:
            return None
        return self.store.get_layer(self.active_layer)

    def destination(self, x: int, y: int) -> Optional[NamedLayer]:
        """Named layer that receives a write at ``(x, y)``; None means the feature layer."""

        active = self._active_layer()
        if active is not None and active.contains(x, y):
            return active
        return self.store.destination_layer(x, y)

    def _write(self, x: int, y: int, tile_id: int) -> bool:
        destination = self.destination(x, y)
        if destination is not None:
            existing = destination.get(x, y)
        else:
            existing = self.store.read_combined(x, y)
        if not can_overwrite(tile_id, existing):
            return False
        if destination is not None:
            destination.set(x, y, tile_id)
        else:
            self.store.set_feature(x, y, tile_id)
        return True

    def _restore(self, x: int, y: int, tile_id: int) -> None:
        # Undo must reproduce the snapshot exactly, so drop every overlay first
        self.store.clear_cell(x, y)
        if tile_id == EMPTY_TILE or tile_id == self.store.base_at(x, y):
            return
        destination = self.destination(x, y)
        if destination is not None:
            destination.set(x, y, tile_id)
        else:
            self.store.set_feature(x, y, tile_id)

    def place(
        self,
        buffer: PlacementBuffer,
        options: Optional[PlacementOptions] = None,
        anchor: Optional[Tuple[int, int]] = None,
    ) -> PlacementResult:
        """Apply ``buffer`` anchored at ``anchor`` (resolved from options when None).

        Off-grid cells are skipped silently. ``-1`` cells are skipped and not
        counted unless undoing; ``-2`` cells clear the rendering layers when
        explicit clears are accepted. Clears bypass priority and count as placed
        but not toward ``total``.
        """

        options = options or PlacementOptions()
        if anchor is None:
            anchor = self.resolve_anchor(options)
        ax, ay = anchor

        changed: List[Tuple[int, int]] = []
        skipped = 0
        total = 0

        for dy, row in enumerate(buffer.grid):
            for dx, tile_id in enumerate(row):
                x, y = ax + dx, ay + dy
                if not self.store.in_bounds(x, y):
                    continue

                if tile_id == CLEAR_TILE:
                    if options.accept_explicit_clear:
                        self.store.clear_cell(x, y)
                        changed.append((x, y))
                    continue

                if tile_id < 0 and (tile_id != EMPTY_TILE or not options.is_undo):
                    continue

                total += 1
                if options.is_undo:
                    self._restore(x, y, tile_id)
                    changed.append((x, y))
                elif self._write(x, y, tile_id):
                    changed.append((x, y))
                else:
                    skipped += 1

        pruned = prune_broken_structures(self.store, changed, margin=self.prune_margin)

        if self.verbose:
            log_deterministic(
                f"[Placement] {buffer.name} at {anchor}: placed={len(changed)} "
                f"skipped={skipped} total={total} pruned={len(pruned)}"
            )

        return PlacementResult(
            placed=len(changed),
            skipped=skipped,
            total=total,
            pruned=len(pruned),
            changed=[Point(x=x, y=y) for x, y in changed],
        )
