"""Rectangular selection state.

Tracks a drag (start/end in grid coordinates, either order), an optional
active-layer clamp that confines dragging to one rectangle, and a lock used
while an agent is working on the current selection.
"""

from __future__ import annotations

from typing import Optional, Tuple

from .layers.schemas import Rect
from .logging_utils import log_error


class SelectionModel:
    """Selection rectangle plus active-layer clamp."""

    def __init__(self, width: int, height: int):
        self.grid_width = width
        self.grid_height = height
        self.start: Optional[Tuple[int, int]] = None
        self.end: Optional[Tuple[int, int]] = None
        self.active_layer_bounds: Optional[Rect] = None
        self.dragging = False
        self.locked = False

    # ------------------------------------------------------------------
    # Derived geometry
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.start is not None and self.end is not None

    @property
    def rect(self) -> Optional[Rect]:
        if self.start is None or self.end is None:
            return None
        return Rect.from_corners(self.start, self.end)

    @property
    def top_left(self) -> Tuple[int, int]:
        rect = self.rect
        return (rect.x, rect.y) if rect else (0, 0)

    @property
    def width(self) -> int:
        rect = self.rect
        return rect.width if rect else 0

    @property
    def height(self) -> int:
        rect = self.rect
        return rect.height if rect else 0

    def _on_grid(self, x: int, y: int) -> bool:
        return 0 <= x < self.grid_width and 0 <= y < self.grid_height

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def lock(self) -> None:
        self.locked = True

    def unlock(self) -> None:
        self.locked = False

    def begin_drag(self, x: int, y: int) -> bool:
        """Start a drag at ``(x, y)``; refused when locked or outside the grid/clamp."""

        if self.locked:
            return False
        if not self._on_grid(x, y):
            return False
        if self.active_layer_bounds is not None and not self.active_layer_bounds.contains(x, y):
            return False
        self.dragging = True
        self.start = (x, y)
        self.end = (x, y)
        return True

    def update_drag(self, x: int, y: int) -> None:
        """Move the drag end, clamped to the grid and the active-layer clamp."""

        if not self.dragging:
            return
        x = min(max(x, 0), self.grid_width - 1)
        y = min(max(y, 0), self.grid_height - 1)
        if self.active_layer_bounds is not None:
            x, y = self.active_layer_bounds.clamp(x, y)
        self.end = (x, y)

    def end_drag(self) -> Optional[Rect]:
        if not self.dragging:
            return None
        self.dragging = False
        return self.rect

    def set_rect(self, x: int, y: int, width: int, height: int) -> bool:
        """Select ``width x height`` tiles at ``(x, y)``; rejected if any corner is off-grid."""

        end_x, end_y = x + width - 1, y + height - 1
        if width < 1 or height < 1 or not self._on_grid(x, y) or not self._on_grid(end_x, end_y):
            log_error(
                f"Invalid selection coordinates: x={x}, y={y}, w={width}, h={height}. Selection not set."
            )
            return False
        self.dragging = False
        self.start = (x, y)
        self.end = (end_x, end_y)
        return True

    def clear(self) -> None:
        self.dragging = False
        self.start = None
        self.end = None

    def set_active_layer_bounds(self, bounds: Optional[Rect]) -> None:
        self.active_layer_bounds = bounds.model_copy() if bounds is not None else None
