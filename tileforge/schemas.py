"""
Pydantic schemas for the Tileforge engine.

Records that cross the engine boundary are defined here: generator output,
placement options and results, layer operation outcomes, UI notifications,
and the persisted map format.

Design Philosophy:
- Expected failures are values (``LayerOperationResult``), not exceptions
- Grids are plain ``List[List[int]]`` (row-major, ``-1`` = empty) so they
  serialize to JSON without conversion
- Pydantic validation guards every boundary where data comes from outside
  (generators, tool payloads, saved maps)
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .layers.schemas import Point, Rect


# ============================================================================
# Placement Schemas
# ============================================================================


class PlacementBuffer(BaseModel):
    """Output of a generator: a tile grid anchored at the selection's top-left.

    Cell values: ``>= 0`` a tile to write, ``-1`` leave the cell alone (or,
    when undoing, restore it to empty), ``-2`` clear the cell (honoured only
    when the placement accepts explicit clears).
    """

    name: str = Field("placement", description="Short label for logs")
    description: str = Field("", description="Human-readable summary of what was generated")
    grid: List[List[int]] = Field(default_factory=list, description="Row-major tile grid")
    points_of_interest: Dict[str, Point] = Field(
        default_factory=dict,
        description="Named anchor points (doors, gates) in buffer-local coordinates",
    )
    details: Dict[str, str] = Field(
        default_factory=dict,
        description="Generator-specific facts for status messages (style, open sides)",
    )

    @property
    def height(self) -> int:
        return len(self.grid)

    @property
    def width(self) -> int:
        return max((len(row) for row in self.grid), default=0)


class PlacementOptions(BaseModel):
    """Switches for one placement call."""

    # Anchor at (0, 0) instead of the active selection
    world_override: bool = False
    # Honour -2 cells as "clear this cell"
    accept_explicit_clear: bool = False
    # Restore mode: every cell overwrites regardless of priority, -1 included
    is_undo: bool = False


class PlacementResult(BaseModel):
    """Counts reported by a placement call.

    ``placed`` equals the number of changed cells; ``skipped`` counts writes
    blocked by priority; ``total`` counts the tile writes that were attempted
    (explicit ``-2`` clears are changed cells but never part of ``total``).
    """

    placed: int = 0
    skipped: int = 0
    total: int = 0
    pruned: int = Field(0, description="Multi-cell parts erased by integrity pruning")
    changed: List[Point] = Field(default_factory=list, exclude=True)

    @property
    def fully_blocked(self) -> bool:
        return self.total > 0 and self.placed == 0

    @property
    def partially_blocked(self) -> bool:
        return self.skipped > 0 and self.placed > 0


class LayerOperationResult(BaseModel):
    """Outcome of a structural operation (create, rename, delete, move, undo)."""

    ok: bool
    message: str
    affected: List[str] = Field(default_factory=list, description="Region names touched")

    @classmethod
    def success(cls, message: str, affected: Optional[List[str]] = None) -> "LayerOperationResult":
        return cls(ok=True, message=message, affected=affected or [])

    @classmethod
    def failure(cls, message: str) -> "LayerOperationResult":
        return cls(ok=False, message=message)


# ============================================================================
# Notification Schemas
# ============================================================================


class LayerEventKind(str, Enum):
    CREATED = "created"
    RENAMED = "renamed"
    DELETED = "deleted"
    SELECTED = "selected"


class LayerEvent(BaseModel):
    """Fire-and-forget notification sent to engine listeners."""

    kind: LayerEventKind
    name: str
    old_name: Optional[str] = Field(None, description="Previous name for rename events")


# ============================================================================
# Query Schemas
# ============================================================================


class TileLocation(BaseModel):
    global_x: int
    global_y: int
    local_x: int
    local_y: int


class SelectionStats(BaseModel):
    """Tile census of the current selection."""

    tile_counts: Dict[int, int] = Field(default_factory=dict)
    empty_count: int = 0
    total_tiles: int = 0

    def most_common(self, limit: int = 10) -> List[tuple[int, int]]:
        ranked = sorted(self.tile_counts.items(), key=lambda item: (-item[1], item[0]))
        return ranked[:limit]


class LayerSummary(BaseModel):
    name: str
    bounds: Rect
    parent: Optional[str] = None


# ============================================================================
# Persistence Schemas
# ============================================================================


class MapSnapshot(BaseModel):
    """Flattened map as persisted: ``height`` rows of ``width`` integers."""

    grid: List[List[int]]

    @field_validator("grid")
    @classmethod
    def _rows_present(cls, grid: List[List[int]]) -> List[List[int]]:
        if not grid:
            raise ValueError("map grid must contain at least one row")
        return grid

    @property
    def height(self) -> int:
        return len(self.grid)

    @property
    def width(self) -> int:
        return len(self.grid[0]) if self.grid else 0
