"""Pydantic geometry for the layer tier.

Rectangles are stored as origin + size; ``corners()`` gives the inclusive
``[[x0, y0], [x1, y1]]`` form used by region-tree nodes.
"""

from __future__ import annotations

from typing import List, Tuple

from pydantic import BaseModel, Field


class Point(BaseModel):
    """A grid coordinate (origin top-left, y grows downward)."""

    x: int
    y: int


class Rect(BaseModel):
    """Axis-aligned rectangle of whole tiles."""

    x: int
    y: int
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)

    @classmethod
    def from_corners(cls, a: Tuple[int, int], b: Tuple[int, int]) -> "Rect":
        """Build from two inclusive corners given in any order."""

        x0, x1 = sorted((a[0], b[0]))
        y0, y1 = sorted((a[1], b[1]))
        return cls(x=x0, y=y0, width=x1 - x0 + 1, height=y1 - y0 + 1)

    @property
    def right(self) -> int:
        """Inclusive last column."""
        return self.x + self.width - 1

    @property
    def bottom(self) -> int:
        """Inclusive last row."""
        return self.y + self.height - 1

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x <= self.right and self.y <= y <= self.bottom

    def contains_rect(self, other: "Rect") -> bool:
        return self.contains(other.x, other.y) and self.contains(other.right, other.bottom)

    def corners(self) -> List[List[int]]:
        return [[self.x, self.y], [self.right, self.bottom]]

    def clamp(self, x: int, y: int) -> Tuple[int, int]:
        """Clamp a coordinate into this rectangle."""

        return (min(max(x, self.x), self.right), min(max(y, self.y), self.bottom))

    @property
    def area(self) -> int:
        return self.width * self.height
