"""Layered tile storage: base, feature, and named layers.

LayerStore exclusively owns every tile buffer. Reads resolve a cell through
the named layers (in insertion order), then the feature layer, then the base
layer. Named layers are registered one-to-one with nodes of the injected
RegionTree.

Buffers are row-major ``List[List[int]]`` indexed ``[y][x]``; named-layer
buffers are local to their bounds.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..palette import EMPTY_TILE, GRASS_TILES
from .region_tree import DuplicateRegionError, RegionNotFoundError, RegionTree, ROOT_NAME
from .schemas import Rect


class LayerStoreCorruptionError(RuntimeError):
    """Raised when a named layer's buffer no longer matches its bounds."""

    def __init__(self, name: str, expected: Tuple[int, int], actual: Tuple[int, int]) -> None:
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f'Named layer "{name}" buffer is {actual[0]}x{actual[1]} but its bounds are '
            f"{expected[0]}x{expected[1]}. The layer store is inconsistent; nothing was written."
        )


def blank_grid(width: int, height: int, fill: int = EMPTY_TILE) -> List[List[int]]:
    return [[fill] * width for _ in range(height)]


@dataclass
class NamedLayer:
    """A named rectangle with its own tile buffer (local coordinates)."""

    name: str
    bounds: Rect
    tiles: List[List[int]]

    def contains(self, x: int, y: int) -> bool:
        return self.bounds.contains(x, y)

    def get(self, x: int, y: int) -> int:
        """Tile at global ``(x, y)``; caller guarantees containment."""
        return self.tiles[y - self.bounds.y][x - self.bounds.x]

    def set(self, x: int, y: int, tile_id: int) -> None:
        self.tiles[y - self.bounds.y][x - self.bounds.x] = tile_id

    def cells(self) -> Iterator[Tuple[int, int, int]]:
        """Yield ``(x, y, tile)`` for every cell in global coordinates."""

        for row_index, row in enumerate(self.tiles):
            for col_index, tile in enumerate(row):
                yield self.bounds.x + col_index, self.bounds.y + row_index, tile


class LayerStore:
    """Owns the base, feature, and named tile buffers for one grid."""

    def __init__(
        self,
        width: int,
        height: int,
        *,
        tree: Optional[RegionTree] = None,
        rng: Optional[random.Random] = None,
        base: Optional[Sequence[Sequence[int]]] = None,
    ):
        self.width = width
        self.height = height
        self.tree = tree or RegionTree(width, height)
        rng = rng or random.Random()
        ground = sorted(GRASS_TILES)
        if base is not None:
            self.base = [list(row) for row in base]
        else:
            self.base = [[rng.choice(ground) for _ in range(width)] for _ in range(height)]
        self.feature = blank_grid(width, height)
        # Dict preserves insertion order; that order decides overlap resolution
        self.named: Dict[str, NamedLayer] = {}

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def base_at(self, x: int, y: int) -> int:
        return self.base[y][x]

    def feature_at(self, x: int, y: int) -> int:
        return self.feature[y][x]

    def set_feature(self, x: int, y: int, tile_id: int) -> None:
        self.feature[y][x] = tile_id

    def named_layers(self) -> List[NamedLayer]:
        """Named layers in enumeration (insertion) order."""

        return list(self.named.values())

    def get_layer(self, name: str) -> Optional[NamedLayer]:
        return self.named.get(name)

    def layers_at(self, x: int, y: int) -> List[NamedLayer]:
        return [layer for layer in self.named.values() if layer.contains(x, y)]

    def destination_layer(self, x: int, y: int) -> Optional[NamedLayer]:
        """First named layer whose bounds claim ``(x, y)``; None means the feature layer."""

        for layer in self.named.values():
            if layer.contains(x, y):
                return layer
        return None

    def owner_at(self, x: int, y: int) -> Optional[NamedLayer]:
        """Named layer whose tile is visible at ``(x, y)``, if any."""

        for layer in self.named.values():
            if layer.contains(x, y) and layer.get(x, y) != EMPTY_TILE:
                return layer
        return None

    def read_combined(self, x: int, y: int) -> int:
        """Visible tile at ``(x, y)``: named layers, then feature, then base."""

        if not self.in_bounds(x, y):
            return EMPTY_TILE
        owner = self.owner_at(x, y)
        if owner is not None:
            return owner.get(x, y)
        if self.feature[y][x] != EMPTY_TILE:
            return self.feature[y][x]
        return self.base[y][x]

    def read_live(self, rect: Rect) -> List[List[int]]:
        """Fresh combined read of ``rect`` (off-grid cells read as -1)."""

        return [
            [self.read_combined(x, y) for x in range(rect.x, rect.right + 1)]
            for y in range(rect.y, rect.bottom + 1)
        ]

    def clear_cell(self, x: int, y: int) -> None:
        """Remove whatever renders above the base at ``(x, y)``."""

        self.feature[y][x] = EMPTY_TILE
        for layer in self.layers_at(x, y):
            layer.set(x, y, EMPTY_TILE)

    def check_consistency(self) -> None:
        """Raise LayerStoreCorruptionError if any named buffer disagrees with its bounds."""

        for layer in self.named.values():
            expected = (layer.bounds.width, layer.bounds.height)
            rows = len(layer.tiles)
            cols = len(layer.tiles[0]) if rows else 0
            ragged = any(len(row) != cols for row in layer.tiles)
            if (cols, rows) != expected or ragged:
                raise LayerStoreCorruptionError(layer.name, expected, (cols, rows))

    def flatten(self) -> List[List[int]]:
        """Merge every layer into one independent ``height x width`` grid.

        Paint order is base, feature, then named layers in reverse enumeration
        order, so the first-enumerated named layer is painted last and the
        result agrees with ``read_combined`` on every cell.
        """

        self.check_consistency()
        flattened = [list(row) for row in self.base]
        for y, row in enumerate(self.feature):
            for x, tile in enumerate(row):
                if tile != EMPTY_TILE:
                    flattened[y][x] = tile
        for layer in reversed(self.named_layers()):
            for x, y, tile in layer.cells():
                if tile != EMPTY_TILE and self.in_bounds(x, y):
                    flattened[y][x] = tile
        return flattened

    # ------------------------------------------------------------------
    # Named layer lifecycle
    # ------------------------------------------------------------------

    def clip_rect(self, rect: Rect) -> Optional[Rect]:
        """Intersect ``rect`` with the grid; None when nothing remains."""

        x0, y0 = max(rect.x, 0), max(rect.y, 0)
        x1, y1 = min(rect.right, self.width - 1), min(rect.bottom, self.height - 1)
        if x0 > x1 or y0 > y1:
            return None
        return Rect.from_corners((x0, y0), (x1, y1))

    def create_named_layer(self, name: str, rect: Rect, parent: Optional[str] = None) -> NamedLayer:
        """Carve ``rect`` out of the feature layer into a new named layer.

        The region node goes under ``parent`` when given, otherwise under the
        deepest existing region that contains ``rect``.
        """

        if name in self.named or self.tree.find(name) is not None:
            raise DuplicateRegionError(name)
        clipped = self.clip_rect(rect)
        if clipped is None:
            raise ValueError(f"Rectangle {rect.corners()} lies entirely outside the grid")
        if parent is not None and self.tree.find(parent) is None:
            raise RegionNotFoundError(parent)

        # Register in the tree first so a failure there leaves the buffers untouched
        parent_name = parent or self.tree.enclosing(clipped).name
        self.tree.add(name, clipped, parent_name)

        layer = NamedLayer(name=name, bounds=clipped, tiles=blank_grid(clipped.width, clipped.height))
        for x, y, _ in list(layer.cells()):
            tile = self.feature[y][x]
            if tile != EMPTY_TILE:
                layer.set(x, y, tile)
                self.feature[y][x] = EMPTY_TILE
        self.named[name] = layer
        return layer

    def rename_named_layer(self, old: str, new: str) -> None:
        if old not in self.named:
            raise RegionNotFoundError(old)
        if new in self.named or self.tree.find(new) is not None or new == ROOT_NAME:
            raise DuplicateRegionError(new)
        self.tree.rename(old, new)
        # Rebuild to keep the renamed layer at its original enumeration position
        self.named = {
            (new if key == old else key): layer for key, layer in self.named.items()
        }
        self.named[new].name = new

    def delete_named_layer(
        self,
        name: str,
        *,
        cascade: bool = False,
        discard_tiles: bool = False,
    ) -> List[str]:
        """Delete a named layer (and its descendants when ``cascade``).

        With ``discard_tiles`` the buffers are dropped and the cells show
        whatever lies beneath. Otherwise each visible tile is handed to the
        layer that claims the cell next (first remaining named layer, else
        the feature layer), so the map looks the same afterwards. Without
        ``cascade`` the children move up to the deleted region's parent.

        Returns the deleted names, deepest first.
        """

        if name not in self.named:
            raise RegionNotFoundError(name)
        targets = self.tree.descendants(name) if cascade else []
        targets.append(name)
        for target in targets:
            self._remove_layer(target, discard_tiles=discard_tiles)
        return targets

    def _remove_layer(self, name: str, *, discard_tiles: bool) -> None:
        layer = self.named[name]
        visible = []
        if not discard_tiles:
            visible = [
                (x, y, tile)
                for x, y, tile in layer.cells()
                if tile != EMPTY_TILE and self.in_bounds(x, y) and self.owner_at(x, y) is layer
            ]
        del self.named[name]
        if self.tree.find(name) is not None:
            self.tree.delete(name)
        for x, y, tile in visible:
            heir = self.destination_layer(x, y)
            if heir is not None:
                heir.set(x, y, tile)
            else:
                self.feature[y][x] = tile

    # ------------------------------------------------------------------
    # Persistence support
    # ------------------------------------------------------------------

    def load_grid(self, grid: Sequence[Sequence[int]]) -> None:
        """Replace all tile data from a flattened grid.

        Ground ids go to the base layer, every other non-negative id to the
        feature layer; named layers and the region tree are reset. Rows or
        columns beyond the grid are ignored and missing cells keep their
        current base tile.
        """

        self.feature = blank_grid(self.width, self.height)
        self.named = {}
        self.tree = RegionTree(self.width, self.height)
        for y, row in enumerate(grid[: self.height]):
            for x, tile in enumerate(row[: self.width]):
                if tile in GRASS_TILES:
                    self.base[y][x] = tile
                elif tile >= 0:
                    self.feature[y][x] = tile
