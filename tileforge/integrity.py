"""Structural integrity for multi-cell tile objects.

Trees on the palette span several cells. Each part of a shape expects every
other part at a fixed offset; a part whose partners are missing is broken and
gets erased, so an edit never leaves half an object on the map.

Shapes (offsets relative to the first listed part):

* single tree: top ``(0, 0)``, trunk ``(0, 1)``
* square cluster: ``(0, 0) (1, 0) (0, 1) (1, 1)``
* cross cluster: top ``(0, 0)``, middle ``(0, 1)``, bottom ``(0, 2)``,
  left ``(-1, 1)``, right ``(1, 1)``
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .layers.store import LayerStore
from .palette import EMPTY_TILE

Cell = Tuple[int, int]

SINGLE_TREE_OFFSETS: Sequence[Cell] = ((0, 0), (0, 1))
SQUARE_CLUSTER_OFFSETS: Sequence[Cell] = ((0, 0), (1, 0), (0, 1), (1, 1))
CROSS_CLUSTER_OFFSETS: Sequence[Cell] = ((0, 0), (0, 1), (0, 2), (-1, 1), (1, 1))

# (tile ids in shape order, offsets) for every multi-cell object on the palette
MULTI_CELL_SHAPES: Sequence[Tuple[Sequence[int], Sequence[Cell]]] = (
    ((4, 16), SINGLE_TREE_OFFSETS),                 # green tree
    ((3, 15), SINGLE_TREE_OFFSETS),                 # yellow tree
    ((6, 8, 30, 32), SQUARE_CLUSTER_OFFSETS),       # green cluster
    ((9, 11, 33, 35), SQUARE_CLUSTER_OFFSETS),      # yellow cluster
    ((7, 19, 31, 18, 20), CROSS_CLUSTER_OFFSETS),   # green cross cluster
    ((10, 22, 34, 21, 23), CROSS_CLUSTER_OFFSETS),  # yellow cross cluster
)

DEFAULT_PRUNE_MARGIN = 2


@dataclass(frozen=True)
class NeighbourRule:
    """The tile at ``(x + dx, y + dy)`` must be ``expected``."""

    dx: int
    dy: int
    expected: int


def build_neighbour_rules(
    shapes: Iterable[Tuple[Sequence[int], Sequence[Cell]]] = MULTI_CELL_SHAPES,
) -> Dict[int, List[NeighbourRule]]:
    """Expand shape declarations into per-tile partner rules."""

    table: Dict[int, List[NeighbourRule]] = {}
    for tiles, offsets in shapes:
        if len(tiles) != len(offsets):
            raise ValueError(f"Shape {tiles} has {len(tiles)} tiles but {len(offsets)} offsets")
        for i, tile_id in enumerate(tiles):
            ox, oy = offsets[i]
            table[tile_id] = [
                NeighbourRule(dx=offsets[j][0] - ox, dy=offsets[j][1] - oy, expected=other)
                for j, other in enumerate(tiles)
                if j != i
            ]
    return table


NEIGHBOUR_RULES: Dict[int, List[NeighbourRule]] = build_neighbour_rules()

# Tiles that only exist as part of a larger object
MULTI_CELL_TILE_IDS = frozenset(NEIGHBOUR_RULES)


def rules_for(tile_id: int) -> Optional[List[NeighbourRule]]:
    """Partner rules for ``tile_id``, or None when the tile is standalone."""

    return NEIGHBOUR_RULES.get(tile_id)


def _scan_box(
    store: LayerStore, cells: Optional[Sequence[Cell]], margin: int
) -> Tuple[int, int, int, int]:
    if not cells:
        return 0, 0, store.width - 1, store.height - 1
    xs = [c[0] for c in cells]
    ys = [c[1] for c in cells]
    return (
        max(0, min(xs) - margin),
        max(0, min(ys) - margin),
        min(store.width - 1, max(xs) + margin),
        min(store.height - 1, max(ys) + margin),
    )


def find_broken_cells(
    store: LayerStore, box: Tuple[int, int, int, int]
) -> List[Cell]:
    """Cells in ``box`` whose visible tile is missing at least one partner."""

    min_x, min_y, max_x, max_y = box
    broken: List[Cell] = []
    for y in range(min_y, max_y + 1):
        for x in range(min_x, max_x + 1):
            rules = NEIGHBOUR_RULES.get(store.read_combined(x, y))
            if not rules:
                continue
            if any(store.read_combined(x + r.dx, y + r.dy) != r.expected for r in rules):
                broken.append((x, y))
    return broken


def _erase_visible(store: LayerStore, x: int, y: int) -> bool:
    owner = store.owner_at(x, y)
    if owner is not None:
        owner.set(x, y, EMPTY_TILE)
        return True
    if store.feature_at(x, y) != EMPTY_TILE:
        store.set_feature(x, y, EMPTY_TILE)
        return True
    return False


def prune_broken_structures(
    store: LayerStore,
    changed: Optional[Sequence[Cell]] = None,
    *,
    margin: int = DEFAULT_PRUNE_MARGIN,
) -> List[Cell]:
    """Erase every broken multi-cell part near ``changed`` (whole grid if None).

    Erasing is done on the layer that renders the cell. The scan repeats
    around freshly erased cells until nothing else breaks, so a second call
    right after the first never finds anything. Returns the erased cells in
    erase order.
    """

    erased: List[Cell] = []
    box = _scan_box(store, changed, margin)
    while True:
        broken = find_broken_cells(store, box)
        removed: Set[Cell] = set()
        for x, y in broken:
            if _erase_visible(store, x, y):
                removed.add((x, y))
        if not removed:
            return erased
        ordered = [cell for cell in broken if cell in removed]
        erased.extend(ordered)
        box = _scan_box(store, ordered, margin)
