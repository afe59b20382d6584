"""Tile priority classification.

A write may replace an existing tile only when the new tile's priority is at
least the existing one's. Ties go to the newer write.
"""

from __future__ import annotations

from enum import IntEnum

from .palette import (
    DECOR_TILES,
    EMPTY_TILE,
    FENCE_TILES,
    FOREST_TILES,
    GRASS_TILES,
    HOUSE_TILES,
    PATH_TILES,
)


class TilePriority(IntEnum):
    EMPTY = -1
    GRASS = 0
    FOREST = 1
    DECOR = 2
    PATH = 3
    FENCE = 4
    HOUSE = 5


def priority_of(tile_id: int) -> TilePriority:
    """Classify ``tile_id`` into a priority tier.

    Total over all integers. Groups are tested from the highest tier down, so
    the fence sides (56, 58) and the decor ids 57 and 83, which sit inside the
    house blocks of the tile sheet, rank as HOUSE. Identifiers outside every
    group (including sentinels other than ``-1``) fall back to GRASS, the
    lowest non-empty tier.
    """

    if tile_id == EMPTY_TILE:
        return TilePriority.EMPTY
    if tile_id in HOUSE_TILES:
        return TilePriority.HOUSE
    if tile_id in FENCE_TILES:
        return TilePriority.FENCE
    if tile_id in PATH_TILES:
        return TilePriority.PATH
    if tile_id in DECOR_TILES:
        return TilePriority.DECOR
    if tile_id in FOREST_TILES:
        return TilePriority.FOREST
    if tile_id in GRASS_TILES:
        return TilePriority.GRASS
    return TilePriority.GRASS


def can_overwrite(new_tile: int, existing_tile: int, *, force: bool = False) -> bool:
    """Return True if ``new_tile`` may replace ``existing_tile``."""

    if force:
        return True
    return priority_of(new_tile) >= priority_of(existing_tile)
