"""Layer tier for Tileforge: geometry, region tree, and tile buffers."""

from .schemas import Point, Rect
from .region_tree import (
    ROOT_NAME,
    CycleError,
    DuplicateRegionError,
    RegionError,
    RegionNode,
    RegionNotFoundError,
    RegionTree,
)
from .store import LayerStore, LayerStoreCorruptionError, NamedLayer, blank_grid

__all__ = [
    "Point",
    "Rect",
    "ROOT_NAME",
    "CycleError",
    "DuplicateRegionError",
    "RegionError",
    "RegionNode",
    "RegionNotFoundError",
    "RegionTree",
    "LayerStore",
    "LayerStoreCorruptionError",
    "NamedLayer",
    "blank_grid",
]
