"""
Tileforge - layered tile-grid compositing engine.

Edit a fixed-size tile map through named, nested regions with
priority-based placement, multi-cell structure integrity, and
per-call / per-turn undo.

No rendering, no file I/O required, no global state.
Every collaborator is owned by an explicit TileEngine.
"""

__version__ = "0.1.0"

# Main engine
from .engine import TileEngine

# Tile semantics
from .priority import TilePriority, priority_of, can_overwrite
from .integrity import (
    MULTI_CELL_TILE_IDS,
    NeighbourRule,
    rules_for,
    prune_broken_structures,
)
from .palette import (
    CLEAR_TILE,
    EMPTY_TILE,
    DEFAULT_TILE_NAMES,
    load_tile_dictionary,
    tile_name,
)

# Layer tier
from .layers import (
    Point,
    Rect,
    ROOT_NAME,
    CycleError,
    DuplicateRegionError,
    RegionError,
    RegionNode,
    RegionNotFoundError,
    RegionTree,
    LayerStore,
    LayerStoreCorruptionError,
    NamedLayer,
)
from .selection import SelectionModel
from .placement import PlacementEngine
from .undo import UndoStore

# Generators and agent tools
from .generators import (
    GeneratorArgs,
    GeneratorBoundsError,
    GeneratorInput,
    FeatureGenerator,
    TileArgs,
    BoxArgs,
    ClearArgs,
    DecorArgs,
    FenceArgs,
    generate,
    parse_generator_args,
)
from .tools import TileToolkit

# Persistence
from .persistence import MapPersistence, InMemoryMapPersistence, JsonMapPersistence

# Core schemas
from .schemas import (
    PlacementBuffer,
    PlacementOptions,
    PlacementResult,
    LayerOperationResult,
    LayerEvent,
    LayerEventKind,
    LayerSummary,
    MapSnapshot,
    SelectionStats,
    TileLocation,
)

__all__ = [
    # Main class
    "TileEngine",
    # Tile semantics
    "TilePriority",
    "priority_of",
    "can_overwrite",
    "MULTI_CELL_TILE_IDS",
    "NeighbourRule",
    "rules_for",
    "prune_broken_structures",
    "CLEAR_TILE",
    "EMPTY_TILE",
    "DEFAULT_TILE_NAMES",
    "load_tile_dictionary",
    "tile_name",
    # Layer tier
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
    "SelectionModel",
    "PlacementEngine",
    "UndoStore",
    # Generators and tools
    "GeneratorArgs",
    "GeneratorBoundsError",
    "GeneratorInput",
    "FeatureGenerator",
    "TileArgs",
    "BoxArgs",
    "ClearArgs",
    "DecorArgs",
    "FenceArgs",
    "generate",
    "parse_generator_args",
    "TileToolkit",
    # Persistence
    "MapPersistence",
    "InMemoryMapPersistence",
    "JsonMapPersistence",
    # Schemas
    "PlacementBuffer",
    "PlacementOptions",
    "PlacementResult",
    "LayerOperationResult",
    "LayerEvent",
    "LayerEventKind",
    "LayerSummary",
    "MapSnapshot",
    "SelectionStats",
    "TileLocation",
]
