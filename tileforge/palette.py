"""Tile palette: identifier groups and human-readable names.

The palette is a fixed 12-column tile sheet. Identifiers are grouped by what
they depict; the groups drive priority classification (``priority.py``) and
the multi-cell tree shapes (``integrity.py``). Names are only used for
agent-facing text.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, FrozenSet

EMPTY_TILE = -1
CLEAR_TILE = -2

GRASS_TILES: FrozenSet[int] = frozenset({0, 1, 2})
FENCE_TILES: FrozenSet[int] = frozenset({44, 45, 46, 56, 58, 68, 69, 70})
PATH_TILES: FrozenSet[int] = frozenset(range(39, 44))
DECOR_TILES: FrozenSet[int] = frozenset(
    {
        57, 83, 92, 93, 94, 95, 104, 105, 106, 107,
        115, 116, 117, 118, 119, 127, 128, 129, 130, 131,
    }
)
HOUSE_TILES: FrozenSet[int] = frozenset(range(48, 68)) | frozenset(range(72, 92))
FOREST_TILES: FrozenSet[int] = frozenset(range(3, 24)) | frozenset(range(27, 36))

# Fence pieces by role
FENCE_TOP_LEFT = 44
FENCE_HORIZONTAL = 45
FENCE_TOP_RIGHT = 46
FENCE_LEFT = 56
FENCE_RIGHT = 58
FENCE_BOTTOM_LEFT = 68
FENCE_GATE = 69
FENCE_BOTTOM_RIGHT = 70

# House pieces for a red roof over grey walls. Grey roofs and brown walls sit
# HOUSE_VARIANT_OFFSET ids earlier on the sheet.
HOUSE_VARIANT_OFFSET = -4
ROOF_TOP_LEFT = 52
ROOF_TOP = 53
ROOF_TOP_RIGHT = 54
ROOF_CHIMNEY = 55
ROOF_BOTTOM_LEFT = 64
ROOF_BOTTOM = 65
ROOF_BOTTOM_RIGHT = 66
ROOF_AWNING = 67
WALL_LEFT = 76
WALL = 77
WALL_RIGHT = 79
WALL_WINDOW = 88
WALL_DOOR = 89

# Every id the house generator can emit, in both variants
HOUSE_PIECES: FrozenSet[int] = frozenset(
    {
        48, 49, 50, 51, 52, 53, 54, 55,
        60, 61, 62, 63, 64, 65, 66, 67,
        72, 73, 74, 75, 76, 77, 78, 79,
        84, 85, 88, 89,
    }
)

# Single-cell items scattered by the decor generator
SCATTER_DECOR: Dict[int, str] = {
    27: "orange tree",
    28: "green tree",
    29: "mushroom",
    57: "wheelbarrow",
    94: "beehive",
    95: "target",
    106: "log",
    107: "bag",
    130: "bucket empty",
    131: "bucket full",
}

DEFAULT_TILE_NAMES: Dict[int, str] = {
    0: "grass",
    1: "grass with flowers",
    2: "grass with tufts",
    3: "yellow tree top",
    4: "green tree top",
    6: "green tree cluster top-left",
    7: "green tree cluster top",
    8: "green tree cluster top-right",
    9: "yellow tree cluster top-left",
    10: "yellow tree cluster top",
    11: "yellow tree cluster top-right",
    15: "yellow tree trunk",
    16: "green tree trunk",
    18: "green tree cluster left",
    19: "green tree cluster middle",
    20: "green tree cluster right",
    21: "yellow tree cluster left",
    22: "yellow tree cluster middle",
    23: "yellow tree cluster right",
    30: "green tree cluster bottom-left",
    31: "green tree cluster bottom",
    32: "green tree cluster bottom-right",
    33: "yellow tree cluster bottom-left",
    34: "yellow tree cluster bottom",
    35: "yellow tree cluster bottom-right",
    39: "dirt path end",
    40: "dirt path",
    41: "dirt path corner",
    42: "dirt path junction",
    43: "stone path",
    44: "fence top-left corner",
    45: "fence horizontal",
    46: "fence top-right corner",
    48: "grey roof top-left",
    49: "grey roof top",
    50: "grey roof top-right",
    51: "grey roof chimney",
    52: "red roof top-left",
    53: "red roof top",
    54: "red roof top-right",
    55: "red roof chimney",
    56: "fence left",
    58: "fence right",
    60: "grey roof bottom-left",
    61: "grey roof bottom",
    62: "grey roof bottom-right",
    63: "grey roof awning",
    64: "red roof bottom-left",
    65: "red roof bottom",
    66: "red roof bottom-right",
    67: "red roof awning",
    68: "fence bottom-left corner",
    69: "fence gate",
    70: "fence bottom-right corner",
    72: "brown house wall left",
    73: "brown house wall",
    74: "brown house wall (plain)",
    75: "brown house wall right",
    76: "grey house wall left",
    77: "grey house wall",
    78: "grey house wall (plain)",
    79: "grey house wall right",
    84: "brown house window",
    85: "brown house door",
    88: "grey house window",
    89: "grey house door",
    92: "well",
    93: "scarecrow",
    104: "signpost",
    105: "crate",
    115: "barrel",
    116: "haystack",
    117: "coin",
    118: "lantern",
    119: "bench",
    127: "flower pot",
    128: "sack",
    129: "woodpile",
}
DEFAULT_TILE_NAMES.update(SCATTER_DECOR)


def load_tile_dictionary(path: Path | str) -> Dict[int, str]:
    """Read a JSON object of ``{"<id>": "<name>"}`` into an int-keyed dict."""

    raw = json.loads(Path(path).read_text("utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Tile dictionary {path} must be a JSON object, got {type(raw).__name__}")
    return {int(key): str(value) for key, value in raw.items()}


def tile_name(tile_id: int, names: Dict[int, str] | None = None) -> str:
    """Human-readable name for ``tile_id``; ``tile #<id>`` when unknown."""

    if tile_id == EMPTY_TILE:
        return "empty"
    lookup = DEFAULT_TILE_NAMES if names is None else names
    return lookup.get(tile_id, f"tile #{tile_id}")
