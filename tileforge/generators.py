"""
Feature generators: turn a small argument record into a placement buffer.

Each generator receives the selection size (``GeneratorInput``) and one
argument record from the closed ``GeneratorArgs`` union, discriminated by its
``kind`` field. Output is a ``PlacementBuffer`` exactly the size of the
selection, with ``-1`` wherever the generator has nothing to say. The house
generator also reads the visible tiles under the selection so it can avoid
houses that are already there.

Generators never touch the map. They only check geometry (arguments must fit
inside the selection); tile priority and integrity are the placement
engine's job.
"""

import random
from abc import ABC, abstractmethod
from typing import Annotated, ClassVar, Dict, List, Literal, Optional, Set, Tuple, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from .layers.schemas import Point
from .palette import (
    CLEAR_TILE,
    EMPTY_TILE,
    FENCE_BOTTOM_LEFT,
    FENCE_BOTTOM_RIGHT,
    FENCE_GATE,
    FENCE_HORIZONTAL,
    FENCE_LEFT,
    FENCE_RIGHT,
    FENCE_TOP_LEFT,
    FENCE_TOP_RIGHT,
    HOUSE_PIECES,
    HOUSE_VARIANT_OFFSET,
    ROOF_AWNING,
    ROOF_BOTTOM,
    ROOF_BOTTOM_LEFT,
    ROOF_BOTTOM_RIGHT,
    ROOF_CHIMNEY,
    ROOF_TOP,
    ROOF_TOP_LEFT,
    ROOF_TOP_RIGHT,
    SCATTER_DECOR,
    WALL,
    WALL_DOOR,
    WALL_LEFT,
    WALL_RIGHT,
    WALL_WINDOW,
)
from .schemas import PlacementBuffer

# Empty columns/rows kept between a generated fence and the selection edge
FENCE_PADDING = 1
FENCE_MIN_SIZE = 3
DEFAULT_DECOR_DENSITY = 0.05
# Empty border kept around a generated house
HOUSE_PADDING = 1
HOUSE_MIN_SIZE = 3
DEFAULT_HOUSE_SIZE = 4
FENCE_EDGES = ("top", "bottom", "left", "right")


class GeneratorBoundsError(ValueError):
    """Raised when generator arguments reach outside the selection."""


class GeneratorInput(BaseModel):
    """Selection dimensions handed to a generator, plus the tiles under it when known."""

    width: int = Field(..., ge=1, description="Selection width in tiles")
    height: int = Field(..., ge=1, description="Selection height in tiles")
    grid: Optional[List[List[int]]] = Field(
        None, description="Visible tiles under the selection (row-major), for generators that avoid existing features"
    )

    def blank(self) -> List[List[int]]:
        return [[EMPTY_TILE] * self.width for _ in range(self.height)]

    def check_area(self, x: int, y: int, width: int, height: int, label: str) -> None:
        if x + width > self.width or y + height > self.height:
            raise GeneratorBoundsError(
                f"{label} from ({x}, {y}) with size {width}x{height} exceeds "
                f"selection bounds ({self.width}x{self.height})."
            )


# ============================================================================
# Argument records (closed union, discriminated by ``kind``)
# ============================================================================


class TileArgs(BaseModel):
    kind: Literal["tile"] = "tile"
    x: int = Field(..., ge=0, description="X coordinate in local selection space")
    y: int = Field(..., ge=0, description="Y coordinate in local selection space")
    tile_id: int = Field(..., ge=0, description="The tile ID to place")


class BoxArgs(BaseModel):
    kind: Literal["box"] = "box"
    x: int = Field(..., ge=0, description="X coordinate of top-left corner in local space")
    y: int = Field(..., ge=0, description="Y coordinate of top-left corner in local space")
    width: int = Field(..., ge=1, description="Width of the box in tiles")
    height: int = Field(..., ge=1, description="Height of the box in tiles")
    tile_id: int = Field(..., ge=0, description="The tile ID to use")
    filled: bool = Field(False, description="Fill the whole box instead of drawing the outline")


class ClearArgs(BaseModel):
    kind: Literal["clear"] = "clear"
    x: int = Field(..., ge=0, description="X coordinate of top-left corner to start clearing")
    y: int = Field(..., ge=0, description="Y coordinate of top-left corner to start clearing")
    width: int = Field(..., ge=1, description="Width of area to clear in tiles")
    height: int = Field(..., ge=1, description="Height of area to clear in tiles")


class DecorArgs(BaseModel):
    kind: Literal["decor"] = "decor"
    density: float = Field(
        DEFAULT_DECOR_DENSITY, ge=0.0, le=1.0,
        description="Probability of placing a decor item on each tile",
    )
    x: Optional[int] = Field(None, ge=0, description="Local start column (default 0)")
    y: Optional[int] = Field(None, ge=0, description="Local start row (default 0)")
    width: Optional[int] = Field(None, ge=1, description="Area width (default: rest of selection)")
    height: Optional[int] = Field(None, ge=1, description="Area height (default: rest of selection)")
    seed: Optional[int] = Field(None, description="Seed for a reproducible layout")


class FenceArgs(BaseModel):
    kind: Literal["fence"] = "fence"
    width: Optional[int] = Field(None, ge=FENCE_MIN_SIZE, le=50, description="Fence width (random if omitted)")
    height: Optional[int] = Field(None, ge=FENCE_MIN_SIZE, le=50, description="Fence height (random if omitted)")
    seed: Optional[int] = Field(None, description="Seed for a reproducible layout")


class PartialFenceArgs(BaseModel):
    kind: Literal["partial_fence"] = "partial_fence"
    edges: List[Literal["top", "bottom", "left", "right"]] = Field(
        default_factory=list,
        description="Which edges to include, as a list or a comma-separated string (e.g. 'top,left')",
    )
    seed: Optional[int] = Field(None, description="Seed for reproducible trims")

    @field_validator("edges", mode="before")
    @classmethod
    def _split_edges(cls, value):
        if isinstance(value, str):
            value = [part for part in value.split(",") if part.strip()]
        if isinstance(value, list):
            cleaned = [str(part).strip().lower() for part in value]
            return list(dict.fromkeys(cleaned))
        return value


class HouseArgs(BaseModel):
    kind: Literal["house"] = "house"
    style: Optional[Literal["brown", "grey"]] = Field(None, description="Wall style (random if omitted)")
    roof: Optional[Literal["red", "grey"]] = Field(
        None, description="Roof colour (grey walls get a red roof and brown walls a grey one by default)"
    )
    x: Optional[int] = Field(None, ge=0, description="Preferred local column (adjusted if it overlaps)")
    y: Optional[int] = Field(None, ge=0, description="Preferred local row (adjusted if it overlaps)")
    width: int = Field(DEFAULT_HOUSE_SIZE, ge=HOUSE_MIN_SIZE, le=20, description="House width in tiles")
    height: int = Field(DEFAULT_HOUSE_SIZE, ge=HOUSE_MIN_SIZE, le=20, description="House height in tiles")
    door_count: int = Field(1, ge=1, le=4, description="Number of doors on the bottom wall")
    window_count: int = Field(3, ge=0, le=20, description="Number of windows")
    seed: Optional[int] = Field(None, description="Seed for a reproducible layout")


GeneratorArgs = Annotated[
    Union[TileArgs, BoxArgs, ClearArgs, DecorArgs, FenceArgs, PartialFenceArgs, HouseArgs],
    Field(discriminator="kind"),
]

_ARGS_ADAPTER: TypeAdapter = TypeAdapter(GeneratorArgs)


def parse_generator_args(payload: Dict) -> BaseModel:
    """Validate a raw payload into one of the ``GeneratorArgs`` records."""

    return _ARGS_ADAPTER.validate_python(payload)


# ============================================================================
# Generators
# ============================================================================


class FeatureGenerator(ABC):
    """Produces a selection-sized buffer from one argument record."""

    kind: ClassVar[str]

    @abstractmethod
    def generate(self, section: GeneratorInput, args: BaseModel) -> PlacementBuffer:
        """Build the buffer; raise GeneratorBoundsError when args do not fit."""


class TilePlacer(FeatureGenerator):
    kind = "tile"

    def generate(self, section: GeneratorInput, args: TileArgs) -> PlacementBuffer:
        section.check_area(args.x, args.y, 1, 1, "Tile")
        grid = section.blank()
        grid[args.y][args.x] = args.tile_id
        return PlacementBuffer(
            name="PlaceTile",
            description=f"Placed tile {args.tile_id} at ({args.x}, {args.y})",
            grid=grid,
        )


class BoxPlacer(FeatureGenerator):
    kind = "box"

    def generate(self, section: GeneratorInput, args: BoxArgs) -> PlacementBuffer:
        section.check_area(args.x, args.y, args.width, args.height, "Box")
        grid = section.blank()
        for row in range(args.height):
            for col in range(args.width):
                edge = row in (0, args.height - 1) or col in (0, args.width - 1)
                if args.filled or edge:
                    grid[args.y + row][args.x + col] = args.tile_id
        shape = "filled rectangle" if args.filled else "hollow rectangle (outline)"
        return PlacementBuffer(
            name="PlaceBox",
            description=f"{shape} of tile {args.tile_id}, {args.width}x{args.height}",
            grid=grid,
        )


class BoxClearer(FeatureGenerator):
    kind = "clear"

    def generate(self, section: GeneratorInput, args: ClearArgs) -> PlacementBuffer:
        section.check_area(args.x, args.y, args.width, args.height, "Clear area")
        grid = section.blank()
        for row in range(args.y, args.y + args.height):
            for col in range(args.x, args.x + args.width):
                grid[row][col] = CLEAR_TILE
        return PlacementBuffer(
            name="ClearBox",
            description=(
                f"cleared {args.x}, {args.y} in local space with width {args.width} "
                f"and height {args.height}"
            ),
            grid=grid,
        )


class DecorGenerator(FeatureGenerator):
    """Scatters single-cell decor items with a per-tile probability."""

    kind = "decor"

    def generate(self, section: GeneratorInput, args: DecorArgs) -> PlacementBuffer:
        start_x = args.x or 0
        start_y = args.y or 0
        width = args.width if args.width is not None else section.width - start_x
        height = args.height if args.height is not None else section.height - start_y
        if width < 1 or height < 1:
            raise GeneratorBoundsError(
                f"Decor start ({start_x}, {start_y}) lies outside the selection "
                f"({section.width}x{section.height})."
            )
        section.check_area(start_x, start_y, width, height, "Decor area")

        rng = random.Random(args.seed)
        choices = sorted(SCATTER_DECOR)
        grid = section.blank()
        counts: Dict[str, int] = {}
        for row in range(start_y, start_y + height):
            for col in range(start_x, start_x + width):
                if rng.random() < args.density:
                    tile_id = rng.choice(choices)
                    grid[row][col] = tile_id
                    name = SCATTER_DECOR[tile_id]
                    counts[name] = counts.get(name, 0) + 1

        placed = sum(counts.values())
        summary = ", ".join(f"{name}: {count}" for name, count in sorted(counts.items()))
        return PlacementBuffer(
            name="randomDecor",
            description=f"Added {placed} decor tiles. Placed tiles: {summary or 'none'}",
            grid=grid,
        )


class FenceGenerator(FeatureGenerator):
    """Rectangular fence with one gate on the top or bottom edge.

    Corners and edges are picked from a 4-bit mask of which sides a cell
    touches (left, top, right, bottom).
    """

    kind = "fence"

    _MASK_TILES: ClassVar[Dict[int, int]] = {
        0b1100: FENCE_TOP_LEFT,
        0b0110: FENCE_TOP_RIGHT,
        0b1001: FENCE_BOTTOM_LEFT,
        0b0011: FENCE_BOTTOM_RIGHT,
        0b0100: FENCE_HORIZONTAL,
        0b0001: FENCE_HORIZONTAL,
        0b1000: FENCE_LEFT,
        0b0010: FENCE_RIGHT,
    }

    @staticmethod
    def min_selection() -> int:
        return FENCE_MIN_SIZE + FENCE_PADDING * 2

    def generate(self, section: GeneratorInput, args: FenceArgs) -> PlacementBuffer:
        minimum = self.min_selection()
        if section.width < minimum or section.height < minimum:
            raise GeneratorBoundsError(
                f"Selection too small for fence. Minimum required: {minimum}x{minimum} tiles."
            )
        max_width = section.width - FENCE_PADDING * 2
        max_height = section.height - FENCE_PADDING * 2
        if (args.width or 0) > max_width or (args.height or 0) > max_height:
            raise GeneratorBoundsError(
                f"Fence {args.width or '?'}x{args.height or '?'} does not fit inside the selection "
                f"({section.width}x{section.height}) with {FENCE_PADDING}-tile padding."
            )

        rng = random.Random(args.seed)
        width = args.width or rng.randint(FENCE_MIN_SIZE, max_width)
        height = args.height or rng.randint(FENCE_MIN_SIZE, max_height)
        fence_x = rng.randint(FENCE_PADDING, section.width - width - FENCE_PADDING)
        fence_y = rng.randint(FENCE_PADDING, section.height - height - FENCE_PADDING)
        right = fence_x + width - 1
        bottom = fence_y + height - 1

        grid = section.blank()
        for y in range(fence_y, bottom + 1):
            for x in range(fence_x, right + 1):
                mask = (
                    (int(x == fence_x) << 3)
                    | (int(y == fence_y) << 2)
                    | (int(x == right) << 1)
                    | int(y == bottom)
                )
                tile_id = self._MASK_TILES.get(mask)
                if tile_id is not None:
                    grid[y][x] = tile_id

        gate_x = rng.randint(fence_x + 1, right - 1)
        gate_on_top = rng.random() < 0.5
        gate_y = fence_y if gate_on_top else bottom
        grid[gate_y][gate_x] = FENCE_GATE

        return PlacementBuffer(
            name="fence",
            description=f"A {width}x{height} fence with a gate on the {'top' if gate_on_top else 'bottom'} edge",
            grid=grid,
            points_of_interest={
                "top_left": Point(x=fence_x, y=fence_y),
                "bottom_right": Point(x=right, y=bottom),
                "gate": Point(x=gate_x, y=gate_y),
            },
        )


class PartialFenceGenerator(FeatureGenerator):
    """Fence along some edges of the selection, inset by the fence padding.

    Ends that meet another requested edge stay attached. Loose ends are worn
    back by up to a third of the edge, each with probability ``TRIM_CHANCE``.
    A gate goes near the middle of the top edge (else the bottom edge) unless
    that spot was worn away.
    """

    kind = "partial_fence"

    TRIM_CHANCE: ClassVar[float] = 0.4

    def _trim(self, rng: random.Random, length: int) -> int:
        longest = length // 3
        if longest <= 0 or rng.random() > self.TRIM_CHANCE:
            return 0
        return rng.randint(1, longest)

    def generate(self, section: GeneratorInput, args: PartialFenceArgs) -> PlacementBuffer:
        minimum = FENCE_MIN_SIZE + FENCE_PADDING * 2
        if section.width < minimum or section.height < minimum:
            raise GeneratorBoundsError(
                f"Selection too small for fence. Minimum required: {minimum}x{minimum} tiles."
            )

        rng = random.Random(args.seed)
        edges = args.edges
        left = top = FENCE_PADDING
        right = section.width - FENCE_PADDING - 1
        bottom = section.height - FENCE_PADDING - 1
        grid = section.blank()

        if "top" in edges:
            for x in range(left, right + 1):
                grid[top][x] = FENCE_TOP_LEFT if x == left else FENCE_TOP_RIGHT if x == right else FENCE_HORIZONTAL
        if "bottom" in edges:
            for x in range(left, right + 1):
                grid[bottom][x] = (
                    FENCE_BOTTOM_LEFT if x == left else FENCE_BOTTOM_RIGHT if x == right else FENCE_HORIZONTAL
                )
        if "left" in edges:
            for y in range(top, bottom + 1):
                grid[y][left] = FENCE_TOP_LEFT if y == top else FENCE_BOTTOM_LEFT if y == bottom else FENCE_LEFT
        if "right" in edges:
            for y in range(top, bottom + 1):
                grid[y][right] = FENCE_TOP_RIGHT if y == top else FENCE_BOTTOM_RIGHT if y == bottom else FENCE_RIGHT

        # A trim never exceeds a third of its edge, so every edge keeps some fence
        span = right - left + 1
        for row in (top, bottom):
            if ("top" if row == top else "bottom") not in edges:
                continue
            cut_start = 0 if "left" in edges else self._trim(rng, span)
            cut_end = 0 if "right" in edges else self._trim(rng, span)
            for offset in range(cut_start):
                grid[row][left + offset] = EMPTY_TILE
            for offset in range(cut_end):
                grid[row][right - offset] = EMPTY_TILE

        span = bottom - top + 1
        for column in (left, right):
            if ("left" if column == left else "right") not in edges:
                continue
            cut_start = 0 if "top" in edges else self._trim(rng, span)
            cut_end = 0 if "bottom" in edges else self._trim(rng, span)
            for offset in range(cut_start):
                grid[top + offset][column] = EMPTY_TILE
            for offset in range(cut_end):
                grid[bottom - offset][column] = EMPTY_TILE

        points = {"top_left": Point(x=left, y=top), "bottom_right": Point(x=right, y=bottom)}
        gate_edge = "top" if "top" in edges else "bottom" if "bottom" in edges else None
        if gate_edge is not None:
            gate_x = max(FENCE_PADDING + 1, min(section.width - FENCE_PADDING - 2, section.width // 2))
            gate_y = top if gate_edge == "top" else bottom
            if grid[gate_y][gate_x] != EMPTY_TILE:
                grid[gate_y][gate_x] = FENCE_GATE
                points["gate"] = Point(x=gate_x, y=gate_y)

        built = ", ".join(edges) or "none"
        open_sides = [edge for edge in FENCE_EDGES if edge not in edges]
        return PlacementBuffer(
            name="partial_fence",
            description=f"A partial fence on edges: {built}",
            grid=grid,
            points_of_interest=points,
            details={
                "edges": built,
                "open_sides": ", ".join(open_sides) or "none",
                "horizontal_length": str(right - left + 1),
                "vertical_length": str(bottom - top + 1),
                "gate_edge": gate_edge if "gate" in points else "",
            },
        )


class HouseGenerator(FeatureGenerator):
    """House with a two-row roof, walls with windows, and doors on the bottom wall.

    A house keeps a ``HOUSE_PADDING`` border inside the selection and never
    covers house pieces already visible there. A requested position that does
    not fit is replaced by a random free one.
    """

    kind = "house"

    @staticmethod
    def _occupied(section: GeneratorInput) -> Set[Tuple[int, int]]:
        if section.grid is None:
            return set()
        return {
            (x, y)
            for y, row in enumerate(section.grid)
            for x, tile in enumerate(row)
            if tile in HOUSE_PIECES
        }

    @staticmethod
    def _fits(
        section: GeneratorInput, x: int, y: int, width: int, height: int, occupied: Set[Tuple[int, int]]
    ) -> bool:
        if x < HOUSE_PADDING or y < HOUSE_PADDING:
            return False
        if x + width > section.width - HOUSE_PADDING or y + height > section.height - HOUSE_PADDING:
            return False
        return not any((x + dx, y + dy) in occupied for dy in range(height) for dx in range(width))

    def find_position(
        self,
        section: GeneratorInput,
        args: HouseArgs,
        occupied: Set[Tuple[int, int]],
        rng: random.Random,
    ) -> Optional[Tuple[int, int]]:
        """Requested position if it fits, else a random free one (None when full)."""

        if args.x is not None and args.y is not None:
            if self._fits(section, args.x, args.y, args.width, args.height, occupied):
                return args.x, args.y
        candidates = [
            (x, y)
            for y in range(HOUSE_PADDING, section.height - args.height - HOUSE_PADDING + 1)
            for x in range(HOUSE_PADDING, section.width - args.width - HOUSE_PADDING + 1)
            if self._fits(section, x, y, args.width, args.height, occupied)
        ]
        return rng.choice(candidates) if candidates else None

    def generate(self, section: GeneratorInput, args: HouseArgs) -> PlacementBuffer:
        width, height = args.width, args.height
        need_width, need_height = width + HOUSE_PADDING * 2, height + HOUSE_PADDING * 2
        if section.width < need_width or section.height < need_height:
            raise GeneratorBoundsError(
                f"Selection is too small for a {width}x{height} house. "
                f"Minimum required: {need_width}x{need_height} tiles."
            )

        occupied = self._occupied(section)
        rng = random.Random(args.seed)
        position = self.find_position(section, args, occupied, rng)
        if position is None:
            raise GeneratorBoundsError(
                f"Cannot place a {width}x{height} house - no valid space available! "
                f"Selection size: {section.width}x{section.height}, existing house tiles: {len(occupied)}. "
                "Try a smaller house size, or select a larger/different area."
            )
        house_x, house_y = position
        right = house_x + width - 1
        bottom = house_y + height - 1

        style = args.style or rng.choice(("brown", "grey"))
        roof = args.roof or ("red" if style == "grey" else "grey")
        wall_offset = HOUSE_VARIANT_OFFSET if style == "brown" else 0
        roof_offset = 0 if roof == "red" else HOUSE_VARIANT_OFFSET

        grid = section.blank()
        for x in range(house_x, right + 1):
            if x == house_x:
                top_piece, eave_piece = ROOF_TOP_LEFT, ROOF_BOTTOM_LEFT
            elif x == right:
                top_piece, eave_piece = ROOF_TOP_RIGHT, ROOF_BOTTOM_RIGHT
            else:
                top_piece, eave_piece = ROOF_TOP, ROOF_BOTTOM
            grid[house_y][x] = top_piece + roof_offset
            grid[house_y + 1][x] = eave_piece + roof_offset

        # -1 means no chimney
        chimney = rng.randint(-1, width - 1)
        if chimney >= 0:
            grid[house_y][house_x + chimney] = ROOF_CHIMNEY + roof_offset

        interior = range(house_x + 1, right)
        wall_cells: List[Tuple[int, int]] = []
        for y in range(house_y + 2, bottom + 1):
            grid[y][house_x] = WALL_LEFT + wall_offset
            grid[y][right] = WALL_RIGHT + wall_offset
            wall_cells.extend((x, y) for x in interior)
        rng.shuffle(wall_cells)
        windows = set(wall_cells[: args.window_count])
        for x, y in wall_cells:
            grid[y][x] = (WALL_WINDOW if (x, y) in windows else WALL) + wall_offset

        door_columns = list(interior)
        rng.shuffle(door_columns)
        doors = sorted(door_columns[: args.door_count])

        points = {
            "top_left": Point(x=house_x, y=house_y),
            "bottom_right": Point(x=right, y=bottom),
        }
        for index, x in enumerate(doors, start=1):
            grid[bottom][x] = WALL_DOOR + wall_offset
            grid[house_y + 1][x] = ROOF_AWNING + roof_offset
            points[f"door{index}"] = Point(x=x, y=bottom)
        if chimney >= 0:
            points["chimney"] = Point(x=house_x + chimney, y=house_y)

        window_total = sum(row.count(WALL_WINDOW + wall_offset) for row in grid)
        return PlacementBuffer(
            name="House",
            description=(
                f"{style} house with a {roof} roof, {len(doors)} door(s), and {window_total} window(s)"
            ),
            grid=grid,
            points_of_interest=points,
            details={
                "style": style,
                "roof": roof,
                "windows": str(window_total),
                "doors": str(len(doors)),
            },
        )


GENERATORS: Dict[str, FeatureGenerator] = {
    generator.kind: generator
    for generator in (
        TilePlacer(),
        BoxPlacer(),
        BoxClearer(),
        DecorGenerator(),
        FenceGenerator(),
        PartialFenceGenerator(),
        HouseGenerator(),
    )
}


def generate(section: GeneratorInput, args: BaseModel) -> PlacementBuffer:
    """Dispatch ``args`` to the generator registered for its ``kind``."""

    return GENERATORS[args.kind].generate(section, args)
