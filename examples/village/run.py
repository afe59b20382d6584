"""
Village Builder

Scripted "agent" session against a 24x16 map: it fences a yard, names it,
scatters decor, builds a house, places loose tree parts (which get pruned),
tries to overwrite the fence with grass, undoes a turn, and saves the map
as JSON to the configured save directory (TILEFORGE_SAVE_DIR).

Every step goes through the same tool surface an LLM agent would call,
so the printed status strings are exactly what the agent would read.

Run: uv run python examples/village/run.py
"""

import asyncio
from typing import Dict, List, Tuple

from tileforge import JsonMapPersistence, LayerEvent, TileEngine, TileToolkit
from tileforge.config import Config

GRID_WIDTH = 24
GRID_HEIGHT = 16
SEED = 7

# Single characters for the ASCII preview
GLYPHS: Dict[str, str] = {
    "ground": ".",
    "fence": "#",
    "gate": "+",
    "tree": "T",
    "path": "=",
    "house": "H",
    "other": "*",
}


def glyph(tile_id: int) -> str:
    if tile_id in (0, 1, 2):
        return GLYPHS["ground"]
    if tile_id == 69:
        return GLYPHS["gate"]
    if tile_id in (44, 45, 46, 56, 58, 68, 70):
        return GLYPHS["fence"]
    if tile_id in (3, 4, 15, 16):
        return GLYPHS["tree"]
    if 39 <= tile_id <= 43:
        return GLYPHS["path"]
    if 48 <= tile_id <= 91:
        return GLYPHS["house"]
    return GLYPHS["other"]


def render(grid: List[List[int]]) -> str:
    return "\n".join("".join(glyph(tile) for tile in row) for row in grid)


def step(toolkit: TileToolkit, name: str, payload: Dict | None = None) -> None:
    print(f"\n>>> {name} {payload or {}}")
    print(toolkit.invoke(name, payload))


async def main():
    Config.validate()
    print(Config.display())

    engine = TileEngine(GRID_WIDTH, GRID_HEIGHT, seed=SEED)
    toolkit = TileToolkit(engine)

    notifications: List[Tuple[str, str]] = []

    def on_layer_event(event: LayerEvent) -> None:
        notifications.append((event.kind.value, event.name))

    engine.add_listener(on_layer_event)

    # Turn 1: build a fenced yard with a path and some decor, then a house next to it
    with toolkit.agent_turn():
        engine.select(2, 2, 10, 8)
        step(toolkit, "fence", {"width": 8, "height": 6, "seed": SEED})
        step(toolkit, "name_layer", {"name": "yard"})
        step(toolkit, "box", {"x": 0, "y": 7, "width": 10, "height": 1, "tile_id": 40})
        step(toolkit, "randomDecor", {"density": 0.15, "x": 2, "y": 2, "width": 6, "height": 4, "seed": SEED})
        engine.select(14, 9, 8, 7)
        step(toolkit, "house", {"style": "brown", "width": 5, "seed": SEED})

    # Turn 2: tree parts placed one at a time are pruned, and grass cannot replace the fence
    with toolkit.agent_turn():
        engine.select(16, 4, 3, 3)
        step(toolkit, "add", {"x": 1, "y": 0, "tile_id": 4})
        step(toolkit, "box", {"x": 1, "y": 1, "width": 1, "height": 1, "tile_id": 16})
        step(toolkit, "select_layer", {"layer_name": "yard"})
        step(toolkit, "box", {"x": 0, "y": 0, "width": 10, "height": 1, "tile_id": 0, "filled": True})

    print("\nMap after two turns:")
    print(render(engine.to_json()))

    # Turn 3: regret the grass and undo everything from this turn
    with toolkit.agent_turn():
        step(toolkit, "ClearBox", {"x": 0, "y": 0, "width": 10, "height": 8})
        step(toolkit, "undo")

    step(toolkit, "list_layers")
    step(toolkit, "get_selection_info")

    print("\nFinal map:")
    print(render(engine.to_json()))
    print(f"\nLayer notifications: {notifications}")

    persistence = JsonMapPersistence()
    await persistence.initialize()
    await persistence.save_map("village", engine.to_json())
    print(f"Saved maps: {await persistence.list_maps()}")
    await persistence.close()


if __name__ == '__main__':
    asyncio.run(main())
