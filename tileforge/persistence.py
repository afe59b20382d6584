"""
MapPersistence interface for saving and loading flattened maps.

Persistence is OPTIONAL: the engine works entirely in memory and only
exchanges plain grids (``TileEngine.to_json()`` / ``load_from_json()``) with
a storage backend.

Two included implementations:
1. InMemoryMapPersistence - dict-based, data lost on exit (tests, prototyping)
2. JsonMapPersistence - one ``{name}.json`` file per map, an array of arrays

Usage pattern:
    persistence = JsonMapPersistence("saved_maps")
    await persistence.initialize()
    await persistence.save_map("village", engine.to_json())
    engine.load_from_json(await persistence.load_map("village"))
    await persistence.close()
"""

import asyncio
import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from .config import Config
from .logging_utils import log_success
from .schemas import MapSnapshot

Grid = List[List[int]]

SAVE_ATTEMPTS = 3
_MAP_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


def _check_name(name: str) -> str:
    if not _MAP_NAME.match(name) or name in (".", ".."):
        raise ValueError(
            f"Invalid map name {name!r}. Use letters, digits, '.', '_' or '-' (no path separators)."
        )
    return name


class MapPersistence(ABC):
    """Abstract storage backend for flattened maps.

    All methods are async so file or network backends never block the
    caller's event loop; the in-memory backend simply returns immediately.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backend (create directories, open connections)."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release backend resources."""
        pass

    @abstractmethod
    async def save_map(self, name: str, grid: Grid) -> None:
        """Store ``grid`` under ``name``, replacing any previous map of that name.

        Raises:
            ValueError: If the name is unusable or the grid is empty
        """
        pass

    @abstractmethod
    async def load_map(self, name: str) -> Optional[Grid]:
        """Return the stored grid, or None when no map has that name."""
        pass

    @abstractmethod
    async def list_maps(self) -> List[str]:
        """Names of all stored maps, sorted."""
        pass


class InMemoryMapPersistence(MapPersistence):
    """Dict-backed storage; grids are copied in and out."""

    def __init__(self):
        self.maps: Dict[str, Grid] = {}

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        # Data is kept so callers can still read after closing
        pass

    async def save_map(self, name: str, grid: Grid) -> None:
        snapshot = MapSnapshot(grid=grid)
        self.maps[_check_name(name)] = [list(row) for row in snapshot.grid]

    async def load_map(self, name: str) -> Optional[Grid]:
        grid = self.maps.get(name)
        return [list(row) for row in grid] if grid is not None else None

    async def list_maps(self) -> List[str]:
        return sorted(self.maps)


class JsonMapPersistence(MapPersistence):
    """File-based storage: ``{base_path}/{name}.json`` holding an array of arrays.

    File I/O runs in a worker thread (``asyncio.to_thread``). Writes that hit
    a transient ``OSError`` are retried a few times before the error
    propagates.
    """

    def __init__(self, base_path: Path | str | None = None):
        self.base_path = Path(base_path) if base_path is not None else Config.SAVE_DIR

    async def initialize(self) -> None:
        await asyncio.to_thread(self.base_path.mkdir, parents=True, exist_ok=True)

    async def close(self) -> None:
        return None

    def _path(self, name: str) -> Path:
        return self.base_path / f"{_check_name(name)}.json"

    async def save_map(self, name: str, grid: Grid) -> None:
        path = self._path(name)
        snapshot = MapSnapshot(grid=grid)
        text = json.dumps(snapshot.grid)

        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(OSError),
            stop=stop_after_attempt(SAVE_ATTEMPTS),
            reraise=True,
        ):
            with attempt:
                await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
                await asyncio.to_thread(path.write_text, text, "utf-8")

        log_success(f"[Persistence] Saved map '{name}' ({snapshot.width}x{snapshot.height}) to {path}")

    async def load_map(self, name: str) -> Optional[Grid]:
        path = self._path(name)
        if not path.exists():
            return None
        payload = await asyncio.to_thread(json.loads, path.read_text("utf-8"))
        return MapSnapshot.model_validate({"grid": payload}).grid

    async def list_maps(self) -> List[str]:
        if not self.base_path.exists():
            return []

        def _scan() -> List[str]:
            return sorted(path.stem for path in self.base_path.glob("*.json"))

        return await asyncio.to_thread(_scan)
