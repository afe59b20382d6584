"""
Tileforge Configuration

Loads configuration from environment variables with sensible defaults.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Grid geometry
    GRID_WIDTH: int = int(os.getenv("TILEFORGE_GRID_WIDTH", "40"))
    GRID_HEIGHT: int = int(os.getenv("TILEFORGE_GRID_HEIGHT", "25"))
    TILE_SIZE: int = int(os.getenv("TILEFORGE_TILE_SIZE", "16"))

    # Structural pruning scans the changed-cell bounding box grown by this margin
    PRUNE_MARGIN: int = int(os.getenv("TILEFORGE_PRUNE_MARGIN", "2"))

    # Optional JSON file mapping tile id -> tile name
    TILE_DICTIONARY_PATH: str | None = os.getenv("TILEFORGE_TILE_DICTIONARY")

    # Persistence
    SAVE_DIR: Path = Path(os.getenv("TILEFORGE_SAVE_DIR", "saved_maps"))

    # Logging
    VERBOSE: bool = bool(os.getenv("TILEFORGE_VERBOSE"))

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors for unusable values."""
        if cls.GRID_WIDTH < 1 or cls.GRID_HEIGHT < 1:
            raise ValueError(
                "TILEFORGE_GRID_WIDTH and TILEFORGE_GRID_HEIGHT must both be at least 1 "
                f"(got {cls.GRID_WIDTH}x{cls.GRID_HEIGHT})"
            )

        if cls.PRUNE_MARGIN < 0:
            raise ValueError(
                f"TILEFORGE_PRUNE_MARGIN cannot be negative (got {cls.PRUNE_MARGIN})"
            )

        if cls.TILE_DICTIONARY_PATH and not Path(cls.TILE_DICTIONARY_PATH).is_file():
            raise ValueError(
                f"TILEFORGE_TILE_DICTIONARY points at a missing file: {cls.TILE_DICTIONARY_PATH}. "
                "Unset it to use the built-in palette."
            )

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "Tileforge Configuration:",
            f"  Grid: {cls.GRID_WIDTH}x{cls.GRID_HEIGHT} tiles ({cls.TILE_SIZE}px)",
            f"  Prune margin: {cls.PRUNE_MARGIN}",
            f"  Tile dictionary: {cls.TILE_DICTIONARY_PATH or 'built-in'}",
            f"  Save directory: {cls.SAVE_DIR}",
            f"  Verbose: {cls.VERBOSE}",
        ]
        return "\n".join(lines)
