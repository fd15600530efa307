# starledger/storage/__init__.py
"""
Storage backends for persisting the chain. The in-memory chain stays authoritative;
a backend only mirrors committed blocks and replays them on startup.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Union

from starledger.core.types import Block


class StorageBackend(ABC):
    """Abstract base for all persistent storage implementations."""

    @abstractmethod
    def append(self, block: Block) -> None:
        pass

    @abstractmethod
    def load_blocks(self) -> List[Block]:
        """All persisted blocks in height order, exactly as stored (no integrity checks)."""

    @abstractmethod
    def close(self) -> None:
        pass


def create_storage(uri: Union[str, Path]) -> StorageBackend:
    """
    Build a backend from a URI. Accepted forms:
      sqlite:///abs/path.db, sqlite://relative/path.db, sqlite://:memory:
    A bare filesystem path is treated as a SQLite file.
    """
    from .sqlite import SQLiteStorage

    if isinstance(uri, Path):
        return SQLiteStorage(uri)

    stripped = uri.strip()
    if not stripped:
        raise ValueError("Empty storage URI")

    if stripped.startswith("sqlite://"):
        raw_path = stripped[len("sqlite://"):]
        if raw_path == ":memory:":
            return SQLiteStorage(":memory:")
        if not raw_path:
            raise ValueError(f"Missing database path in storage URI: {uri}")
        return SQLiteStorage(Path(raw_path))

    if "://" in stripped:
        raise ValueError(f"Unsupported storage URI: {uri}")

    return SQLiteStorage(Path(stripped))


from .sqlite import SQLiteStorage

__all__ = ["StorageBackend", "create_storage", "SQLiteStorage"]
