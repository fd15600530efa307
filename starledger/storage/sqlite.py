# starledger/storage/sqlite.py
import logging
import sqlite3
from pathlib import Path
from typing import List, Optional, Union

from starledger.config import LedgerConfig
from starledger.core.types import Block
from . import StorageBackend

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


class SQLiteStorage(StorageBackend):
    """SQLite persistent storage for sealed blocks, one row per height."""

    def __init__(self, db_path: Union[str, Path, None] = None):
        if db_path is None:
            env_path = LedgerConfig.from_env().db_path
            db_path = env_path if env_path else Path.cwd() / "starledger.db"

        if str(db_path) == MEMORY:
            self.db_path: Union[str, Path] = MEMORY
        else:
            path = Path(db_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            self.db_path = path.resolve()

        self._conn: Optional[sqlite3.Connection] = None
        self._connect()

    def _connect(self):
        self._conn = sqlite3.connect(str(self.db_path), isolation_level=None)
        if self.db_path != MEMORY:
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_schema()

    def _create_schema(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS blocks (
                height              INTEGER PRIMARY KEY,
                hash                TEXT    NOT NULL,
                previous_block_hash TEXT,
                time                INTEGER NOT NULL,
                body                TEXT    NOT NULL
            )
        """)
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_blocks_hash ON blocks(hash)")

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Storage connection is closed")
        return self._conn

    def append(self, block: Block) -> None:
        if not block.is_sealed:
            raise ValueError("Cannot persist unsealed block")

        self.conn.execute("""
            INSERT INTO blocks (height, hash, previous_block_hash, time, body)
            VALUES (?, ?, ?, ?, ?)
        """, (block.height, block.hash, block.previous_block_hash, block.time, block.body))

    def load_blocks(self) -> List[Block]:
        cursor = self.conn.execute("""
            SELECT height, hash, previous_block_hash, time, body
            FROM blocks ORDER BY height ASC
        """)

        loaded = []
        for height, block_hash, prev, ts, body in cursor:
            loaded.append(Block(
                body=body,
                hash=block_hash,
                height=height,
                time=ts,
                previous_block_hash=prev,
            ))
        logger.debug("Loaded %d blocks from %s", len(loaded), self.db_path)
        return loaded

    def get_block_count(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM blocks").fetchone()[0]

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
