"""
Blob storage backends.

The stores persist their state as JSON blobs keyed by a logical name.
Storage is injected, so the stores run against SQLite in the dashboard
and against memory in tests.
"""

import aiosqlite
import os
from pathlib import Path
from contextlib import asynccontextmanager
from typing import Dict, Optional, Protocol
import logging

# Configure logging
logger = logging.getLogger(__name__)

# Database path
DATABASE_DIR = Path(__file__).parent.parent.parent / "data"
DATABASE_PATH = DATABASE_DIR / "gem_scanner.db"


def get_database_path() -> Path:
    """Resolve the database path, honouring DATABASE_PATH from the environment."""
    configured = os.getenv("DATABASE_PATH")
    return Path(configured) if configured else DATABASE_PATH


class BlobStorage(Protocol):
    """Read/write a serialized blob by key."""

    async def read(self, key: str) -> Optional[str]:
        ...

    async def write(self, key: str, value: str) -> None:
        ...


class MemoryStorage:
    """Dictionary-backed storage."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.blobs: Dict[str, str] = dict(initial or {})

    async def read(self, key: str) -> Optional[str]:
        return self.blobs.get(key)

    async def write(self, key: str, value: str) -> None:
        self.blobs[key] = value


class SqliteStorage:
    """
    SQLite-backed storage using a single key/value table.

    Usage:
        storage = SqliteStorage(path)
        await storage.init()
        await storage.write("stock_alerts", "[]")
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else get_database_path()

    @asynccontextmanager
    async def connection(self):
        """Async context manager for database connections."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self.path))
        db.row_factory = aiosqlite.Row
        try:
            yield db
        finally:
            await db.close()

    async def init(self) -> None:
        """Create the key/value table if it does not exist."""
        logger.info(f"Initializing storage at {self.path}...")

        async with self.connection() as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            await db.commit()

        logger.info("Storage initialized successfully")

    async def read(self, key: str) -> Optional[str]:
        async with self.connection() as db:
            async with db.execute(
                "SELECT value FROM kv_store WHERE key = ?",
                (key,)
            ) as cursor:
                row = await cursor.fetchone()
                return row['value'] if row else None

    async def write(self, key: str, value: str) -> None:
        async with self.connection() as db:
            await db.execute(
                """
                INSERT INTO kv_store (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, value)
            )
            await db.commit()

    async def exists(self) -> bool:
        """Check if the database file exists."""
        return self.path.exists()
