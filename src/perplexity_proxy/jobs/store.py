"""Key/value storage for deep research job records."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

import aiosqlite

from ..config import settings


class JobStore(Protocol):
    """Text values keyed by transaction id."""

    async def put(self, key: str, value: str) -> None:
        ...

    async def get(self, key: str) -> Optional[str]:
        ...


class SqliteJobStore:
    """SQLite-backed job store."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path else settings.job_store_path
        self._connection: Optional[aiosqlite.Connection] = None

    async def initialize(self):
        """Initialize the database and create tables."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(str(self.db_path))

        await self._connection.executescript(
            """
            CREATE TABLE IF NOT EXISTS job_records (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            """
        )
        await self._connection.commit()

    async def close(self):
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("SqliteJobStore.initialize() must be awaited before use")
        return self._connection

    async def put(self, key: str, value: str) -> None:
        """Store a value, replacing any existing one."""
        connection = self._require_connection()
        await connection.execute(
            """
            INSERT OR REPLACE INTO job_records (key, value, created_at)
            VALUES (?, ?, ?)
            """,
            (key, value, datetime.now(timezone.utc).isoformat()),
        )
        await connection.commit()

    async def get(self, key: str) -> Optional[str]:
        """Get a value by key."""
        connection = self._require_connection()
        async with connection.execute(
            "SELECT value FROM job_records WHERE key = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
        return row[0] if row else None
