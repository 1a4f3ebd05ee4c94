"""SQLite-backed persistent key-value medium for the local backend.

Key layout:
- ``memory:{id}``          collection descriptor
- ``node:{id}:{path}``     node record
"""

import json
from pathlib import Path
from typing import Any

import aiosqlite

from mmp.core.logging import get_logger

logger = get_logger("memory.storage")

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def collection_key(memory_id: str) -> str:
    return f"memory:{memory_id}"


def node_key_prefix(memory_id: str) -> str:
    return f"node:{memory_id}:"


def node_key(memory_id: str, path: str) -> str:
    return f"{node_key_prefix(memory_id)}{path}"


class SQLiteKVStore:
    """JSON documents keyed by string, one row per key."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self.db_path)
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()
        logger.info(f"Connected to local store: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Local store not connected. Call connect() first.")
        return self._conn

    async def get(self, key: str) -> dict[str, Any] | None:
        async with self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)) as cursor:
            row = await cursor.fetchone()
            return json.loads(row[0]) if row else None

    async def set(self, key: str, value: dict[str, Any]) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        await self.conn.execute(
            """INSERT INTO kv (key, value) VALUES (?, ?)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value""",
            (key, payload),
        )
        await self.conn.commit()

    async def delete(self, key: str) -> bool:
        """Remove a key. Returns False when it was already absent."""
        cursor = await self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        await self.conn.commit()
        return cursor.rowcount > 0

    async def items(self, prefix: str) -> list[tuple[str, dict[str, Any]]]:
        """All entries whose key starts with prefix, ordered by key."""
        # substr() avoids LIKE wildcard escaping for '%' and '_' in paths
        results = []
        async with self.conn.execute(
            "SELECT key, value FROM kv WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix),
        ) as cursor:
            async for row in cursor:
                results.append((row[0], json.loads(row[1])))
        return results
