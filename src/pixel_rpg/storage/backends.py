"""Key/value storage backends for Pixel RPG.

Every backend implements the same small async contract: ``get``, ``set``
and ``delete`` over JSON-serializable trees in a single namespace. The
PersistenceEngine sits on top and is the only caller; backends are free to
raise whatever their driver raises.

Backends:
    MemoryBackend: Process-local dict, values stored as JSON text.
    SqliteBackend: Single key/value table in a SQLite file.
    RedisBackend: redis.asyncio client, values stored as JSON strings.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Generator, Protocol, runtime_checkable

import redis.asyncio as redis

from pixel_rpg.core.logging import get_logger


if TYPE_CHECKING:
    from pixel_rpg.core.config import StorageSettings

logger = get_logger(__name__)


@runtime_checkable
class StorageBackend(Protocol):
    """Async string-keyed store over JSON-serializable values."""

    async def get(self, key: str) -> Any | None:
        """Return the stored value, or None if the key is absent."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store a value under a key, replacing any previous value."""
        ...

    async def delete(self, key: str) -> None:
        """Remove a key. Deleting an absent key is not an error."""
        ...

    async def close(self) -> None:
        """Release any underlying connections."""
        ...


# =============================================================================
# In-Memory
# =============================================================================


class MemoryBackend:
    """Dictionary-backed store.

    Values are kept as JSON text so callers never share mutable state with
    the store, the same as with a real backend.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def close(self) -> None:
        return None

    def keys(self) -> list[str]:
        """List stored keys (test and debugging helper)."""
        return list(self._data)


# =============================================================================
# SQLite
# =============================================================================


class SqliteBackend:
    """SQLite key/value store.

    Blocking sqlite3 calls run in a worker thread so the event loop is never
    stalled by disk I/O. Each call opens its own connection.

    Database location defaults to ``data/pixel_rpg.db``.
    """

    def __init__(self, db_path: str | Path) -> None:
        """Initialize the database file and schema.

        Args:
            db_path: Path to the database file.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()
        logger.info("SQLite backend initialized", path=str(self.db_path))

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with commit/rollback handling."""
        conn = sqlite3.connect(str(self.db_path))
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    def _get_sync(self, key: str) -> Any | None:
        with self._get_connection() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return json.loads(row[0])

    def _set_sync(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, payload, datetime.now().isoformat()),
            )

    def _delete_sync(self, key: str) -> None:
        with self._get_connection() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

    async def get(self, key: str) -> Any | None:
        return await asyncio.to_thread(self._get_sync, key)

    async def set(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._set_sync, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete_sync, key)

    async def close(self) -> None:
        return None


# =============================================================================
# Redis
# =============================================================================


class RedisBackend:
    """Redis-backed store using the asyncio client.

    Args:
        client: An existing ``redis.asyncio.Redis`` (or compatible) client.
            It must be created with ``decode_responses=True``.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisBackend:
        # decode_responses=True => strings in/out instead of bytes
        return cls(redis.Redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> Any | None:
        raw = await self._client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        await self._client.set(key, json.dumps(value))

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def close(self) -> None:
        await self._client.aclose()


def create_backend(settings: StorageSettings) -> StorageBackend:
    """Build the backend selected in the storage settings."""
    if settings.backend == "memory":
        return MemoryBackend()
    if settings.backend == "redis":
        return RedisBackend.from_url(settings.redis_url)
    return SqliteBackend(settings.database_path)


__all__ = [
    "StorageBackend",
    "MemoryBackend",
    "SqliteBackend",
    "RedisBackend",
    "create_backend",
]
