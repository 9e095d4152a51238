"""Persistence layer: backends, record keys, migrations and the engine.

Exports:
    StorageBackend: Backend protocol (async get/set/delete).
    MemoryBackend, SqliteBackend, RedisBackend: Backend implementations.
    create_backend: Build the backend chosen in StorageSettings.
    PersistenceEngine: Ordered, failure-tolerant record access.
"""

from __future__ import annotations

from pixel_rpg.storage.backends import (
    MemoryBackend,
    RedisBackend,
    SqliteBackend,
    StorageBackend,
    create_backend,
)
from pixel_rpg.storage.engine import PersistenceEngine, StorageErrorListener
from pixel_rpg.storage.keys import RecordKey, save_slot_key


__all__ = [
    "StorageBackend",
    "MemoryBackend",
    "SqliteBackend",
    "RedisBackend",
    "create_backend",
    "PersistenceEngine",
    "StorageErrorListener",
    "RecordKey",
    "save_slot_key",
]
