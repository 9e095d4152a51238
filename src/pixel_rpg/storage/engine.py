"""Persistence engine: ordered, failure-tolerant access to the backend.

The engine is the only component that talks to a ``StorageBackend``. It

* namespaces keys with the configured prefix,
* converts every backend or serialization failure into ``PersistenceError``,
* keeps write-after-write ordering per key, including for fire-and-forget
  writes,
* publishes a storage-error signal instead of raising on failed writes, so
  the game keeps running on in-memory state,
* adopts records stored under legacy key names.

Example:
    >>> engine = PersistenceEngine(MemoryBackend())
    >>> await engine.set("labels", ["Fantasy"])
    True
    >>> await engine.get("labels")
    ['Fantasy']
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

from pixel_rpg.core.constants import DEFAULT_KEY_PREFIX
from pixel_rpg.core.exceptions import PersistenceError
from pixel_rpg.core.logging import get_logger
from pixel_rpg.storage.backends import StorageBackend
from pixel_rpg.storage.keys import RecordKey


logger = get_logger(__name__)

StorageErrorListener = Callable[[PersistenceError], None]
Normalizer = Callable[[Any], Any]


class PersistenceEngine:
    """Async key/value access with ordering and degraded-mode signalling.

    Attributes:
        last_error: Text of the most recent storage failure, for a transient
            user banner. Cleared by ``clear_error``.
        degraded: True after a failed write until the next successful one.
    """

    def __init__(self, backend: StorageBackend, *, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self._backend = backend
        self._prefix = key_prefix
        self._locks: dict[str, asyncio.Lock] = {}
        self._issued: dict[str, int] = {}
        self._committed: dict[str, int] = {}
        self._pending: set[asyncio.Task[bool]] = set()
        self._listeners: list[StorageErrorListener] = []
        self.last_error: str | None = None
        self.degraded = False

    # =========================================================================
    # Signalling
    # =========================================================================

    def add_error_listener(self, listener: StorageErrorListener) -> None:
        """Register a callback invoked on every storage failure."""
        self._listeners.append(listener)

    def remove_error_listener(self, listener: StorageErrorListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def clear_error(self) -> None:
        """Dismiss the storage banner."""
        self.last_error = None

    def _signal(self, error: PersistenceError) -> None:
        self.last_error = error.message
        logger.warning("Storage failure", error=str(error))
        for listener in list(self._listeners):
            try:
                listener(error)
            except Exception:
                logger.exception("Storage error listener failed")

    # =========================================================================
    # Keys
    # =========================================================================

    def full_key(self, name: str) -> str:
        """Apply the namespace prefix to a record name."""
        return f"{self._prefix}{name}"

    def reserve(self, name: str) -> int:
        """Reserve the next write ticket for a key.

        Tickets fix the order of writes at the moment they are requested.
        A write holding an older ticket than one already committed is
        skipped, so a slow early write can never overwrite a later one.
        """
        ticket = self._issued.get(name, 0) + 1
        self._issued[name] = ticket
        return ticket

    def _lock(self, name: str) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[name] = lock
        return lock

    # =========================================================================
    # Primitive Operations
    # =========================================================================

    async def get(self, name: str) -> Any | None:
        """Read a record.

        Args:
            name: Unprefixed record name.

        Returns:
            The stored JSON tree, or None if absent.

        Raises:
            PersistenceError: If the backend failed or the value is unreadable.
        """
        key = self.full_key(name)
        try:
            return await self._backend.get(key)
        except PersistenceError:
            raise
        except Exception as exc:
            error = PersistenceError(f"Failed to read {name}: {exc}", key=key)
            self._signal(error)
            raise error from exc

    async def set(self, name: str, value: Any, *, ticket: int | None = None) -> bool:
        """Write a record.

        Never raises: failures are published through the storage-error
        signal and reported by the return value.

        Args:
            name: Unprefixed record name.
            value: JSON-serializable tree.
            ticket: Ticket from ``reserve``; one is reserved now if omitted.

        Returns:
            True if the write landed or was superseded by a newer write,
            False if it failed.
        """
        if ticket is None:
            ticket = self.reserve(name)
        key = self.full_key(name)

        try:
            payload = json.loads(json.dumps(value))
        except (TypeError, ValueError) as exc:
            self._signal(PersistenceError(f"Cannot serialize {name}: {exc}", key=key))
            return False

        async with self._lock(name):
            if ticket < self._committed.get(name, 0):
                logger.debug("Skipping superseded write", key=key, ticket=ticket)
                return True
            try:
                await self._backend.set(key, payload)
            except Exception as exc:
                self.degraded = True
                self._signal(PersistenceError(f"Failed to write {name}: {exc}", key=key))
                return False
            self._committed[name] = ticket

        self.degraded = False
        logger.debug("Record written", key=key, ticket=ticket)
        return True

    async def delete(self, name: str, *, ticket: int | None = None) -> bool:
        """Delete a record. Same ordering and failure rules as ``set``."""
        if ticket is None:
            ticket = self.reserve(name)
        key = self.full_key(name)

        async with self._lock(name):
            if ticket < self._committed.get(name, 0):
                return True
            try:
                await self._backend.delete(key)
            except Exception as exc:
                self.degraded = True
                self._signal(PersistenceError(f"Failed to delete {name}: {exc}", key=key))
                return False
            self._committed[name] = ticket
        return True

    def schedule_set(self, name: str, value: Any) -> asyncio.Task[bool]:
        """Start a fire-and-forget write.

        The ticket is reserved immediately, so ordering follows call order
        even though the write runs later. ``flush`` awaits the task.
        """
        ticket = self.reserve(name)
        task = asyncio.create_task(self.set(name, value, ticket=ticket))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def flush(self) -> None:
        """Wait for every outstanding fire-and-forget write."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # =========================================================================
    # Migration
    # =========================================================================

    async def read_record(self, record: RecordKey, normalize: Normalizer | None = None) -> Any | None:
        """Read a logical record, falling back to its legacy names.

        When only a legacy key holds data, the value is normalized and
        written back under the current key. Legacy keys are left in place,
        so an interrupted migration simply runs again next time.

        Args:
            record: The logical record to read.
            normalize: Field-rename pass applied to whatever was read.

        Returns:
            The normalized record, or None if no key holds it.

        Raises:
            PersistenceError: If any key involved could not be read. Nothing
                is written in that case.
        """
        value = await self.get(record.name)
        if value is not None:
            return normalize(value) if normalize else value

        adopted: Any | None = None
        source: list[str] = []
        if record.combine_legacy is not None:
            values = [await self.get(name) for name in record.legacy_names]
            if any(v is not None for v in values):
                adopted = record.combine_legacy(values)
                source = [n for n, v in zip(record.legacy_names, values) if v is not None]
        else:
            for legacy_name in record.legacy_names:
                legacy_value = await self.get(legacy_name)
                if legacy_value is not None:
                    adopted = legacy_value
                    source = [legacy_name]
                    break

        if adopted is None:
            return None

        if normalize:
            adopted = normalize(adopted)
        await self.set(record.name, adopted)
        logger.info("Migrated legacy record", record=record.name, legacy_keys=source)
        return adopted


__all__ = [
    "PersistenceEngine",
    "StorageErrorListener",
]
