"""Save slots, previews and autosave.

A save is always a complete snapshot: it is built and serialized in full
before anything is written, so a slot either holds a consistent session or
keeps its previous content. Slot 1 doubles as the autosave slot.
"""

from __future__ import annotations

import asyncio
from typing import NamedTuple

from pydantic import ValidationError as PydanticValidationError

from pixel_rpg.core.config import GameSettings
from pixel_rpg.core.constants import AUTOSAVE_SLOT
from pixel_rpg.core.exceptions import PersistenceError, SlotEmptyError, ValidationError
from pixel_rpg.core.logging import get_logger
from pixel_rpg.models.entities import Entity, Player
from pixel_rpg.models.enums import AutosaveEvent, Location
from pixel_rpg.models.game_state import GameSession, SaveSlot
from pixel_rpg.storage import keys
from pixel_rpg.storage.engine import PersistenceEngine
from pixel_rpg.storage.migrations import normalize_save_slot


logger = get_logger(__name__)


class LoadedGame(NamedTuple):
    """Independent copies of a saved session's parts."""

    player: Player
    world_npcs: list[Entity]
    world_enemies: list[Entity]
    location: Location | None


class SaveManager:
    """Reads and writes numbered save slots.

    Args:
        engine: Persistence engine.
        settings: Game settings (slot count, autosave default).
    """

    def __init__(self, engine: PersistenceEngine, settings: GameSettings) -> None:
        self._engine = engine
        self._settings = settings
        self._previews: dict[int, SaveSlot | None] = dict.fromkeys(self.slots)
        self._autosave = settings.autosave_default
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def slots(self) -> range:
        return range(1, self._settings.save_slot_count + 1)

    def _check_slot(self, slot: int) -> None:
        if slot not in self.slots:
            raise ValidationError(
                f"Save slot must be between 1 and {self._settings.save_slot_count}",
                field_name="slot",
                invalid_value=slot,
            )

    async def initialize(self) -> None:
        """Load the autosave flag and every slot preview."""
        await self.load_autosave_setting()
        await self.refresh_previews()

    # =========================================================================
    # Save / Load
    # =========================================================================

    async def save(
        self,
        slot: int,
        player: Player,
        world_npcs: list[Entity],
        world_enemies: list[Entity],
        location: Location | None,
    ) -> SaveSlot:
        """Snapshot a session into a slot.

        Returns:
            The stored snapshot.

        Raises:
            ValidationError: If the slot number is out of range.
            PersistenceError: If the snapshot could not be written.
        """
        self._check_slot(slot)
        snapshot = GameSession(
            player=player,
            world_npcs=world_npcs,
            world_enemies=world_enemies,
            location=location,
        ).snapshot()
        await self._write(slot, snapshot, ticket=None)
        return snapshot

    async def _write(self, slot: int, snapshot: SaveSlot, *, ticket: int | None) -> None:
        name = keys.save_slot_key(slot).name
        record = snapshot.to_record()
        if not await self._engine.set(name, record, ticket=ticket):
            raise PersistenceError(f"Could not write save slot {slot}", key=name)
        current = self._previews.get(slot)
        if current is None or current.timestamp <= snapshot.timestamp:
            self._previews[slot] = snapshot
        logger.info("Game saved", slot=slot)

    async def load(self, slot: int) -> LoadedGame:
        """Load a slot.

        Returns:
            Player, world NPCs, world enemies and location as fresh copies.

        Raises:
            SlotEmptyError: If nothing is saved in the slot.
            PersistenceError: If the slot could not be read or is corrupt.
        """
        snapshot = await self._read_slot(slot)
        if snapshot is None:
            raise SlotEmptyError(f"Save slot {slot} is empty", slot=slot)
        session = GameSession.from_save(snapshot)
        logger.info("Game loaded", slot=slot, location=session.location)
        return LoadedGame(session.player, session.world_npcs, session.world_enemies, session.location)

    async def _read_slot(self, slot: int) -> SaveSlot | None:
        self._check_slot(slot)
        record_key = keys.save_slot_key(slot)
        raw = await self._engine.read_record(record_key, normalize_save_slot)
        if raw is None:
            self._previews[slot] = None
            return None
        try:
            snapshot = SaveSlot.model_validate(raw)
        except PydanticValidationError as exc:
            raise PersistenceError(
                f"Save slot {slot} is corrupted",
                key=record_key.name,
                details={"errors": exc.error_count()},
            ) from exc
        self._previews[slot] = snapshot
        return snapshot

    async def delete(self, slot: int) -> bool:
        """Clear a slot. Returns False if the delete could not be persisted."""
        self._check_slot(slot)
        self._previews[slot] = None
        return await self._engine.delete(keys.save_slot_key(slot).name)

    # =========================================================================
    # Previews
    # =========================================================================

    async def refresh_previews(self) -> dict[int, SaveSlot | None]:
        """Re-read every slot into the preview cache.

        Unreadable slots are logged and shown as empty.
        """
        for slot in self.slots:
            try:
                await self._read_slot(slot)
            except PersistenceError as exc:
                logger.warning("Save slot unreadable", slot=slot, error=str(exc))
                self._previews[slot] = None
        return self.previews()

    def previews(self) -> dict[int, SaveSlot | None]:
        return dict(self._previews)

    def preview(self, slot: int) -> SaveSlot | None:
        self._check_slot(slot)
        return self._previews.get(slot)

    # =========================================================================
    # Autosave
    # =========================================================================

    @property
    def autosave_enabled(self) -> bool:
        return self._autosave

    async def load_autosave_setting(self) -> bool:
        try:
            value = await self._engine.read_record(keys.AUTOSAVE)
        except PersistenceError:
            value = None
        self._autosave = value if isinstance(value, bool) else self._settings.autosave_default
        return self._autosave

    async def set_autosave(self, enabled: bool) -> None:
        self._autosave = enabled
        await self._engine.set(keys.AUTOSAVE.name, enabled)

    def autosave_trigger(self, event: AutosaveEvent, session: GameSession) -> asyncio.Task[None] | None:
        """Checkpoint the live session into the autosave slot.

        The snapshot is taken immediately and written in the background;
        gameplay does not wait for it and failures are only logged.

        Returns:
            The background task, or None when autosave is off.
        """
        if not self._autosave:
            return None
        snapshot = session.snapshot()
        ticket = self._engine.reserve(keys.save_slot_key(AUTOSAVE_SLOT).name)
        task = asyncio.create_task(self._autosave_write(event, snapshot, ticket))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _autosave_write(self, event: AutosaveEvent, snapshot: SaveSlot, ticket: int) -> None:
        try:
            await self._write(AUTOSAVE_SLOT, snapshot, ticket=ticket)
        except PersistenceError as exc:
            logger.warning("Autosave failed", trigger=event.value, error=str(exc))
            return
        logger.debug("Autosaved", trigger=event.value)

    async def flush(self) -> None:
        """Wait for outstanding autosaves and engine writes."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
        await self._engine.flush()

    # =========================================================================
    # Bulk Replacement
    # =========================================================================

    async def replace_slots(self, slots: list[SaveSlot | None]) -> list[int]:
        """Overwrite every slot from an imported list.

        Missing trailing entries and ``None`` clear the slot; entries beyond
        the configured slot count are ignored. The preview cache always
        takes the imported content, even when the store rejects a write, and
        every slot is attempted.

        Returns:
            Slots whose change could not be persisted.
        """
        failed: list[int] = []
        for slot in self.slots:
            snapshot = slots[slot - 1] if slot - 1 < len(slots) else None
            if snapshot is None:
                ok = await self.delete(slot)
            else:
                self._previews[slot] = snapshot
                ok = await self._engine.set(keys.save_slot_key(slot).name, snapshot.to_record())
            if not ok:
                failed.append(slot)
        if failed:
            logger.warning("Imported save slots kept in memory only", slots=failed)
        return failed


__all__ = [
    "SaveManager",
    "LoadedGame",
]
