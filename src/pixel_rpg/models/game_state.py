"""Session and save-slot models for Pixel RPG.

Models:
    SaveSlot: A complete, immutable point-in-time snapshot of a session.
    GameSession: The live, mutable session context shared by the
        orchestration layer and the encounter state machine.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pixel_rpg.models.entities import Entity, Player
from pixel_rpg.models.enums import Location


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


class SaveSlot(BaseModel):
    """Snapshot of a playable session stored in a numbered slot.

    Attributes:
        timestamp: When the snapshot was taken.
        player: Player state at save time.
        world_npcs: NPCs populating the world.
        world_enemies: Enemies populating the world.
        location: Where the player was, or None on the map screen.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    timestamp: datetime = Field(default_factory=_now)
    player: Player
    world_npcs: tuple[Entity, ...] = ()
    world_enemies: tuple[Entity, ...] = ()
    location: Location | None = None

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        return self.model_dump(mode="json", by_alias=True)


class GameSession(BaseModel):
    """Live session context.

    Owned by the orchestration layer and passed by reference to the
    components that act on it. The world lists are value copies taken from
    the library when the game starts.

    Attributes:
        player: The player being controlled.
        world_npcs: NPCs that can be met in town.
        world_enemies: Enemies that can be met in the forest.
        location: Current location, or None on the map screen.
    """

    model_config = ConfigDict(validate_assignment=True)

    player: Player
    world_npcs: list[Entity] = Field(default_factory=list)
    world_enemies: list[Entity] = Field(default_factory=list)
    location: Location | None = None

    def snapshot(self) -> SaveSlot:
        """Take a deep, immutable snapshot of the current state."""
        return SaveSlot(
            player=self.player.model_copy(deep=True),
            world_npcs=tuple(e.copy_for_world() for e in self.world_npcs),
            world_enemies=tuple(e.copy_for_world() for e in self.world_enemies),
            location=self.location,
        )

    @classmethod
    def from_save(cls, slot: SaveSlot) -> GameSession:
        """Rebuild a live session from a snapshot without aliasing it."""
        return cls(
            player=slot.player.model_copy(deep=True),
            world_npcs=[e.copy_for_world() for e in slot.world_npcs],
            world_enemies=[e.copy_for_world() for e in slot.world_enemies],
            location=slot.location,
        )


__all__ = [
    "SaveSlot",
    "GameSession",
]
