"""Enumeration types for Pixel RPG.

These enums are the shared vocabulary between the library, the save
format and the encounter state machine. Their values are what lands in
persisted JSON, so renaming a member is a schema change.
"""

from __future__ import annotations

from enum import StrEnum


class EntityCategory(StrEnum):
    """Kind of generated character.

    NPCs populate the town, enemies the forest. Heroes are character
    origins for the player and never join the world.
    """

    NPC = "NPC"
    ENEMY = "ENEMY"
    HERO = "HERO"

    @property
    def is_world_eligible(self) -> bool:
        """Whether entities of this category may be active in the world."""
        return self is not EntityCategory.HERO


class Location(StrEnum):
    """Places the player can travel to from the map."""

    TOWN = "TOWN"
    FOREST = "FOREST"


class EncounterPhase(StrEnum):
    """What the player is doing at the current location."""

    IDLE = "IDLE"
    DIALOGUE = "DIALOGUE"
    BATTLE = "BATTLE"


class BattleTurn(StrEnum):
    """Whose move it is during a battle."""

    PLAYER = "PLAYER"
    ENEMY = "ENEMY"


class AutosaveEvent(StrEnum):
    """Transitions into settled states that trigger an autosave."""

    ARRIVED_TOWN = "arrived_town"
    ARRIVED_FOREST = "arrived_forest"
    EXIT_TO_MENU = "exit_to_menu"


class EventKind(StrEnum):
    """Category of an adventure log entry."""

    INFO = "info"
    TRAVEL = "travel"
    ENCOUNTER = "encounter"
    DIALOGUE = "dialogue"
    COMBAT = "combat"
    VICTORY = "victory"
    DEFEAT = "defeat"
    REST = "rest"
    SYSTEM = "system"


__all__ = [
    "EntityCategory",
    "Location",
    "EncounterPhase",
    "BattleTurn",
    "AutosaveEvent",
    "EventKind",
]
