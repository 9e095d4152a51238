"""Pydantic V2 data models for Pixel RPG.

Submodules:
    enums: Enumeration types (EntityCategory, Location, EncounterPhase...)
    entities: Stats, Entity, Player, ChatMessage
    game_state: SaveSlot snapshots and the live GameSession context
"""

from __future__ import annotations

from pixel_rpg.models.entities import ChatMessage, Entity, Player, Stats
from pixel_rpg.models.enums import (
    AutosaveEvent,
    BattleTurn,
    EncounterPhase,
    EntityCategory,
    EventKind,
    Location,
)
from pixel_rpg.models.game_state import GameSession, SaveSlot


__all__ = [
    # Enums
    "EntityCategory",
    "Location",
    "EncounterPhase",
    "BattleTurn",
    "AutosaveEvent",
    "EventKind",
    # Entities
    "Stats",
    "Entity",
    "Player",
    "ChatMessage",
    # Game state
    "SaveSlot",
    "GameSession",
]
