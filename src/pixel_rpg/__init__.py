"""Pixel RPG core.

A roster of generated characters, a configurable game world and a
turn-based adventure loop (travel, dialogue, combat) with save slots.

Subpackages:
    core: Configuration, constants, exceptions and logging.
    models: Entities, player, save slots and the session context.
    storage: Key/value backends, legacy migration and the persistence engine.
    library: Entity library, world configuration, labels and the Workshop.
    saves: Save slots, autosave and bundle import/export.
    generation: Content generation service.
    engine: Encounter state machine and the Game orchestrator.
"""

from __future__ import annotations

# Core
from pixel_rpg.core.config import Settings, get_settings
from pixel_rpg.core.exceptions import PixelRpgError

# Engine
from pixel_rpg.engine.encounter import EncounterStateMachine
from pixel_rpg.engine.game import Game

# Models
from pixel_rpg.models import (
    EntityCategory,
    Entity,
    GameSession,
    Location,
    Player,
    SaveSlot,
    Stats,
)


__version__ = "0.1.0"
__author__ = "Pixel RPG Team"

__all__ = [
    # Core
    "Settings",
    "get_settings",
    "PixelRpgError",
    # Models
    "Stats",
    "Entity",
    "EntityCategory",
    "Player",
    "Location",
    "SaveSlot",
    "GameSession",
    # Engine
    "EncounterStateMachine",
    "Game",
    "__version__",
    "__author__",
]
