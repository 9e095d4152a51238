"""Game engine: dice, combat math, encounter state machine and orchestration.

Exports:
    EncounterStateMachine: Travel, dialogue and combat transitions.
    CommandQueue / dispatch: Serialized command intake.
    Game: Session lifecycle (new game, load, save, exit).
"""

from __future__ import annotations

from pixel_rpg.engine.combat import HitResult, compute_damage
from pixel_rpg.engine.commands import CommandQueue, dispatch
from pixel_rpg.engine.dice import DiceRoller, Roller
from pixel_rpg.engine.encounter import MAP_SELECT, EncounterState, EncounterStateMachine
from pixel_rpg.engine.events import Command, CommandOutcome, EncounterEvent, Intent
from pixel_rpg.engine.game import Game


__all__ = [
    "compute_damage",
    "HitResult",
    "Roller",
    "DiceRoller",
    "MAP_SELECT",
    "EncounterState",
    "EncounterStateMachine",
    "EncounterEvent",
    "Intent",
    "Command",
    "CommandOutcome",
    "CommandQueue",
    "dispatch",
    "Game",
]
