"""Adventure log entries and player commands."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pixel_rpg.models.enums import EventKind


@dataclass(frozen=True)
class EncounterEvent:
    """One line of the player-facing adventure log."""

    kind: EventKind
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))


class Intent(StrEnum):
    """Discrete user intents accepted by the encounter state machine."""

    TRAVEL = "travel"
    START_DIALOGUE = "start_dialogue"
    SEND_MESSAGE = "send_message"
    END_DIALOGUE = "end_dialogue"
    ATTACK = "attack"
    HEAL = "heal"
    REST = "rest"
    RETURN_TO_MAP = "return_to_map"


@dataclass(frozen=True)
class Command:
    """A user intent plus its argument (destination, chat text)."""

    intent: Intent
    argument: Any = None


@dataclass(frozen=True)
class CommandOutcome:
    """Result of dispatching one command.

    Attributes:
        command: The dispatched command.
        accepted: False if the state machine rejected it.
        result: Whatever the intent returned.
        error: Rejection message, if any.
    """

    command: Command
    accepted: bool
    result: Any = None
    error: str | None = None


__all__ = [
    "EncounterEvent",
    "Intent",
    "Command",
    "CommandOutcome",
]
