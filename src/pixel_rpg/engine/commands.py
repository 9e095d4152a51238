"""Command queue in front of the encounter state machine.

The presentation layer submits discrete commands; the queue runs them one
at a time and waits for background work (enemy counter-attacks) to settle
between commands, so intents are queued rather than rejected. Rejections
that still happen are logged and reported, never raised.
"""

from __future__ import annotations

import asyncio
from collections import deque

from pixel_rpg.core.exceptions import InvalidTransitionError, ValidationError
from pixel_rpg.core.logging import get_logger
from pixel_rpg.engine.encounter import EncounterStateMachine
from pixel_rpg.engine.events import Command, CommandOutcome, Intent
from pixel_rpg.models.enums import Location


logger = get_logger(__name__)

OUTCOME_HISTORY_LIMIT = 100


async def dispatch(machine: EncounterStateMachine, command: Command) -> CommandOutcome:
    """Run one command against the machine, converting rejections.

    Args:
        machine: Target state machine.
        command: The command to run.

    Returns:
        Outcome with ``accepted=False`` if the intent was rejected.
    """
    try:
        match command.intent:
            case Intent.TRAVEL:
                result = await machine.travel(Location(command.argument))
            case Intent.START_DIALOGUE:
                result = machine.start_dialogue()
            case Intent.SEND_MESSAGE:
                result = await machine.send_dialogue_message(str(command.argument or ""))
            case Intent.END_DIALOGUE:
                result = machine.end_dialogue()
            case Intent.ATTACK:
                result = machine.attack()
            case Intent.HEAL:
                result = machine.heal()
            case Intent.REST:
                result = machine.rest_at_town()
            case Intent.RETURN_TO_MAP:
                result = machine.return_to_map()
    except (InvalidTransitionError, ValidationError) as exc:
        logger.info("Command rejected", intent=command.intent.value, error=exc.message)
        return CommandOutcome(command, accepted=False, error=exc.message)
    except ValueError as exc:
        logger.info("Command rejected", intent=command.intent.value, error=str(exc))
        return CommandOutcome(command, accepted=False, error=str(exc))
    return CommandOutcome(command, accepted=True, result=result)


class CommandQueue:
    """FIFO of user commands consumed by a single worker task.

    ``RETURN_TO_MAP`` bypasses the queue: it runs at once and discards
    everything still waiting. A player defeat also empties the queue.
    Only the most recent ``history`` outcomes are kept.
    """

    def __init__(self, machine: EncounterStateMachine, *, history: int = OUTCOME_HISTORY_LIMIT) -> None:
        self._machine = machine
        self._queue: deque[Command] = deque()
        self._worker: asyncio.Task[None] | None = None
        self.outcomes: deque[CommandOutcome] = deque(maxlen=history)
        machine.add_defeat_listener(self.clear)

    def __len__(self) -> int:
        return len(self._queue)

    def submit(self, command: Command) -> None:
        """Queue a command for execution."""
        if command.intent is Intent.RETURN_TO_MAP:
            self.clear()
            self._machine.return_to_map()
            self.outcomes.append(CommandOutcome(command, accepted=True))
            return
        self._queue.append(command)
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._drain())

    def clear(self) -> None:
        """Drop every queued command."""
        if self._queue:
            logger.info("Command queue cleared", dropped=len(self._queue))
        self._queue.clear()

    async def _drain(self) -> None:
        while self._queue:
            await self._machine.wait_idle()
            if not self._queue:
                break
            command = self._queue.popleft()
            self.outcomes.append(await dispatch(self._machine, command))

    async def join(self) -> None:
        """Wait until the queue is empty and the machine is idle."""
        while self._worker is not None and not self._worker.done():
            await self._worker
        await self._machine.wait_idle()


__all__ = [
    "OUTCOME_HISTORY_LIMIT",
    "dispatch",
    "CommandQueue",
]
