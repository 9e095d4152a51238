r"""Encounter state machine: travel, dialogue and turn-based combat.

States::

    MAP_SELECT --travel--> TOWN/IDLE   --start_dialogue--> TOWN/DIALOGUE
                       \-> FOREST/IDLE --enemy drawn-----> FOREST/BATTLE

``return_to_map`` is accepted from anywhere and always wins.

Concurrency rules:

* Every transition reads the authoritative current state when it decides;
  nothing is computed from values captured before an ``await``.
* Only one asynchronous operation (arrival draw, dialogue reply, enemy
  counter-attack) may be pending at a time. While one is pending, every
  intent except ``return_to_map`` raises ``InvalidTransitionError``.
* Each pending operation remembers the context epoch it was issued in.
  Navigation bumps the epoch, so a late result lands in a context that no
  longer exists and is dropped.

Example:
    >>> machine = EncounterStateMachine(session, settings, generator)
    >>> await machine.travel(Location.FOREST)
    >>> machine.state.phase
    <EncounterPhase.BATTLE: 'BATTLE'>
    >>> await machine.attack()
    >>> await machine.wait_idle()
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pixel_rpg.core.config import GameSettings
from pixel_rpg.core.constants import PLAYER_SPEAKER, SILENCE_MARKER
from pixel_rpg.core.exceptions import GenerationError, InvalidTransitionError, ValidationError
from pixel_rpg.core.logging import get_logger
from pixel_rpg.engine.combat import HitResult, compute_damage
from pixel_rpg.engine.dice import DiceRoller, Roller
from pixel_rpg.engine.events import EncounterEvent
from pixel_rpg.generation.service import GenerationService
from pixel_rpg.models.entities import ChatMessage, Entity
from pixel_rpg.models.enums import AutosaveEvent, BattleTurn, EncounterPhase, EventKind, Location
from pixel_rpg.models.game_state import GameSession


logger = get_logger(__name__)

MAP_SELECT = "MAP_SELECT"

AutosaveHook = Callable[[AutosaveEvent, GameSession], Any]

ARRIVAL_AUTOSAVE = {
    Location.TOWN: AutosaveEvent.ARRIVED_TOWN,
    Location.FOREST: AutosaveEvent.ARRIVED_FOREST,
}

EMPTY_POPULATION_MESSAGES = {
    Location.TOWN: "The town is quiet. Nobody is around.",
    Location.FOREST: "The forest is silent.",
}


@dataclass(frozen=True)
class EncounterState:
    """Read-only view of the machine's current state.

    Attributes:
        location: TOWN, FOREST, or None on the map screen.
        phase: IDLE, DIALOGUE or BATTLE.
        npc: NPC present in town, if any.
        enemy: Enemy being fought, if any.
        enemy_hp: Enemy's current HP (0 outside battle).
        turn: Whose turn it is in battle.
        pending: Name of the pending async operation, if any.
        epoch: Context counter; changes on every navigation.
    """

    location: Location | None
    phase: EncounterPhase
    npc: Entity | None
    enemy: Entity | None
    enemy_hp: int
    turn: BattleTurn
    pending: str | None
    epoch: int

    @property
    def label(self) -> str:
        if self.location is None:
            return MAP_SELECT
        return f"{self.location.value}/{self.phase.value}"


class EncounterStateMachine:
    """Single-threaded owner of the encounter state.

    Args:
        session: Live session context (player and world), shared by reference.
        settings: Game balance settings.
        generator: Dialogue reply provider.
        roller: Random source; defaults to ``DiceRoller``.
        autosave: Called with the trigger and session on settled arrivals.
    """

    def __init__(
        self,
        session: GameSession,
        settings: GameSettings,
        generator: GenerationService,
        *,
        roller: Roller | None = None,
        autosave: AutosaveHook | None = None,
    ) -> None:
        self._session = session
        self._settings = settings
        self._generator = generator
        self._roller = roller or DiceRoller()
        self._autosave = autosave

        self._phase = EncounterPhase.IDLE
        self._npc: Entity | None = None
        self._enemy: Entity | None = None
        self._enemy_hp = 0
        self._turn = BattleTurn.PLAYER
        self._chat: list[ChatMessage] = []
        self._events: list[EncounterEvent] = []
        self._epoch = 0
        self._pending: str | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._defeat_listeners: list[Callable[[], None]] = []
        self._closed = False

    # =========================================================================
    # Observation
    # =========================================================================

    @property
    def session(self) -> GameSession:
        return self._session

    @property
    def state(self) -> EncounterState:
        return EncounterState(
            location=self._session.location,
            phase=self._phase,
            npc=self._npc,
            enemy=self._enemy,
            enemy_hp=self._enemy_hp,
            turn=self._turn,
            pending=self._pending,
            epoch=self._epoch,
        )

    @property
    def events(self) -> list[EncounterEvent]:
        """Adventure log, oldest first."""
        return list(self._events)

    @property
    def chat_history(self) -> list[ChatMessage]:
        return list(self._chat)

    @property
    def is_busy(self) -> bool:
        return self._pending is not None

    def add_defeat_listener(self, listener: Callable[[], None]) -> None:
        """Register a callback run when the player is defeated."""
        self._defeat_listeners.append(listener)

    async def wait_idle(self) -> None:
        """Wait until no background operation (counter-attack) is running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _log(self, kind: EventKind, message: str) -> None:
        self._events.append(EncounterEvent(kind, message))

    def _reject(self, intent: str, reason: str) -> InvalidTransitionError:
        state = self.state.label
        logger.info("Intent rejected", intent=intent, state=state, reason=reason)
        return InvalidTransitionError(reason, current_state=state, intent=intent)

    def _require_ready(self, intent: str) -> None:
        if self._closed:
            raise self._reject(intent, "The session has ended")
        if self._pending is not None:
            raise self._reject(intent, f"Waiting for {self._pending}")

    def _spawn(self, coro: Any) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _clear_encounter(self) -> None:
        self._epoch += 1
        self._pending = None
        self._phase = EncounterPhase.IDLE
        self._npc = None
        self._enemy = None
        self._enemy_hp = 0
        self._turn = BattleTurn.PLAYER
        self._chat = []

    def _trigger_autosave(self, event: AutosaveEvent) -> None:
        if self._autosave is None:
            return
        try:
            self._autosave(event, self._session)
        except Exception:
            logger.exception("Autosave hook failed", trigger=event.value)

    # =========================================================================
    # Navigation
    # =========================================================================

    async def travel(self, destination: Location) -> None:
        """Go to town or forest and draw an encounter.

        Raises:
            InvalidTransitionError: If another operation is pending.
        """
        self._require_ready("travel")
        self._clear_encounter()
        self._session.location = destination
        epoch = self._epoch
        self._pending = "arrival"
        self._log(EventKind.TRAVEL, f"You travel to the {destination.value.lower()}.")
        logger.info("Travelling", destination=destination.value, epoch=epoch)

        await asyncio.sleep(self._settings.travel_encounter_delay_seconds)
        if epoch != self._epoch:
            logger.info("Discarding stale arrival", epoch=epoch, current=self._epoch)
            return
        self._pending = None
        self._draw_encounter(destination)
        self._trigger_autosave(ARRIVAL_AUTOSAVE[destination])

    def _draw_encounter(self, location: Location) -> None:
        if location is Location.TOWN:
            population = self._session.world_npcs
        else:
            population = self._session.world_enemies

        if not population:
            self._log(EventKind.INFO, EMPTY_POPULATION_MESSAGES[location])
            return

        entity = self._roller.choose(population)
        if location is Location.TOWN:
            self._npc = entity
            self._log(EventKind.ENCOUNTER, f"You see {entity.name} nearby.")
        else:
            self._enemy = entity
            self._enemy_hp = entity.stats.max_hp
            self._turn = BattleTurn.PLAYER
            self._phase = EncounterPhase.BATTLE
            self._log(EventKind.ENCOUNTER, f"A wild {entity.name} appears!")
            logger.info("Battle started", enemy=entity.name, enemy_hp=self._enemy_hp)

    def return_to_map(self) -> None:
        """Leave the current location. Always accepted."""
        was = self.state.label
        self._clear_encounter()
        self._session.location = None
        self._log(EventKind.TRAVEL, "You return to the world map.")
        logger.info("Returned to map", previous=was, epoch=self._epoch)

    def rest_at_town(self) -> None:
        """Fully restore HP and MP at the inn."""
        self._require_ready("rest")
        if self._session.location is not Location.TOWN or self._phase is not EncounterPhase.IDLE:
            raise self._reject("rest", "You can only rest in town")
        self._session.player.restore()
        self._log(EventKind.REST, "You rest at the inn. HP and MP fully restored.")

    # =========================================================================
    # Dialogue
    # =========================================================================

    def start_dialogue(self) -> None:
        """Begin talking to the NPC present in town."""
        self._require_ready("start_dialogue")
        if (
            self._session.location is not Location.TOWN
            or self._phase is not EncounterPhase.IDLE
            or self._npc is None
        ):
            raise self._reject("start_dialogue", "There is nobody to talk to")
        self._phase = EncounterPhase.DIALOGUE
        self._chat = []
        logger.info("Dialogue started", npc=self._npc.name)

    async def send_dialogue_message(self, text: str) -> str | None:
        """Say something to the NPC and wait for the reply.

        Returns:
            The NPC's reply (or the silence marker), or None if the
            conversation was left before the reply arrived.

        Raises:
            InvalidTransitionError: Outside dialogue or while a reply is pending.
            ValidationError: If the message is blank.
        """
        self._require_ready("send_message")
        if self._phase is not EncounterPhase.DIALOGUE or self._npc is None:
            raise self._reject("send_message", "Not in a conversation")
        message = text.strip()
        if not message:
            raise ValidationError("Message cannot be empty", field_name="text")

        npc = self._npc
        window = self._settings.dialogue_history_window
        prior = self._chat[-window:] if window else []
        self._chat.append(ChatMessage(sender=PLAYER_SPEAKER, text=message))
        epoch = self._epoch
        self._pending = "dialogue_reply"

        try:
            reply = await self._generator.generate_dialogue_reply(
                npc.dialogue_persona,
                prior,
                message,
                npc_name=npc.name,
            )
        except GenerationError as exc:
            logger.warning("Dialogue generation failed", npc=npc.name, error=str(exc))
            reply = SILENCE_MARKER
        finally:
            if epoch == self._epoch:
                self._pending = None

        if epoch != self._epoch:
            logger.info("Discarding stale dialogue reply", npc=npc.name, epoch=epoch)
            return None
        self._chat.append(ChatMessage(sender=npc.name, text=reply))
        return reply

    def end_dialogue(self) -> None:
        """Stop talking; the NPC stays nearby."""
        self._require_ready("end_dialogue")
        if self._phase is not EncounterPhase.DIALOGUE:
            raise self._reject("end_dialogue", "Not in a conversation")
        self._phase = EncounterPhase.IDLE
        self._chat = []

    # =========================================================================
    # Combat
    # =========================================================================

    def _require_player_turn(self, intent: str) -> Entity:
        if self._phase is not EncounterPhase.BATTLE or self._enemy is None:
            raise self._reject(intent, "Not in battle")
        if self._turn is not BattleTurn.PLAYER:
            raise self._reject(intent, "It is not your turn")
        return self._enemy

    def attack(self) -> HitResult:
        """Strike the enemy.

        A surviving enemy counter-attacks after the thinking delay; use
        ``wait_idle`` to wait for it.

        Raises:
            InvalidTransitionError: Outside battle or not the player's turn.
        """
        self._require_ready("attack")
        enemy = self._require_player_turn("attack")
        player = self._session.player

        bonus = self._roller.roll_bonus(self._settings.player_attack_bonus_range)
        damage = compute_damage(player.stats.atk, enemy.stats.defense, bonus)
        self._enemy_hp = max(0, self._enemy_hp - damage)
        hit = HitResult(player.name, damage, bonus, self._enemy_hp)
        self._log(EventKind.COMBAT, f"You hit {enemy.name} for {damage} damage!")

        if self._enemy_hp == 0:
            self._win_battle(enemy)
        else:
            self._begin_enemy_turn()
        return hit

    def heal(self) -> int:
        """Cast Heal. In battle it uses up the player's turn.

        Returns:
            HP actually restored.

        Raises:
            InvalidTransitionError: Not enough MP, or not the player's turn.
        """
        self._require_ready("heal")
        in_battle = self._phase is EncounterPhase.BATTLE
        if in_battle:
            self._require_player_turn("heal")
        player = self._session.player
        cost = self._settings.heal_mp_cost
        if player.stats.mp < cost:
            raise self._reject("heal", "Not enough MP")

        player.spend_mp(cost)
        healed = player.recover_hp(self._settings.heal_amount)
        self._log(EventKind.COMBAT, f"You cast Heal and recover {healed} HP.")
        if in_battle:
            self._begin_enemy_turn()
        return healed

    def _win_battle(self, enemy: Entity) -> None:
        recovered = self._session.player.recover_hp(self._settings.victory_hp_recovery)
        self._log(EventKind.VICTORY, f"{enemy.name} was defeated! You recover {recovered} HP.")
        logger.info("Battle won", enemy=enemy.name)
        self._phase = EncounterPhase.IDLE
        self._enemy = None
        self._enemy_hp = 0
        self._turn = BattleTurn.PLAYER

    def _begin_enemy_turn(self) -> None:
        self._turn = BattleTurn.ENEMY
        self._pending = "enemy_turn"
        self._spawn(self._enemy_turn(self._epoch))

    async def _enemy_turn(self, epoch: int) -> None:
        await asyncio.sleep(self._settings.enemy_turn_delay_seconds)
        if epoch != self._epoch or self._enemy is None:
            logger.info("Discarding stale counter-attack", epoch=epoch, current=self._epoch)
            return

        enemy = self._enemy
        player = self._session.player
        bonus = self._roller.roll_bonus(self._settings.enemy_attack_bonus_range)
        damage = compute_damage(enemy.stats.atk, player.stats.defense, bonus)
        player.take_damage(damage)
        self._pending = None
        self._log(EventKind.COMBAT, f"{enemy.name} attacks you for {damage} damage!")

        if player.is_defeated:
            self._lose_battle(enemy)
        else:
            self._turn = BattleTurn.PLAYER

    def _lose_battle(self, enemy: Entity) -> None:
        player = self._session.player
        self._clear_encounter()
        self._session.location = None
        player.revive()
        self._log(
            EventKind.DEFEAT,
            f"You were defeated by {enemy.name}. You wake up on the map with {player.stats.hp} HP.",
        )
        logger.info("Player defeated", enemy=enemy.name, revived_hp=player.stats.hp)
        for listener in list(self._defeat_listeners):
            listener()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """End the session: drop every pending operation."""
        self._clear_encounter()
        self._closed = True
        for task in list(self._tasks):
            task.cancel()


__all__ = [
    "MAP_SELECT",
    "EncounterState",
    "EncounterStateMachine",
]
