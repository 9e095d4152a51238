"""Tests for the encounter state machine."""

from __future__ import annotations

import asyncio
import warnings
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Callable

import pytest

from pixel_rpg.core.config import GameSettings
from pixel_rpg.core.constants import PLAYER_SPEAKER, SILENCE_MARKER
from pixel_rpg.core.exceptions import InvalidTransitionError, ValidationError
from pixel_rpg.engine import encounter
from pixel_rpg.engine.dice import DiceRoller
from pixel_rpg.engine.encounter import MAP_SELECT, EncounterStateMachine
from pixel_rpg.models.entities import ChatMessage, Entity, Player, Stats
from pixel_rpg.models.enums import AutosaveEvent, BattleTurn, EncounterPhase, EventKind, Location
from pixel_rpg.models.game_state import GameSession


class BlockingGenerator:
    """Dialogue generator whose reply waits on an event."""

    def __init__(self) -> None:
        self.release = asyncio.Event()

    async def generate_entity(self, prompt: str, category: Any, tags: Sequence[str] = ()) -> Entity:
        raise NotImplementedError

    async def generate_dialogue_reply(
        self,
        persona: str | None,
        prior_turns: Sequence[ChatMessage],
        message: str,
        *,
        npc_name: str | None = None,
    ) -> str:
        await self.release.wait()
        return "late reply"


class BrokenGenerator:
    """Dialogue generator that fails with an unexpected error once."""

    def __init__(self) -> None:
        self.calls = 0

    async def generate_entity(self, prompt: str, category: Any, tags: Sequence[str] = ()) -> Entity:
        raise NotImplementedError

    async def generate_dialogue_reply(
        self,
        persona: str | None,
        prior_turns: Sequence[ChatMessage],
        message: str,
        *,
        npc_name: str | None = None,
    ) -> str:
        self.calls += 1
        if self.calls == 1:
            raise IndexError("list index out of range")
        return "Sorry, where were we?"


@pytest.fixture
def session(player: Player, npc: Entity, enemy: Entity) -> GameSession:
    return GameSession(player=player, world_npcs=[npc], world_enemies=[enemy])


@pytest.fixture
def autosaves() -> list[tuple[AutosaveEvent, Location | None]]:
    return []


@pytest.fixture
def machine(
    session: GameSession,
    game_settings: GameSettings,
    generator: Any,
    roller: Any,
    autosaves: list[tuple[AutosaveEvent, Location | None]],
) -> EncounterStateMachine:
    return EncounterStateMachine(
        session,
        game_settings,
        generator,
        roller=roller,
        autosave=lambda event, s: autosaves.append((event, s.location)),
    )


async def _battle(machine: EncounterStateMachine) -> None:
    await machine.travel(Location.FOREST)
    assert machine.state.phase is EncounterPhase.BATTLE


# =============================================================================
# Travel
# =============================================================================


class TestTravel:
    """Tests for navigation and arrival draws."""

    def test_initial_state(self, machine: EncounterStateMachine) -> None:
        assert machine.state.label == MAP_SELECT
        assert machine.state.phase is EncounterPhase.IDLE

    @pytest.mark.asyncio
    async def test_empty_forest(
        self,
        session: GameSession,
        machine: EncounterStateMachine,
        autosaves: list[Any],
    ) -> None:
        """Test an empty forest leaves the player idle with an info line."""
        session.world_enemies = []

        await machine.travel(Location.FOREST)

        assert machine.state.label == "FOREST/IDLE"
        assert machine.state.enemy is None
        assert machine.events[-1].kind is EventKind.INFO
        assert machine.events[-1].message == "The forest is silent."
        assert autosaves == [(AutosaveEvent.ARRIVED_FOREST, Location.FOREST)]

    @pytest.mark.asyncio
    async def test_forest_starts_battle(self, machine: EncounterStateMachine, enemy: Entity) -> None:
        await machine.travel(Location.FOREST)

        state = machine.state
        assert state.label == "FOREST/BATTLE"
        assert state.enemy == enemy
        assert state.enemy_hp == enemy.stats.max_hp
        assert state.turn is BattleTurn.PLAYER

    @pytest.mark.asyncio
    async def test_town_draws_npc(
        self,
        machine: EncounterStateMachine,
        npc: Entity,
        autosaves: list[Any],
    ) -> None:
        await machine.travel(Location.TOWN)

        assert machine.state.label == "TOWN/IDLE"
        assert machine.state.npc == npc
        assert autosaves == [(AutosaveEvent.ARRIVED_TOWN, Location.TOWN)]

    @pytest.mark.asyncio
    async def test_stale_arrival_dropped(self, session: GameSession, generator: Any, roller: Any) -> None:
        """Test an arrival that lands after leaving is discarded."""
        settings = GameSettings(travel_encounter_delay_seconds=0.05, enemy_turn_delay_seconds=0)
        machine = EncounterStateMachine(session, settings, generator, roller=roller)

        task = asyncio.create_task(machine.travel(Location.FOREST))
        await asyncio.sleep(0)
        assert machine.state.pending == "arrival"
        with pytest.raises(InvalidTransitionError):
            await machine.travel(Location.TOWN)

        machine.return_to_map()
        await task

        assert machine.state.label == MAP_SELECT
        assert machine.state.enemy is None
        assert machine.is_busy is False

    @pytest.mark.asyncio
    async def test_return_to_map_clears_encounter(self, machine: EncounterStateMachine) -> None:
        await _battle(machine)
        epoch = machine.state.epoch

        machine.return_to_map()

        state = machine.state
        assert state.location is None
        assert state.enemy is None
        assert state.enemy_hp == 0
        assert state.epoch > epoch

    @pytest.mark.asyncio
    async def test_rest(self, machine: EncounterStateMachine, player: Player) -> None:
        player.take_damage(40)
        player.spend_mp(30)
        await machine.travel(Location.TOWN)

        machine.rest_at_town()

        assert player.stats.hp == 100
        assert player.stats.mp == 100
        assert machine.events[-1].kind is EventKind.REST

    @pytest.mark.asyncio
    async def test_rest_outside_town_rejected(self, machine: EncounterStateMachine) -> None:
        await _battle(machine)
        with pytest.raises(InvalidTransitionError):
            machine.rest_at_town()


# =============================================================================
# Dialogue
# =============================================================================


class TestDialogue:
    """Tests for NPC conversations."""

    @pytest.mark.asyncio
    async def test_conversation(self, machine: EncounterStateMachine, generator: Any, npc: Entity) -> None:
        generator.replies = ["Welcome!", "Fresh bread today."]
        await machine.travel(Location.TOWN)
        machine.start_dialogue()

        assert await machine.send_dialogue_message("Hello") == "Welcome!"
        assert await machine.send_dialogue_message("  What's new? ") == "Fresh bread today."

        history = machine.chat_history
        assert [m.sender for m in history] == [PLAYER_SPEAKER, npc.name, PLAYER_SPEAKER, npc.name]
        persona, prior, message = generator.dialogue_calls[1]
        assert persona == "Kind"
        assert prior == history[:2]
        assert message == "What's new?"

    @pytest.mark.asyncio
    async def test_history_window(
        self,
        session: GameSession,
        generator: Any,
        roller: Any,
    ) -> None:
        """Test only the most recent turns are sent to the generator."""
        settings = GameSettings(
            dialogue_history_window=2,
            travel_encounter_delay_seconds=0,
            enemy_turn_delay_seconds=0,
        )
        machine = EncounterStateMachine(session, settings, generator, roller=roller)
        await machine.travel(Location.TOWN)
        machine.start_dialogue()

        for text in ("one", "two", "three"):
            await machine.send_dialogue_message(text)

        _, prior, _ = generator.dialogue_calls[-1]
        assert [m.text for m in prior] == ["two", "..."]

    @pytest.mark.asyncio
    async def test_generation_failure_is_silence(self, machine: EncounterStateMachine, generator: Any) -> None:
        generator.fail = True
        await machine.travel(Location.TOWN)
        machine.start_dialogue()

        reply = await machine.send_dialogue_message("Hello?")

        assert reply == SILENCE_MARKER
        assert machine.chat_history[-1].text == SILENCE_MARKER
        assert machine.state.phase is EncounterPhase.DIALOGUE

    @pytest.mark.asyncio
    async def test_stale_reply_dropped(self, session: GameSession, game_settings: GameSettings, roller: Any) -> None:
        """Test a reply arriving after leaving town is discarded."""
        generator = BlockingGenerator()
        machine = EncounterStateMachine(session, game_settings, generator, roller=roller)
        await machine.travel(Location.TOWN)
        machine.start_dialogue()

        task = asyncio.create_task(machine.send_dialogue_message("Hi"))
        await asyncio.sleep(0)
        assert machine.state.pending == "dialogue_reply"
        with pytest.raises(InvalidTransitionError):
            await machine.send_dialogue_message("Hello??")

        machine.return_to_map()
        generator.release.set()

        assert await task is None
        assert machine.chat_history == []
        assert machine.state.label == MAP_SELECT

    @pytest.mark.asyncio
    async def test_unexpected_error_releases_machine(
        self,
        session: GameSession,
        game_settings: GameSettings,
        roller: Any,
    ) -> None:
        """Test a generator crash propagates without leaving a reply pending."""
        machine = EncounterStateMachine(session, game_settings, BrokenGenerator(), roller=roller)
        await machine.travel(Location.TOWN)
        machine.start_dialogue()

        with pytest.raises(IndexError):
            await machine.send_dialogue_message("Hello")

        assert machine.is_busy is False
        assert machine.state.pending is None
        assert await machine.send_dialogue_message("Hello again") == "Sorry, where were we?"
        machine.end_dialogue()
        assert machine.state.label == "TOWN/IDLE"

    @pytest.mark.asyncio
    async def test_blank_message(self, machine: EncounterStateMachine) -> None:
        await machine.travel(Location.TOWN)
        machine.start_dialogue()
        with pytest.raises(ValidationError):
            await machine.send_dialogue_message("   ")

    @pytest.mark.asyncio
    async def test_nobody_to_talk_to(self, session: GameSession, machine: EncounterStateMachine) -> None:
        session.world_npcs = []
        await machine.travel(Location.TOWN)
        with pytest.raises(InvalidTransitionError):
            machine.start_dialogue()

    @pytest.mark.asyncio
    async def test_end_dialogue_keeps_npc(self, machine: EncounterStateMachine, npc: Entity) -> None:
        await machine.travel(Location.TOWN)
        machine.start_dialogue()
        await machine.send_dialogue_message("Bye")

        machine.end_dialogue()

        assert machine.state.label == "TOWN/IDLE"
        assert machine.state.npc == npc
        assert machine.chat_history == []

    @pytest.mark.asyncio
    async def test_send_outside_dialogue(self, machine: EncounterStateMachine) -> None:
        await machine.travel(Location.TOWN)
        with pytest.raises(InvalidTransitionError):
            await machine.send_dialogue_message("Hi")


# =============================================================================
# Combat
# =============================================================================


class TestCombat:
    """Tests for turn-based battle."""

    @pytest.mark.asyncio
    async def test_attack_and_counter(self, machine: EncounterStateMachine, player: Player) -> None:
        await _battle(machine)

        hit = machine.attack()

        assert hit.damage == 10
        assert machine.state.enemy_hp == 20
        assert machine.state.turn is BattleTurn.ENEMY
        await machine.wait_idle()
        assert player.stats.hp == 99
        assert machine.state.turn is BattleTurn.PLAYER
        assert machine.is_busy is False

    @pytest.mark.asyncio
    async def test_damage_range_with_equal_stats(
        self,
        player: Player,
        make_entity: Callable[..., Entity],
        game_settings: GameSettings,
        generator: Any,
    ) -> None:
        """Test ATK equal to DEF deals between 1 and 4 damage."""
        wall = make_entity("Wall", max_hp=200, atk=0, defense=10)
        session = GameSession(player=player, world_enemies=[wall])
        machine = EncounterStateMachine(session, game_settings, generator, roller=DiceRoller())
        await _battle(machine)

        for _ in range(20):
            hit = machine.attack()
            assert 1 <= hit.damage < 5
            await machine.wait_idle()

    @pytest.mark.asyncio
    async def test_busy_during_enemy_turn(self, machine: EncounterStateMachine) -> None:
        await _battle(machine)
        machine.attack()

        assert machine.state.pending == "enemy_turn"
        with pytest.raises(InvalidTransitionError):
            machine.attack()
        with pytest.raises(InvalidTransitionError):
            machine.heal()
        await machine.wait_idle()

    @pytest.mark.asyncio
    async def test_leaving_cancels_counter(self, machine: EncounterStateMachine, player: Player) -> None:
        """Test a counter-attack scheduled before leaving never lands."""
        await _battle(machine)
        machine.attack()

        machine.return_to_map()
        await machine.wait_idle()

        assert player.stats.hp == 100
        assert machine.state.label == MAP_SELECT

    @pytest.mark.asyncio
    async def test_lethal_attack_wins(
        self,
        player: Player,
        make_entity: Callable[..., Entity],
        game_settings: GameSettings,
        generator: Any,
        roller: Any,
    ) -> None:
        player.take_damage(50)
        rat = make_entity("Rat", max_hp=5, atk=50, defense=0)
        session = GameSession(player=player, world_enemies=[rat])
        machine = EncounterStateMachine(session, game_settings, generator, roller=roller)
        await _battle(machine)

        hit = machine.attack()
        await machine.wait_idle()

        assert hit.is_lethal
        assert machine.state.label == "FOREST/IDLE"
        assert machine.state.enemy is None
        assert player.stats.hp == 50 + game_settings.victory_hp_recovery
        assert machine.events[-1].kind is EventKind.VICTORY

    @pytest.mark.asyncio
    async def test_defeat(
        self,
        make_entity: Callable[..., Entity],
        game_settings: GameSettings,
        generator: Any,
        roller: Any,
    ) -> None:
        """Test a lethal counter-attack revives the player on the map."""
        player = Player(name="Frail", stats=Stats(hp=5, max_hp=100, atk=10, defense=0))
        brute = make_entity("Brute", max_hp=100, atk=10, defense=0)
        session = GameSession(player=player, world_enemies=[brute])
        machine = EncounterStateMachine(session, game_settings, generator, roller=roller)
        defeats: list[bool] = []
        machine.add_defeat_listener(lambda: defeats.append(True))
        await _battle(machine)

        machine.attack()
        await machine.wait_idle()

        assert machine.state.label == MAP_SELECT
        assert machine.state.enemy is None
        assert player.stats.hp == 50
        assert defeats == [True]
        assert machine.events[-1].kind is EventKind.DEFEAT

    @pytest.mark.asyncio
    async def test_attack_outside_battle(self, machine: EncounterStateMachine) -> None:
        await machine.travel(Location.TOWN)
        with pytest.raises(InvalidTransitionError):
            machine.attack()


class TestHeal:
    """Tests for the Heal spell."""

    @pytest.mark.asyncio
    async def test_heal_in_battle_uses_turn(self, machine: EncounterStateMachine, player: Player) -> None:
        await _battle(machine)
        player.take_damage(50)

        healed = machine.heal()

        assert healed == 30
        assert player.stats.mp == 90
        assert machine.state.turn is BattleTurn.ENEMY
        await machine.wait_idle()
        assert player.stats.hp == 79

    @pytest.mark.asyncio
    async def test_heal_never_overshoots(self, machine: EncounterStateMachine, player: Player) -> None:
        await machine.travel(Location.TOWN)
        player.take_damage(5)

        assert machine.heal() == 5

        assert player.stats.hp == player.stats.max_hp

    @pytest.mark.asyncio
    async def test_not_enough_mp(self, machine: EncounterStateMachine, player: Player) -> None:
        player.spend_mp(95)
        await _battle(machine)

        with pytest.raises(InvalidTransitionError):
            machine.heal()

        assert player.stats.mp == 5
        assert machine.state.turn is BattleTurn.PLAYER


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_closed_machine_rejects_intents(self, machine: EncounterStateMachine) -> None:
        machine.close()
        with pytest.raises(InvalidTransitionError):
            await machine.travel(Location.TOWN)


class TestModuleSource:
    """Tests for the module source itself."""

    def test_compiles_without_warnings(self) -> None:
        source = Path(encounter.__file__).read_text(encoding="utf-8")

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            compile(source, encounter.__file__, "exec")

        assert "\\-> FOREST/IDLE" in (encounter.__doc__ or "")
