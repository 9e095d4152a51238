"""Pytest configuration and shared fixtures.

This module provides common fixtures for the Pixel RPG test suite:
zero-delay game settings, an in-memory persistence stack, a scripted
generation service and a deterministic dice roller.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Callable, TypeVar

import pytest
import pytest_asyncio

from pixel_rpg.core.config import GameSettings
from pixel_rpg.core.exceptions import GenerationError
from pixel_rpg.library.manager import LibraryManager
from pixel_rpg.models.entities import ChatMessage, Entity, Player, Stats
from pixel_rpg.models.enums import EntityCategory
from pixel_rpg.saves.manager import SaveManager
from pixel_rpg.storage.backends import MemoryBackend
from pixel_rpg.storage.engine import PersistenceEngine


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Generator

T = TypeVar("T")


# =============================================================================
# Test Doubles
# =============================================================================


class FixedRoller:
    """Roller that always rolls the same bonus and picks a fixed index."""

    def __init__(self, bonus: int = 0, index: int = 0) -> None:
        self.bonus = bonus
        self.index = index
        self.bonus_calls: list[int] = []

    def roll_bonus(self, bonus_range: int) -> int:
        self.bonus_calls.append(bonus_range)
        if bonus_range <= 0:
            return 0
        return min(self.bonus, bonus_range - 1)

    def choose(self, population: Sequence[T]) -> T:
        return population[min(self.index, len(population) - 1)]


class FakeGenerator:
    """Scripted GenerationService.

    Attributes:
        replies: Dialogue replies returned in order ("..." once exhausted).
        fail: Raise GenerationError from every call when True.
        dialogue_calls: (persona, prior_turns, message) per dialogue call.
    """

    def __init__(self) -> None:
        self.replies: list[str] = []
        self.fail = False
        self.dialogue_calls: list[tuple[str | None, list[ChatMessage], str]] = []
        self.entity_calls: list[tuple[str, EntityCategory, list[str]]] = []

    async def generate_entity(
        self,
        prompt: str,
        category: EntityCategory,
        tags: Sequence[str] = (),
    ) -> Entity:
        self.entity_calls.append((prompt, category, list(tags)))
        if self.fail:
            raise GenerationError("generation offline")
        return Entity(
            name=prompt.title()[:100],
            description=f"Generated from '{prompt}'",
            category=category,
            stats=Stats(max_hp=60, max_mp=20, atk=8, defense=3),
            dialogue_persona="Grumpy" if category is EntityCategory.NPC else None,
            tags=tuple(tags),
            original_prompt=prompt,
        )

    async def generate_dialogue_reply(
        self,
        persona: str | None,
        prior_turns: Sequence[ChatMessage],
        message: str,
        *,
        npc_name: str | None = None,
    ) -> str:
        self.dialogue_calls.append((persona, list(prior_turns), message))
        if self.fail:
            raise GenerationError("dialogue offline")
        return self.replies.pop(0) if self.replies else "..."


class FailingBackend(MemoryBackend):
    """MemoryBackend whose reads and/or writes can be switched off."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        super().__init__(initial)
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, key: str) -> Any | None:
        if self.fail_reads:
            raise ConnectionError("backend unavailable")
        return await super().get(key)

    async def set(self, key: str, value: Any) -> None:
        if self.fail_writes:
            raise OSError("quota exceeded")
        await super().set(key, value)


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from pixel_rpg.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "PIXEL_RPG_OPENAI_API_KEY": "test-openai-key",
        "PIXEL_RPG_DEBUG": "true",
        "PIXEL_RPG_LOG_LEVEL": "DEBUG",
        "PIXEL_RPG_STORAGE_BACKEND": "memory",
        "PIXEL_RPG_GAME_HEAL_AMOUNT": "25",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def game_settings() -> GameSettings:
    """Game settings with no artificial delays."""
    return GameSettings(
        enemy_turn_delay_seconds=0,
        travel_encounter_delay_seconds=0,
    )


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def make_entity() -> Callable[..., Entity]:
    """Factory for entities with explicit stats.

    Returns:
        A function ``(name, category, **stats) -> Entity``.
    """

    def _make(
        name: str = "Slime",
        category: EntityCategory = EntityCategory.ENEMY,
        *,
        max_hp: int = 40,
        max_mp: int = 0,
        atk: int = 8,
        defense: int = 2,
        tags: Sequence[str] = (),
        persona: str | None = None,
    ) -> Entity:
        return Entity(
            name=name,
            description=f"A {name.lower()}.",
            category=category,
            stats=Stats(max_hp=max_hp, max_mp=max_mp, atk=atk, defense=defense),
            tags=tuple(tags),
            dialogue_persona=persona,
        )

    return _make


@pytest.fixture
def player() -> Player:
    """A standard 100/100 player with 10 ATK and 10 DEF."""
    return Player(name="Aria", stats=Stats(max_hp=100, max_mp=100, atk=10, defense=10))


@pytest.fixture
def npc(make_entity: Callable[..., Entity]) -> Entity:
    return make_entity("Old Baker", EntityCategory.NPC, max_hp=30, tags=["Cute"], persona="Kind")


@pytest.fixture
def enemy(make_entity: Callable[..., Entity]) -> Entity:
    return make_entity("Goblin", EntityCategory.ENEMY, max_hp=30, atk=10, defense=0, tags=["Dark"])


@pytest.fixture
def hero(make_entity: Callable[..., Entity]) -> Entity:
    return make_entity("Knight", EntityCategory.HERO, max_hp=120, max_mp=40, atk=14, defense=6)


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def roller() -> FixedRoller:
    return FixedRoller()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def memory_backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def failing_backend() -> FailingBackend:
    return FailingBackend()


@pytest.fixture
def persistence(memory_backend: MemoryBackend) -> PersistenceEngine:
    return PersistenceEngine(memory_backend)


@pytest_asyncio.fixture
async def library(
    persistence: PersistenceEngine,
    game_settings: GameSettings,
) -> AsyncGenerator[LibraryManager, None]:
    """A loaded, empty library."""
    manager = LibraryManager(persistence, game_settings)
    await manager.load()
    yield manager
    await persistence.flush()


@pytest_asyncio.fixture
async def saves(
    persistence: PersistenceEngine,
    game_settings: GameSettings,
) -> AsyncGenerator[SaveManager, None]:
    """An initialized save manager with empty slots."""
    manager = SaveManager(persistence, game_settings)
    await manager.initialize()
    yield manager
    await manager.flush()
