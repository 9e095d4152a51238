"""Game orchestrator: wires storage, library, saves and encounters together.

The ``Game`` owns the explicit session context. Starting or loading a game
builds a fresh ``GameSession`` plus its state machine and command queue;
nothing else holds ambient mutable state.

Example:
    >>> game = await Game.create(get_settings(), generator=my_generator)
    >>> machine = game.start_new_game(hero_id=hero.id)
    >>> await machine.travel(Location.TOWN)
    >>> await game.save_game(2)
    >>> await game.exit_to_menu()
"""

from __future__ import annotations

from pixel_rpg.core.config import GameSettings, Settings
from pixel_rpg.core.exceptions import ValidationError
from pixel_rpg.core.logging import bind_context, clear_context, get_logger
from pixel_rpg.engine.commands import CommandQueue
from pixel_rpg.engine.dice import Roller
from pixel_rpg.engine.encounter import EncounterStateMachine
from pixel_rpg.generation.service import GenerationService, OpenAIGenerationService
from pixel_rpg.library.manager import LibraryManager
from pixel_rpg.library.workshop import Workshop
from pixel_rpg.models.entities import Player
from pixel_rpg.models.enums import AutosaveEvent, EntityCategory
from pixel_rpg.models.game_state import GameSession, SaveSlot
from pixel_rpg.saves.manager import SaveManager
from pixel_rpg.storage.backends import StorageBackend, create_backend
from pixel_rpg.storage.engine import PersistenceEngine


logger = get_logger(__name__)


class Game:
    """Top-level application object.

    Args:
        engine: Persistence engine.
        library: Loaded library manager.
        saves: Initialized save manager.
        generator: Content generation service.
        settings: Game settings.
        roller: Optional random source for encounters.
    """

    def __init__(
        self,
        engine: PersistenceEngine,
        library: LibraryManager,
        saves: SaveManager,
        generator: GenerationService,
        settings: GameSettings,
        *,
        roller: Roller | None = None,
    ) -> None:
        self.engine = engine
        self.library = library
        self.saves = saves
        self.generator = generator
        self.settings = settings
        self.workshop = Workshop(library, generator)
        self._roller = roller
        self.session: GameSession | None = None
        self.machine: EncounterStateMachine | None = None
        self.queue: CommandQueue | None = None

    @classmethod
    async def create(
        cls,
        settings: Settings,
        *,
        generator: GenerationService | None = None,
        backend: StorageBackend | None = None,
        roller: Roller | None = None,
    ) -> Game:
        """Build a game from settings and load persisted state.

        Raises:
            GenerationError: If no generator is given and none can be configured.
        """
        engine = PersistenceEngine(
            backend or create_backend(settings.storage),
            key_prefix=settings.storage.key_prefix,
        )
        library = LibraryManager(engine, settings.game)
        saves = SaveManager(engine, settings.game)
        await library.load()
        await saves.initialize()
        return cls(
            engine,
            library,
            saves,
            generator or OpenAIGenerationService.from_settings(settings.ai),
            settings.game,
            roller=roller,
        )

    @property
    def storage_error(self) -> str | None:
        """Current storage banner text, if any."""
        return self.engine.last_error

    # =========================================================================
    # Session Lifecycle
    # =========================================================================

    def _begin(self, session: GameSession) -> EncounterStateMachine:
        if self.machine is not None:
            self.machine.close()
        self.session = session
        self.machine = EncounterStateMachine(
            session,
            self.settings,
            self.generator,
            roller=self._roller,
            autosave=self.saves.autosave_trigger,
        )
        self.queue = CommandQueue(self.machine)
        bind_context(player=session.player.name)
        return self.machine

    def start_new_game(self, hero_id: str | None = None, name: str | None = None) -> EncounterStateMachine:
        """Start a fresh session on the map screen.

        Args:
            hero_id: HERO entity to use as character origin, or None for
                the default player.
            name: Optional player name.

        Returns:
            The new session's state machine.

        Raises:
            ValidationError: If the hero id is unknown or not a HERO.
        """
        if hero_id is None:
            player = Player.default(self.settings)
            if name:
                player.name = name
        else:
            hero = self.library.get(hero_id)
            if hero is None:
                raise ValidationError("Unknown hero", field_name="hero_id", invalid_value=hero_id)
            player = Player.from_hero(hero, name=name)

        session = GameSession(
            player=player,
            world_npcs=[e.copy_for_world() for e in self.library.active_entities(EntityCategory.NPC)],
            world_enemies=[
                e.copy_for_world() for e in self.library.active_entities(EntityCategory.ENEMY)
            ],
        )
        logger.info(
            "New game started",
            player=player.name,
            npcs=len(session.world_npcs),
            enemies=len(session.world_enemies),
        )
        return self._begin(session)

    async def load_game(self, slot: int) -> EncounterStateMachine:
        """Resume a saved session at its saved location.

        Raises:
            SlotEmptyError: If the slot is empty.
            PersistenceError: If the slot could not be read.
        """
        loaded = await self.saves.load(slot)
        session = GameSession(
            player=loaded.player,
            world_npcs=loaded.world_npcs,
            world_enemies=loaded.world_enemies,
            location=loaded.location,
        )
        return self._begin(session)

    async def save_game(self, slot: int) -> SaveSlot:
        """Save the running session.

        Raises:
            ValidationError: If no game is running or the slot is invalid.
            PersistenceError: If the write failed.
        """
        if self.session is None:
            raise ValidationError("No game in progress", field_name="session")
        return await self.saves.save(
            slot,
            self.session.player,
            self.session.world_npcs,
            self.session.world_enemies,
            self.session.location,
        )

    async def exit_to_menu(self) -> None:
        """Autosave and end the running session."""
        if self.session is None or self.machine is None:
            return
        self.saves.autosave_trigger(AutosaveEvent.EXIT_TO_MENU, self.session)
        self.machine.close()
        await self.saves.flush()
        logger.info("Exited to menu")
        self.session = None
        self.machine = None
        self.queue = None
        clear_context()

    async def shutdown(self) -> None:
        """Flush pending writes; call before the process exits."""
        if self.machine is not None:
            self.machine.close()
        await self.saves.flush()


__all__ = [
    "Game",
]
