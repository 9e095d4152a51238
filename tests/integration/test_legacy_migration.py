"""Integration tests for starting up on a store written by an older version."""

from __future__ import annotations

from typing import Any

import pytest

from pixel_rpg.core.config import GameSettings, Settings
from pixel_rpg.engine.game import Game
from pixel_rpg.models.enums import EntityCategory, Location
from pixel_rpg.storage.backends import MemoryBackend


LEGACY_STORE = {
    "pixel_rpg_npcs": [
        {
            "id": "npc-1",
            "name": "Old Baker",
            "type": "NPC",
            "imageBase64": "data:image/png;base64,AAAA",
            "dialoguePrompt": "Kind and chatty",
            "stats": {"hp": 40, "maxHp": 40, "mp": 0, "maxMp": 0, "atk": 2, "def": 1},
        }
    ],
    "pixel_rpg_monsters": [
        {
            "id": "mon-1",
            "name": "Cave Rat",
            "type": "MONSTER",
            "stats": {"hp": 12, "maxHp": 12, "atk": 4, "def": 0},
        }
    ],
    "pixel_rpg_world_npcs": [{"id": "npc-1"}],
    "pixel_rpg_world_monsters": [{"id": "mon-1"}],
    "pixel_rpg_save_2": {
        "timestamp": "2024-05-01T12:00:00+00:00",
        "player": {"name": "Veteran", "stats": {"hp": 33, "maxHp": 100, "mp": 5, "maxMp": 50, "atk": 9, "def": 4}},
        "worldNpcs": [],
        "worldMonsters": [{"id": "mon-1", "name": "Cave Rat", "type": "MONSTER", "stats": {"maxHp": 12}}],
        "location": "FOREST",
    },
}


@pytest.fixture
def legacy_backend() -> MemoryBackend:
    return MemoryBackend(LEGACY_STORE)


class TestLegacyStartup:
    """Tests for adopting legacy keys and field names on startup."""

    @pytest.mark.asyncio
    async def test_library_and_world_adopted(self, legacy_backend: MemoryBackend, generator: Any) -> None:
        game = await Game.create(
            Settings(game=GameSettings(travel_encounter_delay_seconds=0, enemy_turn_delay_seconds=0)),
            generator=generator,
            backend=legacy_backend,
        )

        npc = game.library.get("npc-1")
        rat = game.library.get("mon-1")
        assert npc is not None and rat is not None
        assert npc.portrait_ref.startswith("data:image/png")
        assert npc.dialogue_persona == "Kind and chatty"
        assert rat.category is EntityCategory.ENEMY
        assert game.library.active_ids == ["npc-1", "mon-1"]

    @pytest.mark.asyncio
    async def test_records_rewritten_under_current_keys(
        self,
        legacy_backend: MemoryBackend,
        generator: Any,
    ) -> None:
        """Test a second startup reads only the current keys."""
        await Game.create(Settings(), generator=generator, backend=legacy_backend)

        assert await legacy_backend.get("pixel_rpg_library_npcs") is not None
        assert await legacy_backend.get("pixel_rpg_library_enemies") is not None
        assert await legacy_backend.get("pixel_rpg_active_world_ids") == ["npc-1", "mon-1"]
        saved = await legacy_backend.get("pixel_rpg_save_slot_2")
        assert saved["worldEnemies"][0]["category"] == "ENEMY"

        for key in [k for k in legacy_backend.keys() if k in LEGACY_STORE]:
            await legacy_backend.delete(key)
        game = await Game.create(Settings(), generator=generator, backend=legacy_backend)

        assert game.library.counts() == {"npc": 1, "enemy": 1, "hero": 0}
        assert game.saves.preview(2) is not None

    @pytest.mark.asyncio
    async def test_legacy_slot_loads(self, legacy_backend: MemoryBackend, generator: Any) -> None:
        game = await Game.create(
            Settings(game=GameSettings(travel_encounter_delay_seconds=0, enemy_turn_delay_seconds=0)),
            generator=generator,
            backend=legacy_backend,
        )

        machine = await game.load_game(2)

        assert machine.state.location is Location.FOREST
        assert machine.state.enemy is None
        assert game.session.player.name == "Veteran"
        assert game.session.player.stats.hp == 33
        assert game.session.world_enemies[0].name == "Cave Rat"
