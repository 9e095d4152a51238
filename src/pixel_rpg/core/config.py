"""Configuration management for Pixel RPG.

This module provides centralized configuration management using
pydantic-settings, supporting environment variables, .env files, and
runtime configuration overrides. Game balance constants live here as
overridable fields so a deployment can retune combat without code changes.

Example:
    >>> from pixel_rpg.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.game.heal_amount
    30

Environment Variables:
    PIXEL_RPG_OPENAI_API_KEY: API key for the content generation provider
    PIXEL_RPG_STORAGE_BACKEND: memory, sqlite or redis
    PIXEL_RPG_STORAGE_REDIS_URL: Redis connection URL
    PIXEL_RPG_GAME_HEAL_AMOUNT: HP restored by the Heal spell
    PIXEL_RPG_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pixel_rpg.core import constants
from pixel_rpg.core.exceptions import ConfigurationError


class AIProviderSettings(BaseSettings):
    """Configuration for the content generation provider.

    Attributes:
        openai_api_key: API key for the OpenAI-compatible endpoint.
        base_url: Optional base URL for OpenAI-compatible providers.
        text_model: Model used for entity stats and dialogue.
        image_model: Model used for portraits.
        generate_portraits: Whether to request a portrait image per entity.
        max_retries: Maximum number of API retry attempts.
        timeout_seconds: API request timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="PIXEL_RPG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    openai_api_key: SecretStr | None = Field(
        default=None,
        description="OpenAI API key",
    )
    base_url: str | None = Field(
        default=None,
        description="Base URL for OpenAI-compatible providers",
    )
    text_model: str = Field(
        default="gpt-4o-mini",
        description="Model used for stats, lore and dialogue",
    )
    image_model: str = Field(
        default="gpt-image-1",
        description="Model used for portraits",
    )
    generate_portraits: bool = Field(
        default=True,
        description="Request a portrait image for each generated entity",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum API retry attempts",
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=300,
        description="API request timeout",
    )


class StorageSettings(BaseSettings):
    """Configuration for the key/value persistence backend.

    Attributes:
        backend: Which backend implementation to use.
        database_path: SQLite database file (sqlite backend).
        redis_url: Redis connection URL (redis backend).
        key_prefix: Namespace prefix applied to every persisted key.
    """

    model_config = SettingsConfigDict(
        env_prefix="PIXEL_RPG_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: Literal["memory", "sqlite", "redis"] = Field(
        default="sqlite",
        description="Persistence backend",
    )
    database_path: Path = Field(
        default=Path("data/pixel_rpg.db"),
        description="Path to SQLite database",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    key_prefix: str = Field(
        default=constants.DEFAULT_KEY_PREFIX,
        description="Prefix for every persisted key",
    )


class GameSettings(BaseSettings):
    """Game balance and session policy.

    Attributes:
        player_attack_bonus_range: Upper bound (exclusive) of the player's attack bonus.
        enemy_attack_bonus_range: Upper bound (exclusive) of the enemy's attack bonus.
        victory_hp_recovery: HP restored after winning a battle.
        heal_amount: HP restored by Heal.
        heal_mp_cost: MP spent by Heal.
        enemy_turn_delay_seconds: Enemy 'thinking' delay before a counter-attack.
        travel_encounter_delay_seconds: Delay before the arrival encounter draw.
        dialogue_history_window: Chat turns sent to the generation service.
        save_slot_count: Number of save slots (slot 1 is autosave).
        autosave_default: Autosave flag used when none has been persisted.
        default_player_name: Name of the player when no hero is chosen.
        default_player_hp: Max HP of the default player.
        default_player_mp: Max MP of the default player.
        default_player_atk: ATK of the default player.
        default_player_def: DEF of the default player.
        default_labels: Label vocabulary used on first run.
    """

    model_config = SettingsConfigDict(
        env_prefix="PIXEL_RPG_GAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    player_attack_bonus_range: int = Field(default=constants.PLAYER_ATTACK_BONUS_RANGE, ge=0)
    enemy_attack_bonus_range: int = Field(default=constants.ENEMY_ATTACK_BONUS_RANGE, ge=0)
    victory_hp_recovery: int = Field(default=constants.VICTORY_HP_RECOVERY, ge=0)
    heal_amount: int = Field(default=constants.HEAL_AMOUNT, ge=0)
    heal_mp_cost: int = Field(default=constants.HEAL_MP_COST, ge=0)
    enemy_turn_delay_seconds: float = Field(default=constants.ENEMY_TURN_DELAY_SECONDS, ge=0)
    travel_encounter_delay_seconds: float = Field(
        default=constants.TRAVEL_ENCOUNTER_DELAY_SECONDS,
        ge=0,
    )
    dialogue_history_window: int = Field(default=constants.DIALOGUE_HISTORY_WINDOW, ge=0)
    save_slot_count: int = Field(default=constants.SAVE_SLOT_COUNT)
    autosave_default: bool = Field(default=True)
    default_player_name: str = Field(default=constants.DEFAULT_PLAYER_NAME, min_length=1)
    default_player_hp: int = Field(default=constants.DEFAULT_PLAYER_HP, ge=1)
    default_player_mp: int = Field(default=constants.DEFAULT_PLAYER_MP, ge=0)
    default_player_atk: int = Field(default=constants.DEFAULT_PLAYER_ATK, ge=0)
    default_player_def: int = Field(default=constants.DEFAULT_PLAYER_DEF, ge=0)
    default_labels: list[str] = Field(default_factory=lambda: list(constants.DEFAULT_LABELS))

    @model_validator(mode="after")
    def validate_slot_count(self) -> "GameSettings":
        """Ensure there is room for the reserved autosave slot.

        Returns:
            Self if validation passes.

        Raises:
            ConfigurationError: If save_slot_count is below 1.
        """
        if self.save_slot_count < constants.AUTOSAVE_SLOT:
            raise ConfigurationError(
                f"save_slot_count ({self.save_slot_count}) must be at least "
                f"{constants.AUTOSAVE_SLOT}",
                config_key="save_slot_count",
            )
        return self


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        log_json: Emit JSON log lines instead of console output.
        ai: Content generation provider settings.
        storage: Persistence backend settings.
        game: Game balance settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="PIXEL_RPG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(default="Pixel RPG", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(default=False, description="JSON log output")

    ai: AIProviderSettings = Field(default_factory=AIProviderSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    game: GameSettings = Field(default_factory=GameSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If required configuration is missing or invalid.
    """
    try:
        return Settings()
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "AIProviderSettings",
    "StorageSettings",
    "GameSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
