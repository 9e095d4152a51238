"""Core infrastructure: configuration, constants, exceptions and logging.

Exports:
    Exceptions:
        PixelRpgError: Base exception for all application errors.
        PersistenceError, SlotEmptyError, ImportMalformedError,
        GenerationError, InvalidTransitionError, ConfigurationError,
        ValidationError.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
"""

from __future__ import annotations

from pixel_rpg.core.config import (
    AIProviderSettings,
    GameSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from pixel_rpg.core.exceptions import (
    ConfigurationError,
    GenerationError,
    ImportMalformedError,
    InvalidTransitionError,
    PersistenceError,
    PixelRpgError,
    SlotEmptyError,
    ValidationError,
)
from pixel_rpg.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
)


__all__ = [
    # Exceptions
    "PixelRpgError",
    "PersistenceError",
    "SlotEmptyError",
    "ImportMalformedError",
    "GenerationError",
    "InvalidTransitionError",
    "ConfigurationError",
    "ValidationError",
    # Configuration
    "Settings",
    "AIProviderSettings",
    "StorageSettings",
    "GameSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "bind_context",
    "clear_context",
]
