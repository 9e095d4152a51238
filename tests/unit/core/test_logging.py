"""Tests for logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
import structlog

from pixel_rpg.core.config import Settings
from pixel_rpg.core.logging import (
    add_app_context,
    bind_context,
    clear_context,
    configure_logging,
    configure_logging_from_settings,
)


if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    yield
    clear_context()
    structlog.reset_defaults()


class TestConfigureLogging:
    """Tests for structlog setup."""

    def test_json_configuration(self) -> None:
        configure_logging(level="WARNING", json_format=True)

        assert structlog.is_configured()
        assert logging.getLogger().level == logging.WARNING
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_noisy_loggers_quieted(self) -> None:
        configure_logging(level="DEBUG")

        assert logging.getLogger("openai").level == logging.WARNING
        assert logging.getLogger("redis").level == logging.WARNING

    def test_debug_setting_wins(self) -> None:
        configure_logging_from_settings(Settings(debug=True, log_level="ERROR"))
        assert logging.getLogger().level == logging.DEBUG

    def test_log_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "game.log"
        configure_logging(log_file=str(log_file))

        handlers = logging.getLogger().handlers
        assert any(isinstance(h, logging.FileHandler) for h in handlers)
        for handler in list(handlers):
            if isinstance(handler, logging.FileHandler):
                logging.getLogger().removeHandler(handler)
                handler.close()


class TestContext:
    """Tests for bound context helpers."""

    def test_bind_and_clear(self) -> None:
        bind_context(player="Aria", slot=2)
        assert structlog.contextvars.get_contextvars() == {"player": "Aria", "slot": 2}

        clear_context()

        assert structlog.contextvars.get_contextvars() == {}

    def test_app_field(self) -> None:
        event = add_app_context(None, "info", {"event": "Game saved"})
        assert event["app"] == "pixel_rpg"
