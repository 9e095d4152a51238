"""Custom exception hierarchy for Pixel RPG.

Every error that reaches the orchestration layer is one of the kinds
defined here. Low-level failures (sqlite, redis, JSON parsing, the AI
provider SDK) are caught by the component that owns the risky operation and
re-raised as one of these, so callers never have to know which backend or
provider is in use.

Example:
    >>> from pixel_rpg.core.exceptions import SlotEmptyError
    >>> raise SlotEmptyError("Nothing saved here", slot=2)
"""

from __future__ import annotations

from typing import Any


class PixelRpgError(Exception):
    """Base exception for all Pixel RPG errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Persistence
# =============================================================================


class PersistenceError(PixelRpgError):
    """Raised when a storage read or write fails.

    Non-fatal: the application keeps running on its in-memory state and
    surfaces a transient storage banner to the user.
    """

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize persistence error with key context.

        Args:
            message: Human-readable error description.
            key: Storage key involved in the failed operation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if key:
            combined_details["key"] = key
        super().__init__(message, details=combined_details)


class SlotEmptyError(PixelRpgError):
    """Raised when loading a save slot that holds no record.

    Not a storage failure: the store answered, the slot is just empty.
    """

    def __init__(self, message: str, *, slot: int, details: dict[str, Any] | None = None) -> None:
        combined_details = details or {}
        combined_details["slot"] = slot
        self.slot = slot
        super().__init__(message, details=combined_details)


class ImportMalformedError(PixelRpgError):
    """Raised when an import bundle cannot be parsed or has no known fields.

    The whole import is rejected; nothing is merged.
    """


# =============================================================================
# Content Generation
# =============================================================================


class GenerationError(PixelRpgError):
    """Raised when the content generation service fails.

    This covers provider connection errors, rate limits after retries, and
    replies that cannot be parsed into an entity. No partial entity is ever
    committed when this is raised.
    """

    def __init__(
        self,
        message: str,
        *,
        model: str | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize generation error with model context.

        Args:
            message: Human-readable error description.
            model: Name of the AI model involved.
            provider: Name of the AI provider.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if model:
            combined_details["model"] = model
        if provider:
            combined_details["provider"] = provider
        super().__init__(message, details=combined_details)


# =============================================================================
# Encounter State Machine
# =============================================================================


class InvalidTransitionError(PixelRpgError):
    """Raised when an intent arrives that the current state does not accept.

    The intent is ignored. The command boundary logs it and the session
    carries on.
    """

    def __init__(
        self,
        message: str,
        *,
        current_state: str | None = None,
        intent: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid transition error with state context.

        Args:
            message: Human-readable error description.
            current_state: The state the machine was in.
            intent: The rejected intent name.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if current_state:
            combined_details["current_state"] = current_state
        if intent:
            combined_details["intent"] = intent
        self.current_state = current_state
        self.intent = intent
        super().__init__(message, details=combined_details)


# =============================================================================
# Configuration & Validation
# =============================================================================


class ConfigurationError(PixelRpgError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(PixelRpgError):
    """Raised when caller input fails validation (bad slot, empty label...)."""

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


__all__ = [
    "PixelRpgError",
    # Persistence
    "PersistenceError",
    "SlotEmptyError",
    "ImportMalformedError",
    # Generation
    "GenerationError",
    # Encounter
    "InvalidTransitionError",
    # Configuration & validation
    "ConfigurationError",
    "ValidationError",
]
