"""
Exception classes for the registration pipeline.

A duplicate email is not represented here: the store returns ``None`` for
it. Notification failures never leave the notifier.
"""

from typing import Any, Optional


class RegistrationError(Exception):
    """Base exception for registration pipeline errors."""


class ValidationError(RegistrationError):
    """Raised when a payload fails the validation gate.

    ``message`` describes the first violation and embeds the failing field
    name in quotes, e.g. ``"email" value is not a valid email address``.
    ``errors`` holds every violation as ``{"field": ..., "message": ...}``.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[list[dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        self.errors = errors or []


class ChannelUnavailable(RegistrationError):
    """Raised when publishing without an open broker channel."""

    def __init__(self, detail: str = "RabbitMQ channel is not connected"):
        super().__init__(detail)


class PersistenceError(RegistrationError):
    """Raised when the user store fails for a reason other than a duplicate email."""
