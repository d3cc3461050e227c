"""Exceptions raised by the booking flow."""

from __future__ import annotations


class BookingError(Exception):
    """Base class for booking-flow errors."""


class SessionNotInitialized(BookingError):
    """The browser was used before ``initialize()`` was called."""

    def __init__(self, message: str = "Browser not initialized. Call initialize() first.") -> None:
        super().__init__(message)


class AuthenticationFailure(BookingError):
    """Login did not succeed."""


class ConfirmationFailure(BookingError):
    """A required control in the confirmation dialog is missing."""


class ConfigError(ValueError):
    """The configuration file is invalid."""
