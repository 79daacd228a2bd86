from __future__ import annotations


class HomeStatsError(Exception):
    """Base error. ``operation`` names the remote call that failed, if any."""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class ConfigError(HomeStatsError):
    """Config file missing, unreadable or invalid. Fatal at startup."""


class AuthError(HomeStatsError):
    """Raised when the identity provider exchange fails or no token is held."""


class ReadError(HomeStatsError):
    """Raised when a device or weather reading cannot be fetched or decoded."""


class ActionError(HomeStatsError):
    """Raised when a remote actuation (boost) request fails."""


class WriteError(HomeStatsError):
    """Raised when a measurement cannot be written to the sink."""
