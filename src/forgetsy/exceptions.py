"""Forgetsy exceptions."""


class ForgetsyError(Exception):
    """Base exception for all Forgetsy errors."""


class NotFound(ForgetsyError):
    """Raised when reifying a collection that has no persisted metadata."""

    def __init__(self, name: str, message: str | None = None):
        self.name = name
        super().__init__(message or f"Set {name!r} doesn't exist (pass lifetime to create it)")


class InvalidArgument(ForgetsyError, ValueError):
    """Raised on arguments that would break the decay invariants."""


class StoreUnavailable(ForgetsyError):
    """Raised when the backing store cannot complete an operation."""


class ConfigError(ForgetsyError):
    """Raised on invalid configuration."""
