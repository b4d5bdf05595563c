"""Exception types raised at the edges of the smoke runner."""

from __future__ import annotations

from pathlib import Path


class SmokeError(Exception):
    """Base class for errors the CLI reports as a clean failure."""


class ConfigError(SmokeError):
    """The project config or runner environment could not be parsed."""

    def __init__(self, message: str, path: str | Path | None = None):
        self.path = str(path) if path is not None else None
        if self.path:
            message = f"{self.path}: {message}"
        super().__init__(message)


class EvidenceError(SmokeError):
    """An evidence file is missing, unreadable or malformed."""


class AuthError(SmokeError):
    """Authentication could not be configured for a browser context."""
