"""Errors raised while reading tracker settings."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A setting or static data file cannot be used as given.

    ``source`` names the environment variable or file that was rejected, when known.
    """

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source
