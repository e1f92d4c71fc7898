"""Shared logging helpers."""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError


def configure_logging(*, level: int | str | None = None, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: the level
    falls back to ``LOG_LEVEL`` from the environment and then to INFO. Pass
    ``force=True`` to reconfigure during tests or specialised entry points.
    """

    resolved = level if level is not None else os.getenv("LOG_LEVEL", "INFO")
    if isinstance(resolved, str):
        name = resolved.strip().upper()
        numeric = logging.getLevelNamesMapping().get(name)
        if numeric is None:
            raise ConfigurationError(f"Unknown log level: {resolved}", source="LOG_LEVEL")
        resolved = numeric

    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
