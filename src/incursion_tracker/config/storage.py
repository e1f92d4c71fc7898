"""Location of the tracker's SQLite database."""

from __future__ import annotations

import os
from pathlib import Path

from .env import optional_env_var

DATA_DIR_ENV = "INCURSION_TRACKER_DATA_DIR"
DATABASE_FILENAME = "incursion_tracker.db"


def data_dir() -> Path:
    """Directory holding the database, from ``INCURSION_TRACKER_DATA_DIR`` or the XDG default."""

    override = optional_env_var(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser().resolve()
    if os.name == "nt":
        root = optional_env_var("LOCALAPPDATA")
        base = Path(root) if root else Path.home() / "AppData" / "Local"
    else:
        root = optional_env_var("XDG_DATA_HOME")
        base = Path(root) if root else Path.home() / ".local" / "share"
    return (base / "incursion-tracker").expanduser().resolve()


def database_uri() -> str:
    """SQLAlchemy URI for the timestamp store; ``DATABASE_URI`` takes precedence."""

    override = optional_env_var("DATABASE_URI")
    if override:
        return override
    directory = data_dir()
    directory.mkdir(parents=True, exist_ok=True)
    return f"sqlite+pysqlite:///{directory / DATABASE_FILENAME}"
