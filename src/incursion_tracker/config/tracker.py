"""Reconciliation behaviour settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .env import env_flag, optional_env_var

HIGH_SEC_THRESHOLD = 0.45
FAILURE_BACKOFF_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class TrackerConfig:
    high_sec_only: bool = False
    high_sec_threshold: float = HIGH_SEC_THRESHOLD
    failure_backoff_seconds: float = FAILURE_BACKOFF_SECONDS
    layouts_path: Path | None = None
    region_icons_path: Path | None = None


def get_tracker_config(*, high_sec_only: bool | None = None) -> TrackerConfig:
    layouts = optional_env_var("INCURSION_LAYOUTS_PATH")
    icons = optional_env_var("REGION_ICONS_PATH")
    return TrackerConfig(
        high_sec_only=env_flag("HIGH_SEC_ONLY") if high_sec_only is None else high_sec_only,
        layouts_path=Path(layouts) if layouts else None,
        region_icons_path=Path(icons) if icons else None,
    )
