"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, optional_env_var
from .errors import ConfigurationError
from .esi import EsiConfig, get_esi_config
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import data_dir, database_uri
from .tracker import TrackerConfig, get_tracker_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "EsiConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "TrackerConfig",
    "configure_logging",
    "data_dir",
    "database_uri",
    "env_flag",
    "get_esi_config",
    "get_tracker_config",
    "optional_env_var",
]
