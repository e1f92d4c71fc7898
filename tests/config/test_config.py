from __future__ import annotations

import logging
from pathlib import Path

import pytest

from incursion_tracker.config import (
    ConfigurationError,
    configure_logging,
    database_uri,
    env_flag,
    get_esi_config,
    get_tracker_config,
)
from incursion_tracker.config.esi import ESI_BASE_URL


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1", True),
        ("TRUE", True),
        (" yes ", True),
        ("on", True),
        ("0", False),
        ("off", False),
        ("", False),
    ],
)
def test_env_flag_parses_switches(
    monkeypatch: pytest.MonkeyPatch,
    raw: str,
    expected: bool,  # noqa: FBT001
) -> None:
    monkeypatch.setenv("HIGH_SEC_ONLY", raw)

    assert env_flag("HIGH_SEC_ONLY") is expected


def test_env_flag_rejects_unknown_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HIGH_SEC_ONLY", "maybe")

    with pytest.raises(ConfigurationError, match="Invalid boolean value") as excinfo:
        env_flag("HIGH_SEC_ONLY")

    assert excinfo.value.source == "HIGH_SEC_ONLY"


def test_env_flag_default_when_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("HIGH_SEC_ONLY", raising=False)

    assert env_flag("HIGH_SEC_ONLY") is False
    assert env_flag("HIGH_SEC_ONLY", default=True) is True


def test_tracker_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HIGH_SEC_ONLY", "yes")
    monkeypatch.setenv("INCURSION_LAYOUTS_PATH", "/srv/layouts.json")
    monkeypatch.delenv("REGION_ICONS_PATH", raising=False)

    config = get_tracker_config()

    assert config.high_sec_only is True
    assert config.high_sec_threshold == 0.45
    assert config.failure_backoff_seconds == 60.0
    assert config.layouts_path == Path("/srv/layouts.json")
    assert config.region_icons_path is None
    assert get_tracker_config(high_sec_only=False).high_sec_only is False


def test_database_uri_follows_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("INCURSION_TRACKER_DATA_DIR", str(tmp_path / "state"))
    monkeypatch.delenv("DATABASE_URI", raising=False)

    expected = (tmp_path / "state" / "incursion_tracker.db").resolve()

    assert database_uri() == f"sqlite+pysqlite:///{expected}"
    assert (tmp_path / "state").is_dir()


def test_database_uri_override(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("INCURSION_TRACKER_DATA_DIR", str(tmp_path / "unused"))
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")

    assert database_uri() == "sqlite+pysqlite:///:memory:"
    assert not (tmp_path / "unused").exists()


def test_esi_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ESI_USER_AGENT", "tracker-tests (ops@example.com)")

    config = get_esi_config()

    assert config.datasource == "tranquility"
    assert config.resilience.base_url == ESI_BASE_URL
    assert config.resilience.default_headers is not None
    assert config.resilience.default_headers["User-Agent"] == "tracker-tests (ops@example.com)"
    assert config.resilience.cache is not None
    assert config.resilience.cache.enabled
    assert 420 in config.resilience.retry.status_forcelist


def test_configure_logging_resolves_level(monkeypatch: pytest.MonkeyPatch) -> None:
    root = logging.getLogger()
    saved_level, saved_handlers = root.level, list(root.handlers)
    monkeypatch.setenv("LOG_LEVEL", "debug")

    try:
        configure_logging(force=True)
        assert root.level == logging.DEBUG
        configure_logging(level="warning", force=True)
        assert root.level == logging.WARNING
        with pytest.raises(ConfigurationError, match="Unknown log level"):
            configure_logging(level="chatty", force=True)
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)
