"""Layout and region icon lookups backed by JSON files."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from incursion_tracker.config.errors import ConfigurationError
from incursion_tracker.domain.model import Layout

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from pathlib import Path

log = getLogger(__name__)


class LayoutEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    constellation: str
    headquarter_system: str
    staging_system: str
    vanguard_systems: list[str] = Field(default_factory=list)
    assault_systems: list[str] = Field(default_factory=list)
    is_island_constellation: bool = False

    def to_domain(self) -> Layout:
        return Layout(
            constellation=self.constellation,
            headquarters=self.headquarter_system,
            staging=self.staging_system,
            vanguards=tuple(self.vanguard_systems),
            assaults=tuple(self.assault_systems),
            is_island=self.is_island_constellation,
        )


_LAYOUTS = TypeAdapter(list[LayoutEntry])
_REGION_ICONS = TypeAdapter(dict[int, str])


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ConfigurationError(
            f"Cannot read static data file {path}: {exc}", source=str(path)
        ) from exc


class JsonLayoutLookup:
    """Constellation layouts keyed by constellation name."""

    def __init__(self, layouts: Iterable[Layout] = ()) -> None:
        self._layouts = {layout.constellation: layout for layout in layouts}

    @classmethod
    def from_path(cls, path: Path | None) -> JsonLayoutLookup:
        if path is None:
            log.info("No layout file configured; layouts will be reported as N/A")
            return cls()
        try:
            entries = _LAYOUTS.validate_json(_read(path))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid layout file {path}: {exc}", source=str(path)) from exc
        log.debug("Loaded %d constellation layouts from %s", len(entries), path)
        return cls(entry.to_domain() for entry in entries)

    def find_layout(self, constellation_name: str) -> Layout | None:
        return self._layouts.get(constellation_name)


class JsonRegionIconLookup:
    """Region icon URLs keyed by region id."""

    def __init__(self, icons: Mapping[int, str] | None = None) -> None:
        self._icons = dict(icons or {})

    @classmethod
    def from_path(cls, path: Path | None) -> JsonRegionIconLookup:
        if path is None:
            return cls()
        try:
            icons = _REGION_ICONS.validate_json(_read(path))
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid region icon file {path}: {exc}", source=str(path)
            ) from exc
        return cls(icons)

    def find_region_icon_url(self, region_id: int) -> str | None:
        return self._icons.get(region_id)
