"""Pydantic models describing the ESI payloads used by the tracker."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, RootModel

from incursion_tracker.domain.model import (
    ConstellationRecord,
    IncursionState,
    RawIncursion,
    SystemRecord,
)

log = logging.getLogger(__name__)


class EsiBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "ESI %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class EsiIncursion(EsiBaseModel):
    constellation_id: int
    staging_solar_system_id: int
    infested_solar_systems: list[int] = Field(default_factory=list)
    state: IncursionState
    influence: float
    faction_id: int | None = None
    has_boss: bool = False
    type: str | None = None

    def to_domain(self) -> RawIncursion:
        return RawIncursion(
            constellation_id=self.constellation_id,
            staging_solar_system_id=self.staging_solar_system_id,
            infested_solar_systems=tuple(self.infested_solar_systems),
            state=self.state,
            influence=self.influence,
            faction_id=self.faction_id,
            has_boss=self.has_boss,
            type=self.type,
        )


class EsiIncursionList(RootModel[list[EsiIncursion]]):
    pass


class EsiConstellation(EsiBaseModel):
    constellation_id: int
    name: str
    region_id: int
    systems: list[int] = Field(default_factory=list)

    def to_domain(self) -> ConstellationRecord:
        return ConstellationRecord(
            constellation_id=self.constellation_id,
            name=self.name,
            region_id=self.region_id,
        )


class EsiSystem(EsiBaseModel):
    system_id: int
    name: str
    security_status: float
    constellation_id: int | None = None
    security_class: str | None = None

    def to_domain(self) -> SystemRecord:
        return SystemRecord(
            system_id=self.system_id,
            name=self.name,
            security_status=self.security_status,
            constellation_id=self.constellation_id,
        )


class EsiRoute(RootModel[list[int]]):
    pass


class EsiError(BaseModel):
    model_config = ConfigDict(extra="ignore")

    error: str
