"""Persistence of the most recently tracked incursion."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError

from incursion_tracker.domain.errors import PersistenceWriteError
from incursion_tracker.domain.model import NOT_AVAILABLE, EnrichedIncursion, IncursionState

from .mappings import last_incursion_table

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.engine import Engine

log = getLogger(__name__)

_SLOT = 1


class CachedIncursion(BaseModel):
    """Stored shape of an enriched incursion.

    Older cache entries used camelCase keys, carried the jump count as a string and
    may lack the state history entirely; all of those still load.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    constellation_id: int = Field(
        validation_alias=AliasChoices("constellation_id", "constellationId")
    )
    constellation_name: str = Field(
        validation_alias=AliasChoices("constellation_name", "constellationName")
    )
    region_id: int = Field(default=0, validation_alias=AliasChoices("region_id", "regionId"))
    region_icon_url: str = Field(
        default="", validation_alias=AliasChoices("region_icon_url", "regionIconUrl")
    )
    headquarters: str = Field(
        default=NOT_AVAILABLE, validation_alias=AliasChoices("headquarters", "headquarterSystem")
    )
    headquarters_system_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices("headquarters_system_id", "headquarterSystemId"),
    )
    staging: str = Field(
        default=NOT_AVAILABLE, validation_alias=AliasChoices("staging", "stagingSystem")
    )
    vanguards: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("vanguards", "vanguardSystems")
    )
    assaults: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("assaults", "assaultSystems")
    )
    is_island: str = Field(
        default=NOT_AVAILABLE, validation_alias=AliasChoices("is_island", "isIslandConstellation")
    )
    influence: float = 0.0
    state: IncursionState
    state_updated_at: str = Field(
        default="", validation_alias=AliasChoices("state_updated_at", "stateUpdatedAt")
    )
    jumps_from_previous: int | str = Field(
        default=NOT_AVAILABLE,
        validation_alias=AliasChoices("jumps_from_previous", "numberOfJumpsFromLastIncursion"),
    )
    previous_headquarters: str = Field(
        default=NOT_AVAILABLE,
        validation_alias=AliasChoices("previous_headquarters", "lastIncursionSystemName"),
    )
    state_timestamps: dict[str, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("state_timestamps", "stateChangeTimestamps"),
    )

    @classmethod
    def from_domain(cls, record: EnrichedIncursion) -> CachedIncursion:
        return cls(
            constellation_id=record.constellation_id,
            constellation_name=record.constellation_name,
            region_id=record.region_id,
            region_icon_url=record.region_icon_url,
            headquarters=record.headquarters,
            headquarters_system_id=record.headquarters_system_id,
            staging=record.staging,
            vanguards=list(record.vanguards),
            assaults=list(record.assaults),
            is_island=record.is_island,
            influence=record.influence,
            state=record.state,
            state_updated_at=record.state_updated_at,
            jumps_from_previous=record.jumps_from_previous,
            previous_headquarters=record.previous_headquarters,
            state_timestamps=dict(record.state_timestamps),
        )

    def to_domain(self) -> EnrichedIncursion:
        jumps = self.jumps_from_previous
        if isinstance(jumps, str):
            jumps = int(jumps) if jumps.isdigit() else NOT_AVAILABLE
        return EnrichedIncursion(
            constellation_id=self.constellation_id,
            constellation_name=self.constellation_name,
            region_id=self.region_id,
            region_icon_url=self.region_icon_url,
            headquarters=self.headquarters,
            headquarters_system_id=self.headquarters_system_id,
            staging=self.staging,
            vanguards=tuple(self.vanguards),
            assaults=tuple(self.assaults),
            is_island=self.is_island,
            influence=self.influence,
            state=self.state,
            state_updated_at=self.state_updated_at,
            jumps_from_previous=jumps,
            previous_headquarters=self.previous_headquarters,
            state_timestamps=self.state_timestamps,
        )


@dataclass(frozen=True, slots=True)
class LastIncursionEntry:
    record: EnrichedIncursion
    updated_at: datetime


class SqlAlchemyLastIncursionRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def get(self) -> LastIncursionEntry | None:
        stmt = select(last_incursion_table.c.payload, last_incursion_table.c.updated_at).where(
            last_incursion_table.c.slot == _SLOT
        )
        with self.engine.connect() as connection:
            row = connection.execute(stmt).one_or_none()
        if row is None:
            return None
        payload, updated_at = row
        try:
            cached = CachedIncursion.model_validate_json(payload)
        except ValidationError as exc:
            log.warning("Discarding unreadable cached incursion: %s", exc)
            return None
        return LastIncursionEntry(record=cached.to_domain(), updated_at=updated_at)

    def put(self, record: EnrichedIncursion, *, updated_at: datetime) -> None:
        payload = CachedIncursion.from_domain(record).model_dump_json()
        try:
            with self.engine.begin() as connection:
                connection.execute(
                    delete(last_incursion_table).where(last_incursion_table.c.slot == _SLOT)
                )
                connection.execute(
                    insert(last_incursion_table).values(
                        slot=_SLOT, payload=payload, updated_at=updated_at
                    )
                )
        except SQLAlchemyError as exc:
            raise PersistenceWriteError(f"Failed to save last incursion: {exc}") from exc
