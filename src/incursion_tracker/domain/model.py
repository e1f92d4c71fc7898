"""Domain types for incursion reconciliation (pure, dependency-light)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Final, Literal

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

NOT_AVAILABLE: Final = "N/A"

type NotAvailable = Literal["N/A"]
type JumpCount = int | NotAvailable
type ConstellationId = int
type SystemId = int
type StateTimestamps = dict[ConstellationId, dict[str, str]]


class IncursionState(StrEnum):
    ESTABLISHED = "established"
    MOBILIZING = "mobilizing"
    WITHDRAWING = "withdrawing"


STATE_NAMES: Final[frozenset[str]] = frozenset(state.value for state in IncursionState)


@dataclass(frozen=True, slots=True)
class RawIncursion:
    """One incursion as reported by the upstream event list."""

    constellation_id: ConstellationId
    staging_solar_system_id: SystemId
    infested_solar_systems: tuple[SystemId, ...]
    state: IncursionState
    influence: float
    faction_id: int | None = None
    has_boss: bool = False
    type: str | None = None

    def describe(self) -> dict[str, object]:
        return {
            "constellation_id": self.constellation_id,
            "staging_solar_system_id": self.staging_solar_system_id,
            "infested_solar_systems": list(self.infested_solar_systems),
            "state": str(self.state),
            "influence": self.influence,
            "faction_id": self.faction_id,
            "has_boss": self.has_boss,
            "type": self.type,
        }


@dataclass(frozen=True, slots=True)
class IncursionListing:
    """Event list plus the upstream cache expiry used to schedule the next poll."""

    incursions: tuple[RawIncursion, ...]
    expires_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class ConstellationRecord:
    constellation_id: ConstellationId
    name: str
    region_id: int


@dataclass(frozen=True, slots=True)
class SystemRecord:
    system_id: SystemId
    name: str
    security_status: float
    constellation_id: ConstellationId | None = None


@dataclass(frozen=True, slots=True)
class Layout:
    """Fixed tactical layout of an incursion constellation."""

    constellation: str
    headquarters: str
    staging: str
    vanguards: tuple[str, ...]
    assaults: tuple[str, ...]
    is_island: bool


@dataclass(frozen=True, slots=True)
class EnrichedIncursion:
    """Render-ready view of one incursion for a single poll cycle."""

    constellation_id: ConstellationId
    constellation_name: str
    region_id: int
    region_icon_url: str
    headquarters: str
    headquarters_system_id: SystemId | None
    staging: str
    vanguards: tuple[str, ...]
    assaults: tuple[str, ...]
    is_island: str
    influence: float
    state: IncursionState
    state_updated_at: str
    jumps_from_previous: JumpCount = NOT_AVAILABLE
    previous_headquarters: str = NOT_AVAILABLE
    state_timestamps: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        # snapshot so later tracker updates never leak into a built record
        frozen = MappingProxyType(dict(self.state_timestamps))
        object.__setattr__(self, "state_timestamps", frozen)

