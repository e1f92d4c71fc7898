"""Builders and in-memory fakes for incursion reconciliation tests."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from incursion_tracker.domain.errors import PersistenceWriteError, SourceUnavailableError
from incursion_tracker.domain.model import (
    ConstellationRecord,
    EnrichedIncursion,
    IncursionListing,
    IncursionState,
    Layout,
    RawIncursion,
    SystemRecord,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

START = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

ALPHA = ConstellationRecord(constellation_id=20000001, name="Alpha", region_id=10000001)
BRAVO = ConstellationRecord(constellation_id=20000002, name="Bravo", region_id=10000002)

ALPHA_STAGING = SystemRecord(30000001, "Alpha Staging", 0.62, ALPHA.constellation_id)
ALPHA_HQ = SystemRecord(30000002, "Alpha HQ", 0.55, ALPHA.constellation_id)
ALPHA_VANGUARD = SystemRecord(30000003, "Alpha Vanguard", 0.51, ALPHA.constellation_id)
BRAVO_STAGING = SystemRecord(30000011, "Bravo Staging", 0.40, BRAVO.constellation_id)
BRAVO_HQ = SystemRecord(30000012, "Bravo HQ", 0.35, BRAVO.constellation_id)

ALPHA_LAYOUT = Layout(
    constellation="Alpha",
    headquarters="Alpha HQ",
    staging="Alpha Staging",
    vanguards=("Alpha Vanguard",),
    assaults=("Alpha Staging",),
    is_island=False,
)


def make_incursion(
    constellation: ConstellationRecord = ALPHA,
    *,
    staging: SystemRecord = ALPHA_STAGING,
    infested: Sequence[SystemRecord] = (ALPHA_STAGING, ALPHA_HQ, ALPHA_VANGUARD),
    state: IncursionState = IncursionState.ESTABLISHED,
    influence: float = 0.25,
) -> RawIncursion:
    return RawIncursion(
        constellation_id=constellation.constellation_id,
        staging_solar_system_id=staging.system_id,
        infested_solar_systems=tuple(system.system_id for system in infested),
        state=state,
        influence=influence,
        faction_id=500019,
        has_boss=False,
        type="Incursion",
    )


def make_bravo_incursion(**overrides: object) -> RawIncursion:
    kwargs: dict[str, object] = {
        "staging": BRAVO_STAGING,
        "infested": (BRAVO_STAGING, BRAVO_HQ),
    }
    kwargs.update(overrides)
    return make_incursion(BRAVO, **kwargs)  # type: ignore[arg-type]


def make_enriched(
    constellation: ConstellationRecord = BRAVO,
    *,
    headquarters: SystemRecord | None = BRAVO_HQ,
    state: IncursionState = IncursionState.ESTABLISHED,
    state_timestamps: Mapping[str, str] | None = None,
) -> EnrichedIncursion:
    return EnrichedIncursion(
        constellation_id=constellation.constellation_id,
        constellation_name=constellation.name,
        region_id=constellation.region_id,
        region_icon_url="",
        headquarters=headquarters.name if headquarters else "N/A",
        headquarters_system_id=headquarters.system_id if headquarters else None,
        staging="N/A",
        vanguards=("N/A",),
        assaults=("N/A",),
        is_island="N/A",
        influence=0.5,
        state=state,
        state_updated_at="2026-02-27T08:00:00.000Z",
        state_timestamps=state_timestamps or {state.value: "2026-02-27T08:00:00.000Z"},
    )


@dataclass
class FixedClock:
    now: datetime = START

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeIncursionSource:
    """Replays listings in order; the last one repeats once exhausted."""

    def __init__(self, *listings: IncursionListing | Exception) -> None:
        self._listings = list(listings)
        self.calls = 0

    @classmethod
    def of(
        cls, *incursions: RawIncursion, expires_at: datetime | None = None
    ) -> FakeIncursionSource:
        return cls(IncursionListing(incursions=incursions, expires_at=expires_at))

    def push(self, listing: IncursionListing | Exception) -> None:
        self._listings.append(listing)

    async def list_incursions(self) -> IncursionListing:
        self.calls += 1
        item = self._listings.pop(0) if len(self._listings) > 1 else self._listings[0]
        if isinstance(item, Exception):
            raise item
        return item


def unavailable() -> SourceUnavailableError:
    return SourceUnavailableError("upstream returned 503")


@dataclass
class FakeReferenceLookup:
    constellations: dict[int, ConstellationRecord] = field(default_factory=dict)
    systems: dict[int, SystemRecord] = field(default_factory=dict)
    routes: dict[tuple[int, int], list[int]] = field(default_factory=dict)
    failing: set[int] = field(default_factory=set)
    calls: list[tuple[str, int]] = field(default_factory=list)

    @classmethod
    def with_records(
        cls,
        constellations: Iterable[ConstellationRecord] = (ALPHA, BRAVO),
        systems: Iterable[SystemRecord] = (
            ALPHA_STAGING,
            ALPHA_HQ,
            ALPHA_VANGUARD,
            BRAVO_STAGING,
            BRAVO_HQ,
        ),
    ) -> FakeReferenceLookup:
        return cls(
            constellations={record.constellation_id: record for record in constellations},
            systems={record.system_id: record for record in systems},
        )

    async def get_constellation(self, constellation_id: int) -> ConstellationRecord | None:
        self.calls.append(("constellation", constellation_id))
        if constellation_id in self.failing:
            raise RuntimeError(f"lookup of {constellation_id} exploded")
        return self.constellations.get(constellation_id)

    async def get_system(self, system_id: int) -> SystemRecord | None:
        self.calls.append(("system", system_id))
        if system_id in self.failing:
            raise RuntimeError(f"lookup of {system_id} exploded")
        return self.systems.get(system_id)

    async def get_route(self, origin: int, destination: int) -> list[int] | None:
        self.calls.append(("route", origin))
        if origin in self.failing:
            raise RuntimeError(f"route from {origin} exploded")
        return self.routes.get((origin, destination))


@dataclass
class FakeStateTimestampStore:
    stored: dict[int, dict[str, str]] = field(default_factory=dict)
    fail_load: bool = False
    fail_save: bool = False
    saves: list[dict[int, dict[str, str]]] = field(default_factory=list)
    save_threads: list[int] = field(default_factory=list)

    def load(self) -> dict[int, dict[str, str]]:
        if self.fail_load:
            raise RuntimeError("store offline")
        return {key: dict(value) for key, value in self.stored.items()}

    def save(self, timestamps: Mapping[int, Mapping[str, str]]) -> None:
        if self.fail_save:
            raise PersistenceWriteError("disk full")
        snapshot = {key: dict(value) for key, value in timestamps.items()}
        self.save_threads.append(threading.get_ident())
        self.saves.append(snapshot)
        self.stored = snapshot
