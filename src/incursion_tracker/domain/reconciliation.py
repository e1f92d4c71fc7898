"""Poll-cycle orchestration: fetch, resolve, reconcile, aggregate.

The phases run strictly in sequence. Inside the resolve and reconcile phases all
work for the batch runs concurrently; an incursion whose supporting data is missing
is dropped on its own without affecting its siblings. Only a failed fetch of the
incursion list fails the whole cycle.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from incursion_tracker.config.tracker import FAILURE_BACKOFF_SECONDS, HIGH_SEC_THRESHOLD

from .distance import DistanceEstimator
from .errors import IncompleteRecordError, SourceUnavailableError
from .model import NOT_AVAILABLE, EnrichedIncursion
from .resolver import ReferenceDataResolver, ReferenceTables

if TYPE_CHECKING:
    from collections.abc import Callable

    from .model import ConstellationRecord, JumpCount, Layout, RawIncursion, SystemRecord
    from .ports import (
        IncursionSource,
        LayoutLookup,
        ReferenceLookup,
        RegionIconLookup,
    )
    from .state_tracker import StateTimestampTracker

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def displayed_influence(raw: float) -> float:
    """Convert upstream remaining stability into the displayed influence fraction."""

    if math.isnan(raw):
        log.warning("Influence is NaN; reporting no influence")
        raw = 1.0
    elif raw < 0.0 or raw > 1.0:
        log.warning("Influence %s outside [0, 1]; clamping", raw)
        raw = min(max(raw, 0.0), 1.0)
    return 1.0 - raw


@dataclass(frozen=True, slots=True)
class _LayoutView:
    headquarters: str = NOT_AVAILABLE
    headquarters_system_id: int | None = None
    staging: str = NOT_AVAILABLE
    vanguards: tuple[str, ...] = (NOT_AVAILABLE,)
    assaults: tuple[str, ...] = (NOT_AVAILABLE,)
    is_island: str = NOT_AVAILABLE


@dataclass(slots=True)
class IncursionReconciler:
    """Drives one poll cycle against the configured collaborators."""

    source: IncursionSource
    lookup: ReferenceLookup
    layouts: LayoutLookup
    region_icons: RegionIconLookup
    tracker: StateTimestampTracker
    high_sec_only: bool = False
    high_sec_threshold: float = HIGH_SEC_THRESHOLD
    failure_backoff: timedelta = field(
        default_factory=lambda: timedelta(seconds=FAILURE_BACKOFF_SECONDS)
    )
    clock: Callable[[], datetime] = _utcnow
    _next_poll_deadline: datetime = field(init=False)

    def __post_init__(self) -> None:
        self._next_poll_deadline = self.clock()

    @property
    def next_poll_deadline(self) -> datetime:
        """When the caller should run the next cycle."""

        return self._next_poll_deadline

    async def reconcile(
        self,
        previous: EnrichedIncursion | None = None,
    ) -> list[EnrichedIncursion] | None:
        """Run a full cycle; ``None`` signals that the incursion list was unavailable."""

        try:
            listing = await self.source.list_incursions()
        except SourceUnavailableError as exc:
            self._next_poll_deadline = self.clock() + self.failure_backoff
            log.error(
                "Incursion list unavailable (%s); retrying at %s",
                exc,
                self._next_poll_deadline.isoformat(),
            )
            return None

        now = self.clock()
        self._next_poll_deadline = listing.expires_at or now + self.failure_backoff

        tables = await ReferenceDataResolver(self.lookup).resolve(listing.incursions)
        distance = DistanceEstimator(self.lookup)

        results = await asyncio.gather(
            *(
                self._reconcile_one(incursion, tables, distance, previous, now)
                for incursion in listing.incursions
            )
        )
        records = [record for record in results if record is not None]
        log.info(
            "Reconciled %d of %d incursions; next poll at %s",
            len(records),
            len(listing.incursions),
            self._next_poll_deadline.isoformat(),
        )
        return records

    async def _reconcile_one(
        self,
        incursion: RawIncursion,
        tables: ReferenceTables,
        distance: DistanceEstimator,
        previous: EnrichedIncursion | None,
        now: datetime,
    ) -> EnrichedIncursion | None:
        try:
            constellation, staging = self._require_references(incursion, tables)
        except IncompleteRecordError as exc:
            log.error("%s (unresolved: %s)", exc, ", ".join(exc.missing))
            return None

        if self.high_sec_only and staging.security_status < self.high_sec_threshold:
            return None

        region_icon_url = self.region_icons.find_region_icon_url(constellation.region_id) or ""
        layout = self._layout_view(self.layouts.find_layout(constellation.name), tables)

        state_updated_at = await self.tracker.observe(
            incursion.constellation_id, incursion.state, now
        )

        jumps, previous_headquarters = await self._measure(
            distance, previous, layout.headquarters_system_id
        )

        return EnrichedIncursion(
            constellation_id=incursion.constellation_id,
            constellation_name=constellation.name,
            region_id=constellation.region_id,
            region_icon_url=region_icon_url,
            headquarters=layout.headquarters,
            headquarters_system_id=layout.headquarters_system_id,
            staging=layout.staging,
            vanguards=layout.vanguards,
            assaults=layout.assaults,
            is_island=layout.is_island,
            influence=displayed_influence(incursion.influence),
            state=incursion.state,
            state_updated_at=state_updated_at,
            jumps_from_previous=jumps,
            previous_headquarters=previous_headquarters,
            state_timestamps=self.tracker.timestamps_for(incursion.constellation_id),
        )

    async def remeasure(
        self,
        records: list[EnrichedIncursion],
        previous: EnrichedIncursion | None,
    ) -> list[EnrichedIncursion]:
        """Recompute the distance fields of ``records`` against another previous record."""

        distance = DistanceEstimator(self.lookup)

        async def measure(record: EnrichedIncursion) -> EnrichedIncursion:
            jumps, previous_headquarters = await self._measure(
                distance, previous, record.headquarters_system_id
            )
            return replace(
                record, jumps_from_previous=jumps, previous_headquarters=previous_headquarters
            )

        return list(await asyncio.gather(*(measure(record) for record in records)))

    @staticmethod
    async def _measure(
        distance: DistanceEstimator,
        previous: EnrichedIncursion | None,
        headquarters_system_id: int | None,
    ) -> tuple[JumpCount, str]:
        if previous is None:
            return NOT_AVAILABLE, NOT_AVAILABLE
        if previous.headquarters_system_id is None:
            return NOT_AVAILABLE, previous.headquarters
        jumps = await distance.estimate_jumps(
            previous.headquarters_system_id, headquarters_system_id
        )
        return jumps, previous.headquarters

    @staticmethod
    def _require_references(
        incursion: RawIncursion, tables: ReferenceTables
    ) -> tuple[ConstellationRecord, SystemRecord]:
        missing: list[str] = []
        constellation = tables.constellations_by_id.get(incursion.constellation_id)
        if constellation is None:
            missing.append(f"constellation {incursion.constellation_id}")
        staging = tables.systems_by_id.get(incursion.staging_solar_system_id)
        if staging is None:
            missing.append(f"staging system {incursion.staging_solar_system_id}")
        missing.extend(
            f"system {system_id}"
            for system_id in incursion.infested_solar_systems
            if system_id not in tables.systems_by_id
        )
        if missing or constellation is None or staging is None:
            raise IncompleteRecordError(incursion, missing=missing)
        return constellation, staging

    @staticmethod
    def _layout_view(layout: Layout | None, tables: ReferenceTables) -> _LayoutView:
        if layout is None:
            return _LayoutView()
        headquarters = tables.systems_by_name.get(layout.headquarters)
        if headquarters is None:
            log.warning(
                "Headquarters %s of %s is not among the resolved systems",
                layout.headquarters,
                layout.constellation,
            )
        return _LayoutView(
            headquarters=layout.headquarters,
            headquarters_system_id=headquarters.system_id if headquarters else None,
            staging=layout.staging,
            vanguards=layout.vanguards,
            assaults=layout.assaults,
            is_island="Yes" if layout.is_island else "No",
        )
