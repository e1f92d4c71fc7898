"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from incursion_tracker.adapters.esi import EsiClient, EsiIncursionSource, EsiReferenceLookup
from incursion_tracker.adapters.sqlalchemy import (
    SqlAlchemyLastIncursionRepository,
    SqlAlchemyStateTimestampStore,
    configured_engine,
    is_started,
    startup,
)
from incursion_tracker.adapters.static_data import JsonLayoutLookup, JsonRegionIconLookup
from incursion_tracker.config import get_esi_config, get_tracker_config
from incursion_tracker.domain.errors import PersistenceWriteError
from incursion_tracker.domain.reconciliation import IncursionReconciler
from incursion_tracker.domain.state_tracker import StateTimestampTracker
from incursion_tracker.domain.timeline import ended_normally, spawn_window

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable
    from contextlib import AbstractAsyncContextManager

    from sqlalchemy.engine import Engine

    from incursion_tracker.adapters.http_resilience import ResilientClient
    from incursion_tracker.config import EsiConfig, ResilienceConfig, TrackerConfig
    from incursion_tracker.domain.model import EnrichedIncursion

    CycleCallback = Callable[["PollCycleResult"], None]
    Sleeper = Callable[[float], Awaitable[None]]

MIN_POLL_INTERVAL_SECONDS = 5.0

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(slots=True)
class PollCycleResult:
    """Outcome of one poll cycle as seen by the caller."""

    records: list[EnrichedIncursion] | None
    next_poll_at: datetime
    current: EnrichedIncursion | None = None

    @property
    def succeeded(self) -> bool:
        return self.records is not None


@dataclass(slots=True)
class IncursionWatch:
    """Runs poll cycles and carries the tracked incursion from one cycle to the next.

    ``current`` is the incursion being tracked; ``previous`` is the one tracked before
    it and anchors the jump distance reported for new records.
    ``cycle_scope``, when set, wraps every cycle so per-cycle resources are released.
    """

    reconciler: IncursionReconciler
    history: SqlAlchemyLastIncursionRepository | None = None
    current: EnrichedIncursion | None = None
    previous: EnrichedIncursion | None = None
    last_seen_at: datetime | None = None
    clock: Callable[[], datetime] = _utcnow
    cycle_scope: Callable[[], AbstractAsyncContextManager[object]] | None = None

    async def run_cycle(self) -> PollCycleResult:
        if self.cycle_scope is None:
            return await self._reconcile_cycle()
        async with self.cycle_scope():
            return await self._reconcile_cycle()

    async def _reconcile_cycle(self) -> PollCycleResult:
        records = await self.reconciler.reconcile(self.previous)
        deadline = self.reconciler.next_poll_deadline
        if records is None:
            return PollCycleResult(records=None, next_poll_at=deadline, current=self.current)

        if records:
            primary = self._select_primary(records)
            if self._moved_to(primary):
                # this cycle's distances were taken from the anchor now being replaced
                self.previous = self.current
                records = await self.reconciler.remeasure(records, self.previous)
                primary = self._select_primary(records)
            self._track(primary)
        else:
            self._report_quiet_period()
        return PollCycleResult(records=records, next_poll_at=deadline, current=self.current)

    async def run(
        self,
        *,
        max_cycles: int | None = None,
        on_cycle: CycleCallback | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> PollCycleResult | None:
        result: PollCycleResult | None = None
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            result = await self.run_cycle()
            cycles += 1
            if on_cycle is not None:
                on_cycle(result)
            if max_cycles is not None and cycles >= max_cycles:
                break
            delay = (result.next_poll_at - self.clock()).total_seconds()
            await sleep(max(delay, MIN_POLL_INTERVAL_SECONDS))
        return result

    def _select_primary(self, records: list[EnrichedIncursion]) -> EnrichedIncursion:
        if self.current is not None:
            for record in records:
                if record.constellation_id == self.current.constellation_id:
                    return record
        return min(records, key=lambda record: (record.constellation_name, record.constellation_id))

    def _moved_to(self, primary: EnrichedIncursion) -> bool:
        if self.current is None or self.current.constellation_id == primary.constellation_id:
            return False
        log.info(
            "Tracked incursion moved from %s to %s",
            self.current.constellation_name,
            primary.constellation_name,
        )
        return True

    def _track(self, primary: EnrichedIncursion) -> None:
        self.current = primary
        self.last_seen_at = self.clock()
        if self.history is None:
            return
        try:
            self.history.put(primary, updated_at=self.last_seen_at)
        except PersistenceWriteError:
            log.exception("Failed to persist tracked incursion %s", primary.constellation_name)

    def _report_quiet_period(self) -> None:
        if self.current is None or self.last_seen_at is None:
            log.info("No incursions active and none tracked yet")
            return
        window = spawn_window(self.last_seen_at)
        now = self.clock()
        outcome = "ended normally" if ended_normally(self.current.state_timestamps) else "ended early"
        if window.is_open(now):
            log.info(
                "No incursions active; %s %s; next spawn expected by %s",
                self.current.constellation_name,
                outcome,
                window.closes_at.isoformat(),
            )
        else:
            log.info(
                "No incursions active; %s %s; next spawn window opens at %s",
                self.current.constellation_name,
                outcome,
                window.opens_at.isoformat(),
            )


@asynccontextmanager
async def open_incursion_watch(
    *,
    tracker_config: TrackerConfig | None = None,
    esi_config: EsiConfig | None = None,
    engine: Engine | None = None,
    client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
) -> AsyncIterator[IncursionWatch]:
    """Wire the ESI adapters, static data and persistence into a ready watch."""

    effective_tracker_config = tracker_config or get_tracker_config()
    effective_esi_config = esi_config or get_esi_config()
    if engine is None:
        if not is_started():
            startup()
        engine = configured_engine()

    history = SqlAlchemyLastIncursionRepository(engine)
    last_entry = history.get()
    tracker = StateTimestampTracker.seed(
        SqlAlchemyStateTimestampStore(engine),
        previous=[last_entry.record] if last_entry else (),
    )
    layouts = JsonLayoutLookup.from_path(effective_tracker_config.layouts_path)
    region_icons = JsonRegionIconLookup.from_path(effective_tracker_config.region_icons_path)

    async with EsiClient(config=effective_esi_config, client_factory=client_factory) as client:
        reconciler = IncursionReconciler(
            source=EsiIncursionSource(client),
            lookup=EsiReferenceLookup(client),
            layouts=layouts,
            region_icons=region_icons,
            tracker=tracker,
            high_sec_only=effective_tracker_config.high_sec_only,
            high_sec_threshold=effective_tracker_config.high_sec_threshold,
            failure_backoff=timedelta(seconds=effective_tracker_config.failure_backoff_seconds),
        )
        yield IncursionWatch(
            reconciler=reconciler,
            history=history,
            current=last_entry.record if last_entry else None,
            last_seen_at=last_entry.updated_at if last_entry else None,
            cycle_scope=client.cycle,
        )


def watch_incursions(
    *,
    max_cycles: int | None = None,
    on_cycle: CycleCallback | None = None,
    tracker_config: TrackerConfig | None = None,
    esi_config: EsiConfig | None = None,
    engine: Engine | None = None,
    client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
) -> PollCycleResult | None:
    """Poll ESI until ``max_cycles`` cycles have run (forever when ``None``)."""

    async def _run() -> PollCycleResult | None:
        async with open_incursion_watch(
            tracker_config=tracker_config,
            esi_config=esi_config,
            engine=engine,
            client_factory=client_factory,
        ) as watch:
            log.info(
                "Starting incursion watch: max_cycles=%s, high_sec_only=%s",
                max_cycles,
                watch.reconciler.high_sec_only,
            )
            return await watch.run(max_cycles=max_cycles, on_cycle=on_cycle)

    return asyncio.run(_run())
