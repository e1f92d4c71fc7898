"""First-observation timestamps per incursion lifecycle state.

The tracker owns the in-memory map ``constellation id -> state -> ISO timestamp``.
Reads are always served from memory; every new insertion is written through to the
durable store. Once a ``(constellation, state)`` pair has a timestamp it is never
replaced.

Two sources can seed the map at startup: the durable store and the state history
embedded in previously emitted records. When both carry a value for the same pair,
the durable store wins.
"""

from __future__ import annotations

import asyncio
import copy
import threading
from datetime import UTC, datetime
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

from .model import STATE_NAMES, IncursionState

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .model import ConstellationId, EnrichedIncursion, StateTimestamps
    from .ports import StateTimestampStore

log = getLogger(__name__)


def format_timestamp(value: datetime) -> str:
    """Render ``value`` as ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _normalize(
    raw: Mapping[ConstellationId, Mapping[str, str]] | Mapping[str, Mapping[str, str]],
) -> StateTimestamps:
    """Coerce keys to ints and drop states outside the lifecycle set."""

    result: StateTimestamps = {}
    for entity_key, states in raw.items():
        try:
            entity_id = int(entity_key)
        except (TypeError, ValueError):
            log.warning("Ignoring timestamps for non-numeric constellation key %r", entity_key)
            continue
        kept = {
            str(state): str(stamp)
            for state, stamp in states.items()
            if state in STATE_NAMES and stamp
        }
        if kept:
            result[entity_id] = kept
    return result


class StateTimestampTracker:
    """Tracks when each incursion was first seen in each lifecycle state."""

    def __init__(
        self,
        store: StateTimestampStore | None = None,
        *,
        initial: Mapping[ConstellationId, Mapping[str, str]] | None = None,
    ) -> None:
        self._store = store
        self._timestamps: StateTimestamps = _normalize(initial or {})
        # saves older than the last successful one are skipped
        self._version = 0
        self._saved_version = 0
        self._save_lock = threading.Lock()

    @classmethod
    def seed(
        cls,
        store: StateTimestampStore | None,
        *,
        previous: Iterable[EnrichedIncursion] = (),
    ) -> StateTimestampTracker:
        """Build a tracker from the durable store, filling gaps from previous records."""

        durable: StateTimestamps = {}
        if store is not None:
            try:
                durable = _normalize(store.load())
            except Exception:
                log.exception("Failed to load persisted state timestamps; starting empty")

        merged: StateTimestamps = copy.deepcopy(durable)
        for record in previous:
            history = _normalize({record.constellation_id: record.state_timestamps})
            for state, stamp in history.get(record.constellation_id, {}).items():
                entity = merged.setdefault(record.constellation_id, {})
                existing = entity.get(state)
                if existing is None:
                    entity[state] = stamp
                elif existing != stamp:
                    log.debug(
                        "Keeping stored %s timestamp %s for constellation %s over cached %s",
                        state,
                        existing,
                        record.constellation_id,
                        stamp,
                    )

        tracker = cls(store, initial=merged)
        if merged != durable:
            tracker._version += 1
            tracker._persist()
        return tracker

    def record_observed_state(
        self,
        entity_id: ConstellationId,
        state: IncursionState | str,
        observed_at: datetime | str,
    ) -> str:
        """Return the first-observation timestamp for ``(entity_id, state)``.

        The first call for a pair stores ``observed_at``; later calls return the stored
        value unchanged.
        """

        stamp, inserted = self._insert(entity_id, state, observed_at)
        if inserted:
            self._persist()
        return stamp

    async def observe(
        self,
        entity_id: ConstellationId,
        state: IncursionState | str,
        observed_at: datetime | str,
    ) -> str:
        """Like :meth:`record_observed_state`, with the store write run in a worker thread."""

        stamp, inserted = self._insert(entity_id, state, observed_at)
        if inserted and self._store is not None:
            await asyncio.to_thread(self._save, self.snapshot(), self._version)
        return stamp

    def timestamps_for(self, entity_id: ConstellationId) -> Mapping[str, str]:
        return MappingProxyType(dict(self._timestamps.get(entity_id, {})))

    def snapshot(self) -> StateTimestamps:
        return copy.deepcopy(self._timestamps)

    def forget(self, entity_ids: Iterable[ConstellationId]) -> None:
        removed = False
        for entity_id in entity_ids:
            removed = self._timestamps.pop(entity_id, None) is not None or removed
        if removed:
            self._version += 1
            self._persist()

    def _insert(
        self,
        entity_id: ConstellationId,
        state: IncursionState | str,
        observed_at: datetime | str,
    ) -> tuple[str, bool]:
        state_name = IncursionState(state).value
        entity = self._timestamps.setdefault(entity_id, {})
        existing = entity.get(state_name)
        if existing is not None:
            return existing, False

        stamp = observed_at if isinstance(observed_at, str) else format_timestamp(observed_at)
        entity[state_name] = stamp
        self._version += 1
        log.info("Constellation %s entered %s at %s", entity_id, state_name, stamp)
        return stamp, True

    def _persist(self) -> None:
        if self._store is None:
            return
        self._save(self.snapshot(), self._version)

    def _save(self, snapshot: StateTimestamps, version: int) -> None:
        if self._store is None:
            return
        with self._save_lock:
            if version <= self._saved_version:
                return
            try:
                self._store.save(snapshot)
            except Exception:
                # in-memory value stays authoritative for this process
                log.exception("Failed to persist state timestamps")
                return
            self._saved_version = version
