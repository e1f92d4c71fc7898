"""Derived times for an incursion's life and the gap before the next spawn."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Final

from .model import IncursionState

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .model import EnrichedIncursion

MOBILIZING_LIFETIME: Final = timedelta(hours=72)
WITHDRAWING_LIFETIME: Final = timedelta(hours=24)
SPAWN_WINDOW_OPENS_AFTER: Final = timedelta(hours=12)
SPAWN_WINDOW_CLOSES_AFTER: Final = timedelta(hours=36)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into an aware UTC datetime."""

    normalized = value.strip()
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise ValueError(f"Invalid ISO timestamp: {value}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def estimate_despawn(record: EnrichedIncursion) -> datetime | None:
    """Latest time the incursion can still be up, when its state allows an estimate."""

    if record.state is IncursionState.MOBILIZING:
        lifetime = MOBILIZING_LIFETIME
    elif record.state is IncursionState.WITHDRAWING:
        lifetime = WITHDRAWING_LIFETIME
    else:
        return None
    started = record.state_timestamps.get(record.state.value)
    if started is None:
        return None
    return parse_timestamp(started) + lifetime


def ended_normally(state_timestamps: Mapping[str, str]) -> bool:
    """Whether an incursion progressed past established before disappearing.

    An incursion that vanished while still established was closed out early.
    """

    return any(
        state_timestamps.get(state.value)
        for state in (IncursionState.MOBILIZING, IncursionState.WITHDRAWING)
    )


@dataclass(frozen=True, slots=True)
class SpawnWindow:
    opens_at: datetime
    closes_at: datetime

    def is_open(self, now: datetime) -> bool:
        return now >= self.opens_at


def spawn_window(last_seen_at: datetime) -> SpawnWindow:
    """Window in which the next incursion is expected after one was last seen."""

    if last_seen_at.tzinfo is None:
        last_seen_at = last_seen_at.replace(tzinfo=UTC)
    return SpawnWindow(
        opens_at=last_seen_at + SPAWN_WINDOW_OPENS_AFTER,
        closes_at=last_seen_at + SPAWN_WINDOW_CLOSES_AFTER,
    )
