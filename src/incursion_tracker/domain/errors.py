"""Failure categories raised or logged by the reconciliation engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .model import RawIncursion


class ReconciliationError(RuntimeError):
    """Base class for reconciliation failures."""


class SourceUnavailableError(ReconciliationError):
    """Raised when the upstream incursion list cannot be fetched."""


class IncompleteRecordError(ReconciliationError):
    """Raised when an incursion's reference data could not be fully resolved."""

    def __init__(self, incursion: RawIncursion, *, missing: list[str]) -> None:
        super().__init__(f"Missing information for incursion: {incursion.describe()}")
        self.incursion = incursion
        self.missing = missing


class PersistenceWriteError(ReconciliationError):
    """Raised by timestamp stores when a durable write fails."""
