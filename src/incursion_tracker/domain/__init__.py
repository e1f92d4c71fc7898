"""Reconciliation engine for tracked incursions."""

from __future__ import annotations

from .distance import DistanceEstimator
from .errors import (
    IncompleteRecordError,
    PersistenceWriteError,
    ReconciliationError,
    SourceUnavailableError,
)
from .model import (
    NOT_AVAILABLE,
    ConstellationRecord,
    EnrichedIncursion,
    IncursionListing,
    IncursionState,
    Layout,
    RawIncursion,
    SystemRecord,
)
from .reconciliation import IncursionReconciler
from .resolver import ReferenceDataResolver, ReferenceTables
from .state_tracker import StateTimestampTracker

__all__ = [
    "NOT_AVAILABLE",
    "ConstellationRecord",
    "DistanceEstimator",
    "EnrichedIncursion",
    "IncompleteRecordError",
    "IncursionListing",
    "IncursionReconciler",
    "IncursionState",
    "Layout",
    "PersistenceWriteError",
    "RawIncursion",
    "ReconciliationError",
    "ReferenceDataResolver",
    "ReferenceTables",
    "SourceUnavailableError",
    "StateTimestampTracker",
    "SystemRecord",
]
