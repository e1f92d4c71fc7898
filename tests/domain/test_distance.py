from __future__ import annotations

import asyncio

from incursion_tracker.domain.distance import DistanceEstimator
from incursion_tracker.domain.model import NOT_AVAILABLE
from tests.helpers.incursions import FakeReferenceLookup


def test_jump_count_is_route_length_minus_one() -> None:
    lookup = FakeReferenceLookup(routes={(1, 4): [1, 2, 3, 4]})

    assert asyncio.run(DistanceEstimator(lookup).estimate_jumps(1, 4)) == 3


def test_same_system_is_zero_jumps() -> None:
    lookup = FakeReferenceLookup(routes={(5, 5): [5]})

    assert asyncio.run(DistanceEstimator(lookup).estimate_jumps(5, 5)) == 0


def test_missing_endpoint_is_not_available() -> None:
    lookup = FakeReferenceLookup(routes={(1, 4): [1, 2, 3, 4]})
    estimator = DistanceEstimator(lookup)

    assert asyncio.run(estimator.estimate_jumps(None, 4)) == NOT_AVAILABLE
    assert asyncio.run(estimator.estimate_jumps(1, None)) == NOT_AVAILABLE
    assert lookup.calls == []


def test_unreachable_or_empty_route_is_not_available() -> None:
    lookup = FakeReferenceLookup(routes={(1, 2): []})
    estimator = DistanceEstimator(lookup)

    assert asyncio.run(estimator.estimate_jumps(1, 2)) == NOT_AVAILABLE
    assert asyncio.run(estimator.estimate_jumps(1, 3)) == NOT_AVAILABLE


def test_route_failure_is_not_available() -> None:
    lookup = FakeReferenceLookup(routes={(1, 4): [1, 4]}, failing={1})

    assert asyncio.run(DistanceEstimator(lookup).estimate_jumps(1, 4)) == NOT_AVAILABLE
