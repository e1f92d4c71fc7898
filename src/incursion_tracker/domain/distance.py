"""Jump distance between two systems via the route oracle."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .model import NOT_AVAILABLE

if TYPE_CHECKING:
    from .model import JumpCount, SystemId
    from .ports import ReferenceLookup

log = getLogger(__name__)


@dataclass(slots=True)
class DistanceEstimator:
    lookup: ReferenceLookup

    async def estimate_jumps(
        self,
        origin: SystemId | None,
        destination: SystemId | None,
    ) -> JumpCount:
        """Return the number of jumps between two systems, or ``"N/A"``.

        A route lists every system traversed including both endpoints, so the jump
        count is one less than its length. Failures are not retried here; the next
        poll cycle asks again.
        """

        if origin is None or destination is None:
            return NOT_AVAILABLE
        try:
            route = await self.lookup.get_route(origin, destination)
        except Exception as exc:  # noqa: BLE001
            log.warning("Route lookup %s -> %s failed: %s", origin, destination, exc)
            return NOT_AVAILABLE
        if not route:
            log.info("No route available from %s to %s", origin, destination)
            return NOT_AVAILABLE
        return len(route) - 1
