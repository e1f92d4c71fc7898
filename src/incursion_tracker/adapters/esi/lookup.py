"""ESI-backed implementations of the reconciliation ports."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from incursion_tracker.domain.errors import SourceUnavailableError
from incursion_tracker.domain.model import IncursionListing

from .client import EsiAPIError

if TYPE_CHECKING:
    from incursion_tracker.domain.model import ConstellationRecord, SystemRecord

    from .client import EsiClient

log = getLogger(__name__)


@dataclass(slots=True)
class EsiIncursionSource:
    client: EsiClient

    async def list_incursions(self) -> IncursionListing:
        try:
            response = await self.client.list_incursions()
        except (EsiAPIError, httpx.HTTPError) as exc:
            raise SourceUnavailableError(f"Failed to fetch incursions from ESI: {exc}") from exc
        return IncursionListing(
            incursions=tuple(incursion.to_domain() for incursion in response.data),
            expires_at=response.expires_at,
        )


@dataclass(slots=True)
class EsiReferenceLookup:
    """Reference lookups that report failures as absence."""

    client: EsiClient

    async def get_constellation(self, constellation_id: int) -> ConstellationRecord | None:
        try:
            payload = await self.client.get_constellation(constellation_id)
        except (EsiAPIError, httpx.HTTPError) as exc:
            log.warning("ESI constellation %s lookup failed: %s", constellation_id, exc)
            return None
        return payload.to_domain()

    async def get_system(self, system_id: int) -> SystemRecord | None:
        try:
            payload = await self.client.get_system(system_id)
        except (EsiAPIError, httpx.HTTPError) as exc:
            log.warning("ESI system %s lookup failed: %s", system_id, exc)
            return None
        return payload.to_domain()

    async def get_route(self, origin: int, destination: int) -> list[int] | None:
        try:
            return await self.client.get_route(origin, destination)
        except (EsiAPIError, httpx.HTTPError) as exc:
            log.warning("ESI route %s -> %s lookup failed: %s", origin, destination, exc)
            return None


if TYPE_CHECKING:
    from incursion_tracker.domain.ports import IncursionSource, ReferenceLookup

    def _port_checks(client: EsiClient) -> None:
        _source: IncursionSource = EsiIncursionSource(client)
        _lookup: ReferenceLookup = EsiReferenceLookup(client)
