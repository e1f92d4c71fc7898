"""HTTP client for the EVE Swagger Interface."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from incursion_tracker.adapters.http_resilience import ResilientClient

from .schema import EsiConstellation, EsiError, EsiIncursion, EsiIncursionList, EsiRoute, EsiSystem

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from types import TracebackType

    import httpx

    from incursion_tracker.config.esi import EsiConfig
    from incursion_tracker.config.http_resilience import ResilienceConfig

log = getLogger(__name__)


class EsiAPIError(RuntimeError):
    """Raised when ESI returns an error or an unexpected payload."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True, slots=True)
class EsiResponse[T]:
    data: T
    expires_at: datetime | None = None


def parse_expires(value: str | None) -> datetime | None:
    """Parse an HTTP ``Expires`` header into an aware UTC datetime."""

    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        log.warning("Ignoring unparsable Expires header %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


class EsiClient:
    """Low-level async client for the ESI endpoints the tracker reads."""

    def __init__(
        self,
        *,
        config: EsiConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> EsiClient:
        self._client = self._client_factory(self._resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @asynccontextmanager
    async def cycle(self) -> AsyncIterator[EsiClient]:
        """Serve one poll cycle from a fresh HTTP client.

        Responses cached while the cycle runs are dropped with that client, so reference
        data is fetched again on the next cycle.
        """

        outer = self._client
        scoped = self._client_factory(self._resilience)
        self._client = scoped
        try:
            yield self
        finally:
            await scoped.aclose()
            self._client = outer

    async def list_incursions(self) -> EsiResponse[list[EsiIncursion]]:
        response = await self._perform_request("incursions/")
        payload = self._decode(response, EsiIncursionList)
        return EsiResponse(
            data=payload.root,
            expires_at=parse_expires(response.headers.get("expires")),
        )

    async def get_constellation(self, constellation_id: int) -> EsiConstellation:
        response = await self._perform_request(f"universe/constellations/{constellation_id}/")
        return self._decode(response, EsiConstellation)

    async def get_system(self, system_id: int) -> EsiSystem:
        response = await self._perform_request(f"universe/systems/{system_id}/")
        return self._decode(response, EsiSystem)

    async def get_route(self, origin: int, destination: int) -> list[int]:
        response = await self._perform_request(f"route/{origin}/{destination}/")
        return self._decode(response, EsiRoute).root

    async def _perform_request(self, path: str) -> httpx.Response:
        if self._client is None:
            raise EsiAPIError("ESI client used outside of its async context")
        if self._resilience.base_url is None:
            raise EsiAPIError("Missing ESI base_url in resilience configuration")

        response = await self._client.get(path, params={"datasource": self._config.datasource})
        if response.is_error:
            message = _error_message(response)
            log.debug("ESI %s returned %s: %s", path, response.status_code, message)
            raise EsiAPIError(
                f"ESI {path} failed with {response.status_code}: {message}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _decode[M: BaseModel](response: httpx.Response, model: type[M]) -> M:
        try:
            return model.model_validate_json(response.content)
        except ValidationError as exc:
            raise EsiAPIError(
                f"Unexpected ESI payload for {model.__name__}: {exc.error_count()} errors",
                status_code=response.status_code,
            ) from exc


def _error_message(response: httpx.Response) -> str:
    try:
        return EsiError.model_validate_json(response.content).error
    except ValidationError:
        return response.reason_phrase or "unknown error"
