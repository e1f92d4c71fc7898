"""Ports for the collaborators consumed by the reconciliation engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .model import (
        ConstellationId,
        ConstellationRecord,
        IncursionListing,
        Layout,
        SystemId,
        SystemRecord,
    )


@runtime_checkable
class IncursionSource(Protocol):
    """Provides the current incursion list.

    Implementations raise ``SourceUnavailableError`` when the list cannot be fetched.
    """

    async def list_incursions(self) -> IncursionListing: ...


@runtime_checkable
class ReferenceLookup(Protocol):
    """Resolves identifiers into records; ``None`` means absent."""

    async def get_constellation(
        self, constellation_id: ConstellationId
    ) -> ConstellationRecord | None: ...

    async def get_system(self, system_id: SystemId) -> SystemRecord | None: ...

    async def get_route(self, origin: SystemId, destination: SystemId) -> Sequence[SystemId] | None: ...


@runtime_checkable
class LayoutLookup(Protocol):
    def find_layout(self, constellation_name: str) -> Layout | None: ...


@runtime_checkable
class RegionIconLookup(Protocol):
    def find_region_icon_url(self, region_id: int) -> str | None: ...


@runtime_checkable
class StateTimestampStore(Protocol):
    """Durable storage for first-observation timestamps.

    ``save`` raises ``PersistenceWriteError`` on failure; callers treat it as non-fatal.
    """

    def load(self) -> Mapping[ConstellationId, Mapping[str, str]]: ...

    def save(self, timestamps: Mapping[ConstellationId, Mapping[str, str]]) -> None: ...


__all__ = [
    "IncursionSource",
    "LayoutLookup",
    "ReferenceLookup",
    "RegionIconLookup",
    "StateTimestampStore",
]
