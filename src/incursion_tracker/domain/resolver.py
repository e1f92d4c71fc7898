"""Concurrent resolution of constellation and system identifiers."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterable, Mapping

    from .model import (
        ConstellationId,
        ConstellationRecord,
        RawIncursion,
        SystemId,
        SystemRecord,
    )
    from .ports import ReferenceLookup

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReferenceTables:
    """Lookup tables for one reconciliation run, read-only once built."""

    systems_by_id: Mapping[SystemId, SystemRecord] = field(
        default_factory=lambda: MappingProxyType({})
    )
    systems_by_name: Mapping[str, SystemRecord] = field(
        default_factory=lambda: MappingProxyType({})
    )
    constellations_by_id: Mapping[ConstellationId, ConstellationRecord] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def infested_system_names(self, incursion: RawIncursion) -> list[str]:
        names: list[str] = []
        for system_id in incursion.infested_solar_systems:
            record = self.systems_by_id.get(system_id)
            if record is not None:
                names.append(record.name)
        return names


@dataclass(slots=True)
class ReferenceDataResolver:
    """Fan out one lookup per distinct identifier and collect what resolves."""

    lookup: ReferenceLookup

    async def resolve(self, incursions: Iterable[RawIncursion]) -> ReferenceTables:
        constellation_ids: set[ConstellationId] = set()
        system_ids: set[SystemId] = set()
        for incursion in incursions:
            constellation_ids.add(incursion.constellation_id)
            system_ids.add(incursion.staging_solar_system_id)
            system_ids.update(incursion.infested_solar_systems)

        ordered_constellations = sorted(constellation_ids)
        ordered_systems = sorted(system_ids)

        constellation_results, system_results = await asyncio.gather(
            asyncio.gather(
                *(
                    self._guarded("constellation", cid, self.lookup.get_constellation(cid))
                    for cid in ordered_constellations
                )
            ),
            asyncio.gather(
                *(
                    self._guarded("system", sid, self.lookup.get_system(sid))
                    for sid in ordered_systems
                )
            ),
        )

        constellations: dict[ConstellationId, ConstellationRecord] = {}
        for record in constellation_results:
            if record is not None:
                constellations[record.constellation_id] = record

        systems_by_id: dict[SystemId, SystemRecord] = {}
        systems_by_name: dict[str, SystemRecord] = {}
        for record in system_results:
            if record is not None:
                systems_by_id[record.system_id] = record
                systems_by_name[record.name] = record

        log.debug(
            "Resolved %d/%d constellations and %d/%d systems",
            len(constellations),
            len(ordered_constellations),
            len(systems_by_id),
            len(ordered_systems),
        )
        return ReferenceTables(
            systems_by_id=MappingProxyType(systems_by_id),
            systems_by_name=MappingProxyType(systems_by_name),
            constellations_by_id=MappingProxyType(constellations),
        )

    @staticmethod
    async def _guarded[T](kind: str, identifier: int, lookup: Awaitable[T | None]) -> T | None:
        try:
            return await lookup
        except Exception as exc:  # noqa: BLE001
            log.warning("Lookup of %s %s failed: %s", kind, identifier, exc)
            return None
