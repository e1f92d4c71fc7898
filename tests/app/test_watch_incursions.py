from __future__ import annotations

import asyncio
import json
import re
from collections import Counter
from collections.abc import Callable  # noqa: TC003
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
from sqlalchemy.engine import Engine  # noqa: TC002

from incursion_tracker.adapters.http_resilience import ResilienceConfig, ResilientClient
from incursion_tracker.adapters.sqlalchemy import (
    SqlAlchemyLastIncursionRepository,
    SqlAlchemyStateTimestampStore,
)
from incursion_tracker.app import open_incursion_watch, watch_incursions
from incursion_tracker.config import TrackerConfig
from incursion_tracker.config.esi import ESI_BASE_URL, EsiConfig
from tests.helpers.incursions import (
    ALPHA,
    ALPHA_HQ,
    ALPHA_STAGING,
    ALPHA_VANGUARD,
    BRAVO,
    BRAVO_HQ,
    BRAVO_STAGING,
)

if TYPE_CHECKING:
    from incursion_tracker.app import PollCycleResult

FIXTURES = Path(__file__).resolve().parents[1] / "data" / "esi"
CONSTELLATIONS = {record.constellation_id: record for record in (ALPHA, BRAVO)}
SYSTEMS = {
    record.system_id: record
    for record in (ALPHA_STAGING, ALPHA_HQ, ALPHA_VANGUARD, BRAVO_STAGING, BRAVO_HQ)
}


def _esi_universe(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/latest/incursions/":
        return httpx.Response(200, content=(FIXTURES / "incursions.json").read_bytes())
    if match := re.fullmatch(r"/latest/universe/constellations/(\d+)/", path):
        record = CONSTELLATIONS[int(match.group(1))]
        return httpx.Response(
            200,
            json={
                "constellation_id": record.constellation_id,
                "name": record.name,
                "region_id": record.region_id,
            },
        )
    if match := re.fullmatch(r"/latest/universe/systems/(\d+)/", path):
        system = SYSTEMS[int(match.group(1))]
        return httpx.Response(
            200,
            json={
                "system_id": system.system_id,
                "name": system.name,
                "security_status": system.security_status,
                "constellation_id": system.constellation_id,
            },
        )
    return httpx.Response(404, json={"error": "Not found"})


def _make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or "",
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


def _esi_config() -> EsiConfig:
    return EsiConfig(resilience=ResilienceConfig(name="esi", base_url=ESI_BASE_URL, cache=None))


def _layouts(tmp_path: Path) -> Path:
    path = tmp_path / "layouts.json"
    path.write_text(
        json.dumps(
            [
                {
                    "constellation": "Alpha",
                    "headquarter_system": "Alpha HQ",
                    "staging_system": "Alpha Staging",
                    "vanguard_systems": ["Alpha Vanguard"],
                    "assault_systems": [],
                }
            ]
        )
    )
    return path


def test_single_cycle_persists_state_and_tracked_incursion(
    sqlite_engine: Engine, tmp_path: Path
) -> None:
    cycles: list[PollCycleResult] = []

    result = watch_incursions(
        max_cycles=1,
        on_cycle=cycles.append,
        tracker_config=TrackerConfig(layouts_path=_layouts(tmp_path)),
        esi_config=_esi_config(),
        engine=sqlite_engine,
        client_factory=_make_client_factory(_esi_universe),
    )

    assert result is not None
    assert cycles == [result]
    assert result.records is not None
    names = sorted(record.constellation_name for record in result.records)
    assert names == ["Alpha", "Bravo"]
    alpha = next(record for record in result.records if record.constellation_name == "Alpha")
    assert alpha.headquarters == "Alpha HQ"
    assert alpha.influence == 0.75

    stored = SqlAlchemyStateTimestampStore(sqlite_engine).load()
    assert set(stored) == {ALPHA.constellation_id, BRAVO.constellation_id}
    assert set(stored[BRAVO.constellation_id]) == {"mobilizing"}
    last = SqlAlchemyLastIncursionRepository(sqlite_engine).get()
    assert last is not None
    assert last.record.constellation_name == "Alpha"


def test_restart_reuses_stored_timestamps(sqlite_engine: Engine, tmp_path: Path) -> None:
    def run_once() -> PollCycleResult | None:
        return watch_incursions(
            max_cycles=1,
            tracker_config=TrackerConfig(high_sec_only=True, layouts_path=_layouts(tmp_path)),
            esi_config=_esi_config(),
            engine=sqlite_engine,
            client_factory=_make_client_factory(_esi_universe),
        )

    first = run_once()
    second = run_once()

    assert first is not None
    assert second is not None
    assert first.records is not None
    assert second.records is not None
    assert [record.constellation_name for record in second.records] == ["Alpha"]
    assert second.records[0].state_updated_at == first.records[0].state_updated_at
    assert second.current is not None
    assert second.current.constellation_name == "Alpha"


def test_reference_data_is_fetched_again_each_cycle(
    sqlite_engine: Engine, tmp_path: Path
) -> None:
    paths: Counter[str] = Counter()
    clients: list[ResilientClient] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths[request.url.path] += 1
        return _esi_universe(request)

    make_client = _make_client_factory(handler)

    def counting_factory(resilience: ResilienceConfig) -> ResilientClient:
        client = make_client(resilience)
        clients.append(client)
        return client

    async def scenario() -> None:
        async with open_incursion_watch(
            tracker_config=TrackerConfig(layouts_path=_layouts(tmp_path)),
            esi_config=_esi_config(),
            engine=sqlite_engine,
            client_factory=counting_factory,
        ) as watch:
            await watch.run_cycle()
            await watch.run_cycle()

    asyncio.run(scenario())

    assert paths[f"/latest/universe/constellations/{ALPHA.constellation_id}/"] == 2
    assert paths[f"/latest/universe/systems/{ALPHA_HQ.system_id}/"] == 2
    # one client for the watch plus one per cycle
    assert len(clients) == 3
