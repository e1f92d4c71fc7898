"""State timestamp store backed by a SQLAlchemy engine."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError

from incursion_tracker.domain.errors import PersistenceWriteError

from .mappings import state_timestamp_table

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class SqlAlchemyStateTimestampStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def load(self) -> dict[int, dict[str, str]]:
        stmt = select(
            state_timestamp_table.c.constellation_id,
            state_timestamp_table.c.state,
            state_timestamp_table.c.observed_at,
        )
        timestamps: dict[int, dict[str, str]] = {}
        with self.engine.connect() as connection:
            for constellation_id, state, observed_at in connection.execute(stmt):
                timestamps.setdefault(constellation_id, {})[state] = observed_at
        log.debug("Loaded state timestamps for %d constellations", len(timestamps))
        return timestamps

    def save(self, timestamps: Mapping[int, Mapping[str, str]]) -> None:
        """Replace the stored map with ``timestamps`` in a single transaction."""

        rows = [
            {"constellation_id": constellation_id, "state": state, "observed_at": observed_at}
            for constellation_id, states in timestamps.items()
            for state, observed_at in states.items()
        ]
        try:
            with self.engine.begin() as connection:
                connection.execute(delete(state_timestamp_table))
                if rows:
                    connection.execute(insert(state_timestamp_table), rows)
        except SQLAlchemyError as exc:
            raise PersistenceWriteError(f"Failed to save state timestamps: {exc}") from exc


if TYPE_CHECKING:
    from incursion_tracker.domain.ports import StateTimestampStore

    def _port_check(engine: Engine) -> None:
        _store: StateTimestampStore = SqlAlchemyStateTimestampStore(engine)
