from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol

import simpy

from promo.core.logging import Logger
from promo.features.events.schema import (
    ALLOWED_EVENT_TYPES,
    PANEL_SCOPED_EVENT_TYPES,
    Event,
    json_dumps,
)


class IdGenerator(Protocol):
    def next_event_id(self) -> str: ...


class PersistenceSink(Protocol):
    def append(self, row: dict[str, Any]) -> None: ...


@dataclass(slots=True)
class CounterEventIdGenerator:
    """
    Deterministic, monotonic event ids scoped to a run.
    """

    run_id: str
    counter: int = 0

    def next_event_id(self) -> str:
        self.counter += 1
        return f"{self.run_id}_{self.counter:08d}"


@dataclass(slots=True)
class SimClock:
    """Wall-clock view of simulated time: start_dt + env.now seconds."""

    env: simpy.Environment
    start_dt: datetime

    def get_current_time(self) -> datetime:
        return self.start_dt + timedelta(seconds=float(self.env.now))


class EventService:
    def __init__(
        self,
        *,
        env: simpy.Environment,
        clock: SimClock,
        persistence: PersistenceSink,
        ids: IdGenerator,
        run_id: str,
        logger: Logger | None = None,
    ) -> None:
        self._env = env
        self._clock = clock
        self._persistence = persistence
        self._ids = ids
        self._run_id = run_id
        self._logger = logger

    @property
    def run_id(self) -> str:
        return self._run_id

    def emit(
        self,
        *,
        event_type: str,
        visitor_id: str | None = None,
        panel_id: str | None = None,
        value_num: float | None = None,
        value_str: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> Event:
        """
        Emits a single behavioral event into cold storage via the persistence buffer.

        Contracts enforced:
        - event_type must be in ALLOWED_EVENT_TYPES
        - panel-scoped events require panel_id
        """
        if event_type not in ALLOWED_EVENT_TYPES:
            raise ValueError(
                f"Unsupported event_type={event_type!r}. " f"Allowed={sorted(ALLOWED_EVENT_TYPES)}"
            )

        if event_type in PANEL_SCOPED_EVENT_TYPES and panel_id is None:
            raise ValueError(f"{event_type} requires panel_id")

        event = Event(
            run_id=self._run_id,
            event_id=self._ids.next_event_id(),
            ts_utc=self._clock.get_current_time(),
            sim_time_s=float(self._env.now),
            event_type=event_type,
            visitor_id=visitor_id,
            panel_id=panel_id,
            value_num=None if value_num is None else float(value_num),
            value_str=value_str,
            payload_json=json_dumps(payload),
        )

        self._persistence.append(event.as_row())

        if self._logger is not None:
            self._logger.debug(
                "event_emitted",
                extra={
                    "event_type": event.event_type,
                    "run_id": event.run_id,
                    "panel_id": event.panel_id,
                },
            )

        return event
