from __future__ import annotations

from typing import Any

import simpy

from promo.core.logging import get_logger

from .duckdb_adapter import DuckDBAdapter
from .schema import EVENT_COLUMNS


class PersistenceService:
    """
    Buffered event sink + flush policy.
    - Hot: buffer in memory
    - Cold: DuckDB
    Flushes when the buffer reaches every_n_events, on the simpy timer, and on close().
    """

    def __init__(
        self,
        *,
        adapter: DuckDBAdapter,
        every_n_events: int,
        or_every_seconds: float,
    ) -> None:
        self.adapter = adapter
        self.every_n_events = int(every_n_events)
        self.or_every_seconds = float(or_every_seconds)

        self._buf: list[dict[str, Any]] = []
        self._logger = get_logger(__name__)

        self._is_open = False
        self._periodic_proc_started = False

    @property
    def buffered(self) -> int:
        return len(self._buf)

    def open(self) -> None:
        if self._is_open:
            return
        self.adapter.open()
        self._is_open = True

    def append(self, row: dict[str, Any]) -> None:
        if not self._is_open:
            raise RuntimeError("PersistenceService not open. Call open() during bootstrap.")

        missing = [c for c in EVENT_COLUMNS if c not in row]
        if missing:
            raise ValueError(f"event row missing columns: {missing}")

        self._buf.append(row)

        if self.every_n_events > 0 and len(self._buf) >= self.every_n_events:
            self.flush(reason="count")

    def flush(self, *, reason: str) -> None:
        if not self._buf:
            return

        rows = [tuple(r[c] for c in EVENT_COLUMNS) for r in self._buf]
        self._buf.clear()

        result = self.adapter.write_events(rows)

        self._logger.info(
            "flush %d events in %.1fms to %s",
            result.num_events,
            result.duration_ms,
            self.adapter.path,
            extra={"feature": "persistence", "reason": reason},
        )

    def close(self) -> None:
        if not self._is_open:
            return
        # final flush
        self.flush(reason="shutdown")
        self.adapter.close()
        self._is_open = False

    def start_periodic_flush(self, env: simpy.Environment) -> None:
        """
        Start a SimPy process that flushes every `or_every_seconds`.
        Call once during bootstrap after env is created.
        """
        if self._periodic_proc_started:
            return
        self._periodic_proc_started = True
        env.process(self._periodic_flush_proc(env))

    def _periodic_flush_proc(self, env: simpy.Environment):
        while True:
            yield env.timeout(self.or_every_seconds)
            self.flush(reason="timer")
