from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any

ALLOWED_EVENT_TYPES: set[str] = {
    # Run lifecycle
    "run_started",
    "run_finished",
    # Panel lifecycle + interactions
    "panel_mounted",
    "presence_tick",
    "contact_clicked",
    "pay_clicked",
    "checkout_state",
    "panel_unmounted",
}

# Events that must be tied to a mounted panel
PANEL_SCOPED_EVENT_TYPES: set[str] = {
    "panel_mounted",
    "presence_tick",
    "contact_clicked",
    "pay_clicked",
    "checkout_state",
    "panel_unmounted",
}


@dataclass(frozen=True, slots=True)
class Event:
    run_id: str
    event_id: str
    ts_utc: datetime
    sim_time_s: float

    event_type: str

    visitor_id: str | None = None
    panel_id: str | None = None

    # e.g. online count for presence_tick, status for checkout_state
    value_num: float | None = None
    value_str: str | None = None
    payload_json: str | None = None

    def as_row(self) -> dict[str, Any]:
        """
        Canonical DuckDB row representation matching the events table columns.
        """
        return {
            "run_id": self.run_id,
            "event_id": self.event_id,
            "ts_utc": self.ts_utc,
            "sim_time_s": float(self.sim_time_s),
            "visitor_id": self.visitor_id,
            "panel_id": self.panel_id,
            "event_type": self.event_type,
            "value_num": self.value_num,
            "value_str": self.value_str,
            "payload_json": self.payload_json,
        }


def json_dumps(payload: dict[str, Any] | None) -> str | None:
    if payload is None:
        return None
    # Stable JSON for deterministic outputs/diffs
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
