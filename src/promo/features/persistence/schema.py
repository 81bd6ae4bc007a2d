from __future__ import annotations

EVENTS_TABLE_NAME = "events"

EVENT_COLUMNS: tuple[str, ...] = (
    "run_id",
    "event_id",
    "ts_utc",
    "sim_time_s",
    "visitor_id",
    "panel_id",
    "event_type",
    "value_num",
    "value_str",
    "payload_json",
)

EVENTS_DDL = f"""
CREATE TABLE IF NOT EXISTS {EVENTS_TABLE_NAME} (
    run_id TEXT NOT NULL,
    event_id TEXT NOT NULL,

    ts_utc TIMESTAMP NOT NULL,
    sim_time_s DOUBLE NOT NULL,

    visitor_id TEXT,
    panel_id TEXT,

    event_type TEXT NOT NULL,

    value_num DOUBLE,
    value_str TEXT,

    payload_json TEXT
);
"""

EVENTS_INDEXES = [
    f"CREATE INDEX IF NOT EXISTS idx_events_run_id ON {EVENTS_TABLE_NAME}(run_id);",
    f"CREATE INDEX IF NOT EXISTS idx_events_event_type ON {EVENTS_TABLE_NAME}(event_type);",
    f"CREATE INDEX IF NOT EXISTS idx_events_panel_id ON {EVENTS_TABLE_NAME}(panel_id);",
]


def create_schema(conn) -> None:
    """
    Create tables/indexes. No migrations. Safe to call per run.
    """
    conn.execute(EVENTS_DDL)
    for ddl in EVENTS_INDEXES:
        conn.execute(ddl)
