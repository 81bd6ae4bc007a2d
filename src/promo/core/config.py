from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from promo.core.types import OfferConfig


@dataclass(frozen=True)
class RunConfig:
    run_id: str
    seed: int
    start_date: str
    duration_hours: float


@dataclass(frozen=True)
class FlushConfig:
    every_n_events: int = 5000
    or_every_seconds: float = 30.0


@dataclass(frozen=True)
class StorageConfig:
    duckdb_path: str
    clean_slate: bool = True
    flush: FlushConfig = FlushConfig()


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class SiteConfig:
    """
    Site-wide settings. payment_public_key is optional on purpose:
    without it checkout short-circuits before contacting the gateway.
    """

    origin: str
    payment_public_key: str | None = None


@dataclass(frozen=True)
class PresenceConfig:
    tick_seconds: float = 4.0
    online_min: int = 0
    online_max: int = 100
    max_step: int = 5
    happy_min: int = 700
    happy_max: int = 1300


@dataclass(frozen=True)
class GatewayConfig:
    latency_seconds: float = 0.5
    init_failure_rate: float = 0.0
    create_failure_rate: float = 0.0
    redirect_failure_rate: float = 0.0


@dataclass(frozen=True)
class VisitorsConfig:
    mean_interarrival_seconds: float = 60.0
    mean_dwell_seconds: float = 45.0
    contact_click_prob: float = 0.1
    pay_click_prob: float = 0.05


@dataclass(frozen=True)
class PanelSimulationConfig:
    run: RunConfig
    storage: StorageConfig
    logging: LoggingConfig
    site: SiteConfig
    offer: OfferConfig
    presence: PresenceConfig
    gateway: GatewayConfig
    visitors: VisitorsConfig
    raw: dict[str, Any]  # original parsed YAML (for hashing / debugging)


def load_yaml(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    data = yaml.safe_load(p.read_text())
    if not isinstance(data, dict):
        raise ValueError("Config YAML must parse to a dict at the top level.")
    return data


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _probability(section: str, key: str, value: Any) -> float:
    p = float(value)
    if not (0.0 <= p <= 1.0):
        raise ValueError(f"{section}.{key} must be in [0, 1], got {p}")
    return p


def parse_presence(data: dict[str, Any]) -> PresenceConfig:
    cfg = PresenceConfig(
        tick_seconds=float(data.get("tick_seconds", 4.0)),
        online_min=int(data.get("online_min", 0)),
        online_max=int(data.get("online_max", 100)),
        max_step=int(data.get("max_step", 5)),
        happy_min=int(data.get("happy_min", 700)),
        happy_max=int(data.get("happy_max", 1300)),
    )
    if cfg.tick_seconds <= 0:
        raise ValueError("presence.tick_seconds must be > 0")
    if cfg.online_min > cfg.online_max or cfg.happy_min > cfg.happy_max:
        raise ValueError("presence bounds must satisfy min <= max")
    if cfg.max_step < 0:
        raise ValueError("presence.max_step must be >= 0")
    return cfg


def parse_offer(data: dict[str, Any]) -> OfferConfig:
    return OfferConfig(
        price_amount=int(data["price_amount"]),
        currency_code=str(data["currency_code"]),
        explicit_link=_optional_str(data.get("explicit_link")),
        contact_username=_optional_str(data.get("contact_username")),
        prefilled_message=_optional_str(data.get("prefilled_message")),
    )


def parse_config(data: dict[str, Any]) -> PanelSimulationConfig:
    for key in ["run", "storage", "logging", "site", "offer"]:
        if key not in data:
            raise ValueError(f"Missing required top-level config section: '{key}'")

    run = data.get("run") or {}
    storage = data.get("storage") or {}
    logging_cfg = data.get("logging") or {}
    site = data.get("site") or {}
    gateway = data.get("gateway") or {}
    visitors = data.get("visitors") or {}
    flush = storage.get("flush") or {}

    run_cfg = RunConfig(
        run_id=str(run.get("run_id", "auto")),
        seed=int(run["seed"]),
        start_date=str(run["start_date"]),
        duration_hours=float(run["duration_hours"]),
    )

    storage_cfg = StorageConfig(
        duckdb_path=str(storage["duckdb_path"]),
        clean_slate=bool(storage.get("clean_slate", True)),
        flush=FlushConfig(
            every_n_events=int(flush.get("every_n_events", 5000)),
            or_every_seconds=float(flush.get("or_every_seconds", 30.0)),
        ),
    )

    if run_cfg.duration_hours <= 0:
        raise ValueError("run.duration_hours must be > 0")

    log_cfg = LoggingConfig(level=str(logging_cfg.get("level", "INFO")).upper())

    site_cfg = SiteConfig(
        origin=str(site["origin"]),
        payment_public_key=_optional_str(site.get("payment_public_key")),
    )

    gateway_cfg = GatewayConfig(
        latency_seconds=float(gateway.get("latency_seconds", 0.5)),
        init_failure_rate=_probability(
            "gateway", "init_failure_rate", gateway.get("init_failure_rate", 0.0)
        ),
        create_failure_rate=_probability(
            "gateway", "create_failure_rate", gateway.get("create_failure_rate", 0.0)
        ),
        redirect_failure_rate=_probability(
            "gateway", "redirect_failure_rate", gateway.get("redirect_failure_rate", 0.0)
        ),
    )

    visitors_cfg = VisitorsConfig(
        mean_interarrival_seconds=float(visitors.get("mean_interarrival_seconds", 60.0)),
        mean_dwell_seconds=float(visitors.get("mean_dwell_seconds", 45.0)),
        contact_click_prob=_probability(
            "visitors", "contact_click_prob", visitors.get("contact_click_prob", 0.1)
        ),
        pay_click_prob=_probability(
            "visitors", "pay_click_prob", visitors.get("pay_click_prob", 0.05)
        ),
    )

    if visitors_cfg.mean_interarrival_seconds <= 0:
        raise ValueError("visitors.mean_interarrival_seconds must be > 0")

    return PanelSimulationConfig(
        run=run_cfg,
        storage=storage_cfg,
        logging=log_cfg,
        site=site_cfg,
        offer=parse_offer(data.get("offer") or {}),
        presence=parse_presence(data.get("presence") or {}),
        gateway=gateway_cfg,
        visitors=visitors_cfg,
        raw=data,
    )


def load_config(path: str | Path) -> PanelSimulationConfig:
    data = load_yaml(path)
    return parse_config(data)
