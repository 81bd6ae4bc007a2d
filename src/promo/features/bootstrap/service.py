from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import simpy

from promo.core.config import PanelSimulationConfig
from promo.core.ids import IdsService, resolve_run_id
from promo.core.logging import Logger, bind, get_logger
from promo.core.rng import RNG
from promo.core.types import RunContext
from promo.features.checkout.types import CheckoutStatus
from promo.features.events.service import CounterEventIdGenerator, EventService, SimClock
from promo.features.panel.service import OfferPanelSession
from promo.features.payment_gateway.service import SimulatedPaymentGateway
from promo.features.persistence.duckdb_adapter import DuckDBAdapter
from promo.features.persistence.service import PersistenceService


@dataclass
class RunStats:
    visitors: int = 0
    contact_clicks: int = 0
    pay_clicks: int = 0
    redirects: int = 0
    failures: int = 0
    outcomes: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class BootstrapResult:
    ctx: RunContext
    duckdb_path: str
    stats: RunStats


class VisitorProcess:
    """
    One visitor: mount the panel, dwell, maybe contact and/or pay, unmount.
    """

    def __init__(
        self,
        *,
        env: simpy.Environment,
        cfg: PanelSimulationConfig,
        rng: RNG,
        ids: IdsService,
        gateway: SimulatedPaymentGateway,
        events: EventService,
        stats: RunStats,
        logger: Logger | None = None,
    ) -> None:
        self.env = env
        self.cfg = cfg
        self.rng = rng
        self.ids = ids
        self.gateway = gateway
        self.events = events
        self.stats = stats
        self.logger = logger
        self.mounted: dict[str, OfferPanelSession] = {}

    def run(self, visitor_id: str):
        panel = OfferPanelSession(
            env=self.env,
            rng=self.rng,
            offer=self.cfg.offer,
            site=self.cfg.site,
            gateway=self.gateway,
            presence_cfg=self.cfg.presence,
            panel_id=self.ids.next_id("panel"),
            visitor_id=visitor_id,
            events=self.events,
            logger=self.logger,
        )
        panel.mount()
        self.mounted[panel.panel_id] = panel
        self.stats.visitors += 1

        v = self.cfg.visitors
        dwell_s = self.rng.exponential(v.mean_dwell_seconds)
        decide_at = dwell_s * self.rng.random()
        yield self.env.timeout(decide_at)

        if self.rng.chance(v.contact_click_prob):
            panel.click_contact()
            self.stats.contact_clicks += 1

        if self.rng.chance(v.pay_click_prob):
            self.stats.pay_clicks += 1
            attempt = panel.click_pay()
            if attempt is not None:
                yield attempt
            if panel.checkout.state.status is CheckoutStatus.REDIRECTING:
                self.stats.redirects += 1
                # Navigation leaves the page: the panel goes away with it.
                self._release(panel)
                self._count_outcome("redirected")
                return
            self.stats.failures += 1

        yield self.env.timeout(max(0.0, dwell_s - decide_at))
        self._release(panel)
        self._count_outcome("left")

    def release_all(self) -> int:
        """Unmount panels whose visitors were still on the page at the horizon."""
        remaining = list(self.mounted.values())
        for panel in remaining:
            self._release(panel)
            self._count_outcome("open_at_horizon")
        return len(remaining)

    def _release(self, panel: OfferPanelSession) -> None:
        self.mounted.pop(panel.panel_id, None)
        panel.unmount()

    def _count_outcome(self, name: str) -> None:
        self.stats.outcomes[name] = self.stats.outcomes.get(name, 0) + 1


def _arrivals(
    env: simpy.Environment,
    *,
    rng: RNG,
    ids: IdsService,
    visitor: VisitorProcess,
    mean_interarrival_s: float,
    horizon_s: float,
):
    while True:
        yield env.timeout(rng.exponential(mean_interarrival_s))
        if env.now >= horizon_s:
            return
        env.process(visitor.run(ids.next_id("visitor")))


def bootstrap_run(cfg: PanelSimulationConfig, config_path: str | None = None) -> BootstrapResult:
    raw: dict[str, Any] = cfg.raw if isinstance(cfg.raw, dict) else {}

    # ----- run identity -----
    run_id = resolve_run_id(cfg.run.run_id, raw)
    logger = bind(get_logger("promo", cfg.logging.level), run_id=run_id)

    rng = RNG(cfg.run.seed)
    ids = IdsService(run_id=run_id)

    start_dt_utc = datetime.fromisoformat(cfg.run.start_date).replace(tzinfo=UTC)
    ctx = RunContext(run_id=run_id, seed=cfg.run.seed, start_dt_utc=start_dt_utc)

    env = simpy.Environment()

    # ----- cold storage -----
    adapter = DuckDBAdapter(path=cfg.storage.duckdb_path, clean_slate=cfg.storage.clean_slate)
    persistence = PersistenceService(
        adapter=adapter,
        every_n_events=cfg.storage.flush.every_n_events,
        or_every_seconds=cfg.storage.flush.or_every_seconds,
    )
    persistence.open()
    persistence.start_periodic_flush(env)

    events = EventService(
        env=env,
        clock=SimClock(env=env, start_dt=start_dt_utc),
        persistence=persistence,
        ids=CounterEventIdGenerator(run_id=run_id),
        run_id=run_id,
        logger=logger,
    )

    # ----- payment collaborator -----
    # Own RNG stream so gateway failures don't shift visitor behavior.
    gateway = SimulatedPaymentGateway(
        env=env, rng=RNG(cfg.run.seed + 1), ids=ids, cfg=cfg.gateway
    )

    stats = RunStats()
    visitor = VisitorProcess(
        env=env,
        cfg=cfg,
        rng=rng,
        ids=ids,
        gateway=gateway,
        events=events,
        stats=stats,
        logger=logger,
    )

    horizon_s = float(cfg.run.duration_hours) * 3600.0

    # ----- run lifecycle -----
    try:
        events.emit(
            event_type="run_started",
            payload={"config_path": config_path, "seed": cfg.run.seed},
        )
        env.process(
            _arrivals(
                env,
                rng=rng,
                ids=ids,
                visitor=visitor,
                mean_interarrival_s=cfg.visitors.mean_interarrival_seconds,
                horizon_s=horizon_s,
            )
        )

        logger.info("starting panel simulation")
        env.run(until=horizon_s)
        visitor.release_all()

        events.emit(
            event_type="run_finished",
            payload={
                "visitors": stats.visitors,
                "contact_clicks": stats.contact_clicks,
                "pay_clicks": stats.pay_clicks,
                "redirects": stats.redirects,
                "failures": stats.failures,
            },
        )
        persistence.flush(reason="bootstrap_finish")
    finally:
        persistence.close()

    logger.info(
        "panel simulation finished: %d visitors, %d redirects",
        stats.visitors,
        stats.redirects,
    )
    return BootstrapResult(ctx=ctx, duckdb_path=cfg.storage.duckdb_path, stats=stats)
