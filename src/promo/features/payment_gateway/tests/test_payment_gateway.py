from __future__ import annotations

import pytest
import simpy

from promo.core.config import GatewayConfig
from promo.core.errors import CollaboratorError
from promo.core.ids import IdsService
from promo.core.rng import RNG
from promo.core.types import OfferConfig
from promo.features.checkout.types import CheckoutStatus

SUCCESS = "https://site.example/?checkout=success&session_id={CHECKOUT_SESSION_ID}"
CANCEL = "https://site.example/?checkout=cancelled&session_id={CHECKOUT_SESSION_ID}"


class ConstRng:
    def __init__(self, u: float) -> None:
        self.u = u

    def random(self) -> float:
        return self.u


def make_gateway(env, rng=None, **cfg):
    from promo.features.payment_gateway.service import SimulatedPaymentGateway

    return SimulatedPaymentGateway(
        env=env,
        rng=rng or ConstRng(0.99),
        ids=IdsService(run_id="run_gw"),
        cfg=GatewayConfig(latency_seconds=0.5, **cfg),
    )


def run_steps(env, gen):
    out = {}

    def proc():
        try:
            out["value"] = yield from gen
        except CollaboratorError as exc:
            out["error"] = exc

    env.process(proc())
    env.run()
    return out


def test_full_protocol_happy_path():
    env = simpy.Environment()
    gw = make_gateway(env)

    assert "error" not in run_steps(env, gw.initialize("pk_test"))
    created = run_steps(
        env,
        gw.create_checkout_session(
            amount=9500,
            currency="usd",
            label="Digital Goods Order",
            success_url=SUCCESS,
            cancel_url=CANCEL,
        ),
    )
    session_id = created["value"]
    assert session_id == "cs_run_gw_00000001"
    assert gw.resolved_urls(session_id)["success_url"].endswith("session_id=" + session_id)

    assert "error" not in run_steps(env, gw.redirect_to_checkout(session_id))
    assert gw.steps() == ["initialize", "create_checkout_session", "redirect_to_checkout"]
    assert gw.resolved_urls(session_id) is None
    assert env.now == pytest.approx(1.5)


def test_create_before_initialize_fails():
    env = simpy.Environment()
    gw = make_gateway(env)
    out = run_steps(
        env,
        gw.create_checkout_session(
            amount=9500, currency="usd", label="x", success_url=SUCCESS, cancel_url=CANCEL
        ),
    )
    assert out["error"].step == "create_checkout_session"


def test_success_url_without_placeholder_is_rejected():
    env = simpy.Environment()
    gw = make_gateway(env)
    run_steps(env, gw.initialize("pk_test"))
    out = run_steps(
        env,
        gw.create_checkout_session(
            amount=9500,
            currency="usd",
            label="x",
            success_url="https://site.example/ok",
            cancel_url=CANCEL,
        ),
    )
    assert "placeholder" in str(out["error"])


def test_redirect_unknown_session_fails():
    env = simpy.Environment()
    gw = make_gateway(env)
    out = run_steps(env, gw.redirect_to_checkout("cs_missing"))
    assert out["error"].step == "redirect_to_checkout"


def test_failed_redirect_consumes_the_session():
    env = simpy.Environment()
    gw = make_gateway(env, rng=ConstRng(0.0), redirect_failure_rate=0.5)
    run_steps(env, gw.initialize("pk_test"))
    session_id = run_steps(
        env,
        gw.create_checkout_session(
            amount=9500, currency="usd", label="x", success_url=SUCCESS, cancel_url=CANCEL
        ),
    )["value"]

    first = run_steps(env, gw.redirect_to_checkout(session_id))
    assert first["error"].step == "redirect_to_checkout"
    assert gw.resolved_urls(session_id) is None

    second = run_steps(env, gw.redirect_to_checkout(session_id))
    assert "unknown session" in str(second["error"])


def test_configured_failure_rate_triggers_collaborator_error():
    env = simpy.Environment()
    gw = make_gateway(env, rng=ConstRng(0.1), init_failure_rate=0.5)
    out = run_steps(env, gw.initialize("pk_test"))
    assert out["error"].step == "initialize"


def test_orchestrator_against_simulated_gateway():
    from promo.features.checkout.service import CheckoutOrchestrator

    env = simpy.Environment()
    gw = make_gateway(env, rng=RNG(seed=5))
    orch = CheckoutOrchestrator(env=env, gateway=gw, rng=RNG(seed=5), origin="https://site.example")

    orch.start_checkout(OfferConfig(price_amount=9500, currency_code="usd"), "pk_test")
    env.run()

    assert orch.state.status is CheckoutStatus.REDIRECTING
    assert gw.steps() == ["initialize", "create_checkout_session", "redirect_to_checkout"]


def test_orchestrator_stops_after_create_failure():
    from promo.features.checkout.service import CheckoutOrchestrator

    env = simpy.Environment()
    gw = make_gateway(env, rng=ConstRng(0.0), create_failure_rate=1.0)
    orch = CheckoutOrchestrator(env=env, gateway=gw, rng=RNG(seed=5), origin="https://site.example")

    orch.start_checkout(OfferConfig(price_amount=9500, currency_code="usd"), "pk_test")
    env.run()

    assert orch.state.status is CheckoutStatus.IDLE
    assert gw.steps() == ["initialize", "create_checkout_session"]
