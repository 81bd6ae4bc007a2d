from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

import simpy

from promo.core.config import GatewayConfig
from promo.core.errors import CollaboratorError
from promo.core.logging import get_logger
from promo.features.checkout.types import SESSION_ID_PLACEHOLDER

logger = get_logger(__name__)


class RNGLike(Protocol):
    def random(self) -> float: ...


class IdsLike(Protocol):
    def next_id(self, prefix: str) -> str: ...


@dataclass(frozen=True, slots=True)
class GatewayCall:
    step: str
    sim_time_s: float
    args: dict[str, Any] = field(default_factory=dict)


class SimulatedPaymentGateway:
    """
    Stand-in for a hosted-checkout provider.

    Every step waits `latency_seconds` of simulated time, then fails with its
    configured probability. Calls are recorded in order for inspection.
    """

    def __init__(
        self,
        *,
        env: simpy.Environment,
        rng: RNGLike,
        ids: IdsLike,
        cfg: GatewayConfig | None = None,
    ) -> None:
        self.env = env
        self.rng = rng
        self.ids = ids
        self.cfg = cfg or GatewayConfig()
        self.calls: list[GatewayCall] = []

        self._public_key: str | None = None
        self._open_sessions: dict[str, dict[str, Any]] = {}

    def steps(self) -> list[str]:
        return [c.step for c in self.calls]

    def initialize(self, public_key: str):
        self._record("initialize", public_key=public_key)
        yield self.env.timeout(self.cfg.latency_seconds)

        if not (public_key or "").strip():
            raise CollaboratorError("initialize", "public key is blank")
        self._maybe_fail("initialize", self.cfg.init_failure_rate)
        self._public_key = public_key

    def create_checkout_session(
        self,
        *,
        amount: int,
        currency: str,
        label: str,
        success_url: str,
        cancel_url: str,
    ):
        self._record(
            "create_checkout_session",
            amount=amount,
            currency=currency,
            label=label,
            success_url=success_url,
            cancel_url=cancel_url,
        )
        yield self.env.timeout(self.cfg.latency_seconds)

        if self._public_key is None:
            raise CollaboratorError("create_checkout_session", "gateway not initialized")
        if int(amount) <= 0:
            raise CollaboratorError("create_checkout_session", f"invalid amount {amount!r}")
        if SESSION_ID_PLACEHOLDER not in success_url:
            raise CollaboratorError(
                "create_checkout_session", "success_url is missing the session id placeholder"
            )
        self._maybe_fail("create_checkout_session", self.cfg.create_failure_rate)

        session_id = self.ids.next_id("cs")
        self._open_sessions[session_id] = {
            "amount": int(amount),
            "currency": str(currency).lower(),
            "label": label,
            "success_url": success_url.replace(SESSION_ID_PLACEHOLDER, session_id),
            "cancel_url": cancel_url.replace(SESSION_ID_PLACEHOLDER, session_id),
        }
        logger.info(
            "checkout session created %s for %d %s",
            session_id,
            int(amount),
            currency,
            extra={"feature": "payment_gateway"},
        )
        return session_id

    def redirect_to_checkout(self, session_id: str):
        self._record("redirect_to_checkout", session_id=session_id)
        yield self.env.timeout(self.cfg.latency_seconds)

        # Single-use: consumed whether or not the redirect goes through.
        if self._open_sessions.pop(session_id, None) is None:
            raise CollaboratorError("redirect_to_checkout", f"unknown session {session_id!r}")
        self._maybe_fail("redirect_to_checkout", self.cfg.redirect_failure_rate)

    def resolved_urls(self, session_id: str) -> dict[str, Any] | None:
        return self._open_sessions.get(session_id)

    def _record(self, step: str, **args: Any) -> None:
        self.calls.append(GatewayCall(step=step, sim_time_s=float(self.env.now), args=args))

    def _maybe_fail(self, step: str, rate: float) -> None:
        if rate > 0 and self.rng.random() < rate:
            raise CollaboratorError(step, "simulated provider failure")
