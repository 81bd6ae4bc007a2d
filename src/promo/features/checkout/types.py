from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import simpy

# Generic receipt labels; none of them reveals what the page displays.
PRODUCT_LABELS: tuple[str, ...] = (
    "Digital Services Package",
    "Premium Access Bundle",
    "Online Content Subscription",
    "Digital Goods Order",
)

# Token the gateway substitutes with the real session id.
SESSION_ID_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"

MISSING_KEY_MESSAGE = "Payments are not available right now. Please contact us instead."
RETRY_MESSAGE = "Something went wrong while starting checkout. Please try again."


class CheckoutStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    REDIRECTING = "redirecting"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class CheckoutState:
    status: CheckoutStatus
    reason: str | None = None

    @classmethod
    def idle(cls) -> CheckoutState:
        return cls(CheckoutStatus.IDLE)

    @classmethod
    def loading(cls) -> CheckoutState:
        return cls(CheckoutStatus.LOADING)

    @classmethod
    def redirecting(cls) -> CheckoutState:
        return cls(CheckoutStatus.REDIRECTING)

    @classmethod
    def failed(cls, reason: str) -> CheckoutState:
        return cls(CheckoutStatus.FAILED, reason)


@dataclass(frozen=True, slots=True)
class CheckoutSession:
    session_id: str
    success_url: str
    cancel_url: str


GatewayStep = Generator[simpy.Event, Any, Any]


class PaymentGateway(Protocol):
    """
    Hosted-checkout collaborator. Each method is a simpy process generator;
    failures are raised (CollaboratorError or anything else).
    """

    def initialize(self, public_key: str) -> GatewayStep: ...

    def create_checkout_session(
        self,
        *,
        amount: int,
        currency: str,
        label: str,
        success_url: str,
        cancel_url: str,
    ) -> GatewayStep: ...

    def redirect_to_checkout(self, session_id: str) -> GatewayStep: ...


class RNGLike(Protocol):
    def choice(self, seq): ...
