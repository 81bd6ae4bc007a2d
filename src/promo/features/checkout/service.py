from __future__ import annotations

from collections.abc import Callable, Sequence

import simpy

from promo.core.errors import CollaboratorError, MissingConfiguration
from promo.core.logging import Logger, get_logger
from promo.core.types import OfferConfig
from promo.features.checkout.types import (
    MISSING_KEY_MESSAGE,
    PRODUCT_LABELS,
    RETRY_MESSAGE,
    SESSION_ID_PLACEHOLDER,
    CheckoutSession,
    CheckoutState,
    CheckoutStatus,
    PaymentGateway,
    RNGLike,
)

StateListener = Callable[[CheckoutState, CheckoutState], None]


def build_return_urls(origin: str) -> tuple[str, str]:
    """
    (success_url, cancel_url) on the current page origin. Both carry the
    session-id placeholder so either landing page can look the attempt up.
    """
    base = (origin or "").strip().rstrip("/")
    if not base:
        raise MissingConfiguration("page origin is required to build checkout return URLs")
    success_url = f"{base}/?checkout=success&session_id={SESSION_ID_PLACEHOLDER}"
    cancel_url = f"{base}/?checkout=cancelled&session_id={SESSION_ID_PLACEHOLDER}"
    return success_url, cancel_url


class CheckoutOrchestrator:
    """
    Idle -> Loading -> Redirecting, or Loading -> Failed(reason) -> Idle.

    start_checkout() checks the guard and enters Loading before the first
    suspension point, so a second trigger during an attempt is a no-op.
    The hosting view only reads `state` and `message`.
    """

    def __init__(
        self,
        *,
        env: simpy.Environment,
        gateway: PaymentGateway,
        rng: RNGLike,
        origin: str,
        labels: Sequence[str] = PRODUCT_LABELS,
        on_change: StateListener | None = None,
        logger: Logger | None = None,
    ) -> None:
        if not labels:
            raise ValueError("labels must be non-empty")
        self.env = env
        self.gateway = gateway
        self.rng = rng
        self.origin = origin
        self.labels = tuple(labels)
        self.on_change = on_change
        self._logger = logger or get_logger(__name__)

        self._state = CheckoutState.idle()
        self._message: str | None = None
        self._session: CheckoutSession | None = None
        self.history: list[CheckoutState] = [self._state]

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def message(self) -> str | None:
        """Last user-visible message; cleared when a new attempt starts."""
        return self._message

    @property
    def session(self) -> CheckoutSession | None:
        return self._session

    @property
    def is_loading(self) -> bool:
        return self._state.status is CheckoutStatus.LOADING

    def start_checkout(
        self, offer: OfferConfig, public_key: str | None
    ) -> simpy.Process | None:
        """
        Returns the running attempt process, or None when nothing was started
        (already loading, or configuration missing).
        """
        if self.is_loading:
            self._logger.info(
                "checkout already in progress",
                extra={"feature": "checkout", "state": self._state.status.value},
            )
            return None

        self._message = None
        if not (public_key or "").strip():
            self._fail(MissingConfiguration("payment public key is not configured"))
            return None

        try:
            urls = build_return_urls(self.origin)
        except MissingConfiguration as exc:
            self._fail(exc)
            return None

        self._transition(CheckoutState.loading())
        return self.env.process(self._attempt(offer, str(public_key).strip(), urls))

    def _attempt(self, offer: OfferConfig, public_key: str, urls: tuple[str, str]):
        success_url, cancel_url = urls
        try:
            yield from self.gateway.initialize(public_key)

            label = self.rng.choice(self.labels)

            session_id = yield from self.gateway.create_checkout_session(
                amount=offer.price_amount,
                currency=offer.currency_code,
                label=label,
                success_url=success_url,
                cancel_url=cancel_url,
            )
            if not session_id:
                raise CollaboratorError("create_checkout_session", "no session id returned")
            self._session = CheckoutSession(
                session_id=str(session_id), success_url=success_url, cancel_url=cancel_url
            )

            yield from self.gateway.redirect_to_checkout(self._session.session_id)
        except Exception as exc:  # noqa: BLE001 - nothing escapes to the view
            self._fail(exc)
            return

        self._session = None
        self._transition(CheckoutState.redirecting())

    def _fail(self, exc: BaseException) -> None:
        if isinstance(exc, MissingConfiguration):
            reason = "missing_configuration"
            self._message = MISSING_KEY_MESSAGE
            self._logger.warning(
                "checkout not attempted: %s",
                exc,
                extra={"feature": "checkout", "reason": reason},
            )
        else:
            reason = "collaborator_error"
            self._message = RETRY_MESSAGE
            self._logger.exception(
                "checkout attempt failed",
                exc_info=exc,
                extra={"feature": "checkout", "reason": reason},
            )

        self._session = None
        self._transition(CheckoutState.failed(reason))
        self._transition(CheckoutState.idle())

    def _transition(self, new: CheckoutState) -> None:
        prev = self._state
        self._state = new
        self.history.append(new)
        self._logger.info(
            "checkout state %s -> %s",
            prev.status.value,
            new.status.value,
            extra={"feature": "checkout", "state": new.status.value, "reason": new.reason},
        )
        if self.on_change is not None:
            self.on_change(prev, new)
