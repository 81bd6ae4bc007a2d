from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import simpy

from promo.core.config import PresenceConfig, SiteConfig
from promo.core.logging import Logger, bind, get_logger
from promo.core.types import OfferConfig
from promo.features.checkout.service import CheckoutOrchestrator
from promo.features.checkout.types import CheckoutState, PaymentGateway
from promo.features.contact_link import service as contact_link
from promo.features.presence.service import PresenceSimulator


class RNGLike(Protocol):
    def randint(self, a: int, b: int) -> int: ...
    def choice(self, seq): ...


class EventsLike(Protocol):
    def emit(self, *, event_type: str, **kwargs: Any) -> Any: ...


@dataclass(frozen=True, slots=True)
class PanelSnapshot:
    """Everything the view needs to draw the panel once."""

    online_count: int
    happy_customers: str
    price_label: str
    contact_url: str
    checkout_status: str
    checkout_message: str | None


class OfferPanelSession:
    """
    Session-scoped state behind one mounted offer panel.

    mount() starts the presence walk, unmount() releases its timer.
    The contact link is rebuilt on every render; the pay action drives
    the checkout state machine.
    """

    def __init__(
        self,
        *,
        env: simpy.Environment,
        rng: RNGLike,
        offer: OfferConfig,
        site: SiteConfig,
        gateway: PaymentGateway,
        presence_cfg: PresenceConfig | None = None,
        panel_id: str = "panel",
        visitor_id: str | None = None,
        events: EventsLike | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.env = env
        self.offer = offer
        self.site = site
        self.panel_id = panel_id
        self.visitor_id = visitor_id
        self.events = events
        self._logger = bind(logger or get_logger(__name__), feature="panel", panel_id=panel_id)

        self.presence = PresenceSimulator(
            env=env, rng=rng, cfg=presence_cfg, on_tick=self._on_presence_tick
        )
        self.checkout = CheckoutOrchestrator(
            env=env,
            gateway=gateway,
            rng=rng,
            origin=site.origin,
            on_change=self._on_checkout_change,
            logger=bind(logger or get_logger(CheckoutOrchestrator.__module__), panel_id=panel_id),
        )
        self._mounted = False
        self._unmounted = False

    @property
    def mounted(self) -> bool:
        return self._mounted and not self._unmounted

    @property
    def happy_customers(self) -> str:
        return f"{self.presence.happy_customers_base}+"

    def mount(self) -> PanelSnapshot:
        if self._mounted:
            raise RuntimeError(f"panel {self.panel_id} already mounted")
        self._mounted = True

        online = self.presence.initialize()
        self._logger.debug("panel mounted with %d online", online)
        self._emit(
            "panel_mounted",
            value_num=online,
            payload={
                "happy_customers_base": self.presence.happy_customers_base,
                "price_amount": self.offer.price_amount,
                "currency_code": self.offer.currency_code,
            },
        )
        return self.render()

    def unmount(self) -> None:
        if not self._mounted or self._unmounted:
            return
        self._unmounted = True
        self.presence.dispose()
        self._logger.debug("panel unmounted")
        self._emit(
            "panel_unmounted",
            value_num=self.presence.online_count,
            value_str=self.checkout.state.status.value,
        )

    def render(self) -> PanelSnapshot:
        return PanelSnapshot(
            online_count=self.presence.online_count,
            happy_customers=self.happy_customers,
            price_label=self.offer.price_label,
            contact_url=contact_link.build(self.offer, self.site.origin),
            checkout_status=self.checkout.state.status.value,
            checkout_message=self.checkout.message,
        )

    def click_contact(self) -> str:
        url = contact_link.build(self.offer, self.site.origin)
        self._emit("contact_clicked", value_str=url)
        return url

    def click_pay(self) -> simpy.Process | None:
        if not self.mounted:
            raise RuntimeError(f"panel {self.panel_id} is not mounted")
        self._emit("pay_clicked", value_str=self.checkout.state.status.value)
        return self.checkout.start_checkout(self.offer, self.site.payment_public_key)

    def _on_presence_tick(self, before: int, after: int) -> None:
        self._emit("presence_tick", value_num=after, payload={"before": before})

    def _on_checkout_change(self, prev: CheckoutState, new: CheckoutState) -> None:
        payload: dict[str, Any] = {"from": prev.status.value}
        if new.reason is not None:
            payload["reason"] = new.reason
        self._emit("checkout_state", value_str=new.status.value, payload=payload)

    def _emit(self, event_type: str, **kwargs: Any) -> None:
        if self.events is None:
            return
        self.events.emit(
            event_type=event_type,
            visitor_id=self.visitor_id,
            panel_id=self.panel_id,
            **kwargs,
        )
