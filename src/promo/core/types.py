from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

DEFAULT_INTEREST_TEMPLATE = (
    "Hi! I'm interested in the {price} offer including all content. "
    "Could you guide me on how to pay?"
)

CURRENCY_SYMBOLS: dict[str, str] = {
    "usd": "$",
    "eur": "€",
    "gbp": "£",
}


@dataclass(frozen=True)
class RunContext:
    run_id: str
    seed: int
    start_dt_utc: datetime


@dataclass(frozen=True)
class OfferConfig:
    """
    Caller-supplied offer description. Never mutated by the panel core.

    Contact link precedence (first present wins):
      explicit_link -> contact_username -> share fallback.
    price_amount is in minor currency units (cents).
    """

    price_amount: int
    currency_code: str
    explicit_link: str | None = None
    contact_username: str | None = None
    prefilled_message: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.price_amount, bool) or not isinstance(self.price_amount, int):
            raise ValueError(f"price_amount must be an int, got {self.price_amount!r}")
        if self.price_amount <= 0:
            raise ValueError("price_amount must be > 0")
        if not (self.currency_code or "").strip():
            raise ValueError("currency_code must be non-empty")

    @property
    def price_label(self) -> str:
        """Human price, e.g. 9500/usd -> "$95", 8550/eur -> "€85.50"."""
        major, minor = divmod(self.price_amount, 100)
        amount = f"{major}" if minor == 0 else f"{major}.{minor:02d}"
        symbol = CURRENCY_SYMBOLS.get(self.currency_code.strip().lower())
        if symbol is None:
            return f"{amount} {self.currency_code.strip().upper()}"
        return f"{symbol}{amount}"

    @property
    def interest_message(self) -> str:
        if self.prefilled_message:
            return self.prefilled_message
        return DEFAULT_INTEREST_TEMPLATE.format(price=self.price_label)
