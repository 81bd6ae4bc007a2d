from __future__ import annotations

from urllib.parse import quote

from promo.core.errors import LinkConstructionError
from promo.core.logging import get_logger
from promo.core.types import OfferConfig

logger = get_logger(__name__)

TELEGRAM_BASE = "https://t.me/"
SAFE_DEFAULT_URL = "https://t.me/"

# Characters encodeURIComponent leaves untouched besides alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_component(text: str) -> str:
    """
    Percent-encode one URL component the way encodeURIComponent does:
    UTF-8 bytes, space -> %20, reserved characters escaped.
    """
    if not isinstance(text, str):
        raise LinkConstructionError(f"cannot encode {type(text).__name__}")
    try:
        return quote(text, safe=_URI_COMPONENT_SAFE, encoding="utf-8", errors="strict")
    except UnicodeEncodeError as exc:
        raise LinkConstructionError(f"text is not encodable as UTF-8: {exc}") from exc


def _assemble(config: OfferConfig, fallback_origin: str | None) -> str:
    if config.explicit_link:
        return config.explicit_link

    message = encode_component(config.interest_message)

    username = (config.contact_username or "").strip().lstrip("@")
    if username:
        return f"{TELEGRAM_BASE}{username}?text={message}"

    if not fallback_origin or not str(fallback_origin).strip():
        raise LinkConstructionError("no origin available for the share fallback")
    origin = encode_component(str(fallback_origin).strip())
    return f"{TELEGRAM_BASE}share/url?url={origin}&text={message}"


def build(config: OfferConfig, fallback_origin: str | None) -> str:
    """
    Contact deep link for the offer panel. Never raises.

    Precedence:
      1. config.explicit_link, returned unchanged
      2. t.me/<username>?text=<message>
      3. t.me/share/url?url=<origin>&text=<message>
    Any failure yields SAFE_DEFAULT_URL.
    """
    try:
        return _assemble(config, fallback_origin)
    except Exception as exc:  # noqa: BLE001 - link building must always yield a URL
        logger.warning(
            "contact link fell back to safe default",
            extra={"feature": "contact_link", "reason": str(exc)},
        )
        return SAFE_DEFAULT_URL
