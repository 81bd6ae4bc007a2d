import importlib
import json
import logging

import pytest
import simpy

from promo.core.config import SiteConfig
from promo.core.logging import ContextLogger, JsonFormatter, bind, get_logger
from promo.core.rng import RNG
from promo.core.types import OfferConfig


def _has_json_handler(logger: logging.Logger) -> bool:
    return any(isinstance(h.formatter, JsonFormatter) for h in logger.handlers)


@pytest.mark.parametrize(
    "module",
    [
        "promo.features.contact_link.service",
        "promo.features.payment_gateway.service",
    ],
)
def test_module_loggers_emit_json(module):
    logger = importlib.import_module(module).logger

    assert logger.name == module
    assert logger.propagate is False
    assert _has_json_handler(logger)


def test_panel_and_checkout_loggers_carry_panel_id():
    from promo.features.panel.service import OfferPanelSession

    env = simpy.Environment()
    panel = OfferPanelSession(
        env=env,
        rng=RNG(seed=1),
        offer=OfferConfig(price_amount=9500, currency_code="usd"),
        site=SiteConfig(origin="https://site.example"),
        gateway=object(),
        panel_id="p7",
    )

    assert isinstance(panel._logger, ContextLogger)
    assert panel._logger.extra == {"feature": "panel", "panel_id": "p7"}
    assert _has_json_handler(panel._logger.logger)

    checkout_logger = panel.checkout._logger
    assert checkout_logger.logger.name == "promo.features.checkout.service"
    assert checkout_logger.extra == {"panel_id": "p7"}


def test_bound_fields_reach_the_json_line():
    base = get_logger("promo.tests.bound")
    record_holder = []

    class Capture(logging.Handler):
        def emit(self, record):
            record_holder.append(JsonFormatter().format(record))

    base.addHandler(Capture())
    run_logger = bind(base, run_id="r1", panel_id="p1")
    bind(run_logger, panel_id="p2").info("hello", extra={"feature": "checkout"})

    line = json.loads(record_holder[-1])
    assert line["msg"] == "hello"
    assert line["run_id"] == "r1"
    assert line["panel_id"] == "p2"
    assert line["feature"] == "checkout"
