from promo.core.config import parse_config
from promo.features.bootstrap.service import bootstrap_run


def _cfg(tmp_path, run_id: str) -> dict:
    return {
        "run": {"run_id": run_id, "seed": 123, "start_date": "2026-01-01", "duration_hours": 1},
        "storage": {"duckdb_path": str(tmp_path / "panel.duckdb"), "clean_slate": True},
        "logging": {"level": "WARNING"},
        "site": {"origin": "https://site.example"},
        "offer": {"price_amount": 9500, "currency_code": "usd"},
    }


def test_run_id_auto_is_deterministic(tmp_path):
    cfg = parse_config(_cfg(tmp_path, "auto"))

    r1 = bootstrap_run(cfg)
    r2 = bootstrap_run(cfg)

    assert r1.ctx.run_id == r2.ctx.run_id


def test_run_id_respects_explicit_value(tmp_path):
    cfg = parse_config(_cfg(tmp_path, "my_run"))

    r = bootstrap_run(cfg)
    assert r.ctx.run_id == "my_run"
