from __future__ import annotations

from promo.app.cli import main


def _write_config(tmp_path, *, key: str = "pk_test") -> str:
    p = tmp_path / "panel.yaml"
    p.write_text(
        "run: {run_id: cli_run, seed: 9, start_date: '2026-01-01', duration_hours: 1}\n"
        f"storage: {{duckdb_path: '{tmp_path / 'cli.duckdb'}'}}\n"
        "logging: {level: WARNING}\n"
        f"site: {{origin: 'https://site.example', payment_public_key: {key}}}\n"
        "offer: {price_amount: 9500, currency_code: usd, contact_username: shop,"
        " prefilled_message: Hi}\n"
    )
    return str(p)


def test_cli_link_prints_deep_link(tmp_path, capsys):
    assert main(["link", "--config", _write_config(tmp_path)]) == 0
    assert capsys.readouterr().out.strip() == "https://t.me/shop?text=Hi"


def test_cli_run_prints_summary(tmp_path, capsys):
    assert main(["run", "--config", _write_config(tmp_path)]) == 0
    out = capsys.readouterr().out
    assert "run_id=cli_run" in out
    assert "visitors=" in out
