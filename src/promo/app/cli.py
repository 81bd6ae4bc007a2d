from __future__ import annotations

import argparse
import sys

from promo.app.runner import run
from promo.core.config import load_config
from promo.features.contact_link.service import build


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="promo-panel")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="Run the offer panel simulation")
    p_run.add_argument("--config", default="config/offer_panel.yaml")

    p_link = sub.add_parser("link", help="Print the contact deep link for a config")
    p_link.add_argument("--config", default="config/offer_panel.yaml")

    args = parser.parse_args(argv)

    if args.cmd == "run":
        result = run(args.config)
        # minimal stdout signal
        print(
            f"run_id={result.ctx.run_id} duckdb={result.duckdb_path} "
            f"visitors={result.stats.visitors} redirects={result.stats.redirects}"
        )
        return 0

    if args.cmd == "link":
        cfg = load_config(args.config)
        print(build(cfg.offer, cfg.site.origin))
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
