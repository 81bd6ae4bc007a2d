from __future__ import annotations

import hashlib
import json
from collections import Counter
from collections.abc import Mapping
from typing import Any

RUN_ID_LENGTH = 12


def resolve_run_id(requested: str, cfg_raw: Mapping[str, Any]) -> str:
    """
    "auto" hashes the parsed config, so rerunning the same YAML reuses the id
    and any edit produces a new one. Any other value is taken as given.
    """
    if requested != "auto":
        return requested
    blob = json.dumps(dict(cfg_raw), sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha1(blob.encode("utf-8")).hexdigest()[:RUN_ID_LENGTH]


class IdsService:
    """Per-run sequences: panel_<run_id>_00000001, visitor_..., cs_..."""

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        self._issued: Counter[str] = Counter()

    def next_id(self, prefix: str) -> str:
        self._issued[prefix] += 1
        return f"{prefix}_{self.run_id}_{self._issued[prefix]:08d}"

    def issued(self, prefix: str) -> int:
        return self._issued[prefix]
