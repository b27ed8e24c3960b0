"""Configuration paths and engine limits for blastradius."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

BASE_DIR = Path(os.environ.get("BLASTRADIUS_HOME", str(Path.home() / ".blastradius"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

DEFAULT_DEPTH = 3
MIN_DEPTH = 1
MAX_DEPTH = 5
MAX_TARGET_LENGTH = 1000


@dataclass
class AnalysisSettings:
    """Effective limits used to build the engine and the cache.

    ``max_operations`` of ``None`` means "derive from max_nodes"; a
    ``cache_sweep_interval_s`` of 0 disables the background sweeper.
    """

    default_depth: int = DEFAULT_DEPTH
    max_nodes: int = 1000
    max_cycles: int = 50
    max_operations: Optional[int] = None
    time_budget_s: float = 25.0
    check_interval: int = 100
    cache_ttl_s: float = 300.0
    cache_max_entries: int = 100
    cache_sweep_interval_s: float = 60.0

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "AnalysisSettings":
        """Build settings from the ``[analysis]``/``[cache]`` TOML sections."""
        analysis = dict(config.get("analysis", {}))
        cache = dict(config.get("cache", {}))
        values: Dict[str, Any] = {}
        for key in ("default_depth", "max_nodes", "max_cycles", "max_operations",
                    "time_budget_s", "check_interval"):
            if key in analysis:
                values[key] = analysis[key]
        for key in ("ttl_s", "max_entries", "sweep_interval_s"):
            if key in cache:
                values[f"cache_{key}"] = cache[key]
        if not values.get("max_operations"):
            values["max_operations"] = None
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
