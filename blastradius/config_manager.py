"""Configuration manager for blastradius using TOML files."""

from __future__ import annotations

import logging
import math
from copy import deepcopy
from typing import Any, Dict, Tuple

import toml

from . import config
from .config import MAX_DEPTH, MIN_DEPTH, AnalysisSettings

logger = logging.getLogger(__name__)


# Defaults per section; ``max_operations = 0`` means "derive from max_nodes".
DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "analysis": {
        "default_depth": 3,
        "max_nodes": 1000,
        "max_cycles": 50,
        "max_operations": 0,
        "time_budget_s": 25.0,
        "check_interval": 100,
    },
    "cache": {
        "ttl_s": 300.0,
        "max_entries": 100,
        "sweep_interval_s": 60.0,
    },
}

# Keys whose value may be zero.
_ZERO_ALLOWED = {"analysis.max_operations", "cache.sweep_interval_s"}


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections); empty when absent."""
    path = config.CONFIG_FILE
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", path, exc)
        return {}


def _save_full_config(data: Dict[str, Any]) -> None:
    config.CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    with open(config.CONFIG_FILE, "w", encoding="utf-8") as f:
        toml.dump(data, f)


def effective_config() -> Dict[str, Dict[str, Any]]:
    """Defaults overlaid with whatever the config file sets.

    Unknown keys are dropped; known keys with a wrong type or an
    out-of-range value are logged and keep their default.
    """
    merged = deepcopy(DEFAULT_CONFIG)
    for section, values in load_full_config().items():
        if section not in merged or not isinstance(values, dict):
            continue
        for name, value in values.items():
            if name not in merged[section]:
                continue
            key = f"{section}.{name}"
            try:
                merged[section][name] = _coerce_loaded(key, value)
            except ValueError as exc:
                logger.warning("Ignoring config value %s: %s", key, exc)
    return merged


def load_settings() -> AnalysisSettings:
    return AnalysisSettings.from_config(effective_config())


def _split_key(key: str) -> Tuple[str, str]:
    section, _, name = key.partition(".")
    if not name or section not in DEFAULT_CONFIG or name not in DEFAULT_CONFIG[section]:
        known = ", ".join(
            f"{s}.{n}" for s, values in DEFAULT_CONFIG.items() for n in values
        )
        raise ValueError(f"Unknown config key '{key}'. Known keys: {known}")
    return section, name


def parse_value(key: str, raw: str) -> Any:
    """Coerce ``raw`` to the type of the key's default and range-check it.

    Raises:
        ValueError: unknown key, wrong type, or out-of-range value.
    """
    section, name = _split_key(key)
    default = DEFAULT_CONFIG[section][name]
    try:
        value = type(default)(raw)
    except (TypeError, ValueError):
        raise ValueError(
            f"Value for '{key}' must be {type(default).__name__}, got '{raw}'"
        ) from None
    return _check_range(key, value)


def _coerce_loaded(key: str, value: Any) -> Any:
    """Check a value read from the TOML file against the key's default type."""
    section, name = _split_key(key)
    default = DEFAULT_CONFIG[section][name]
    expected = type(default).__name__
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"must be {expected}, got {value!r}")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"must be a finite {expected}, got {value!r}")
        if isinstance(default, int) and not value.is_integer():
            raise ValueError(f"must be int, got {value!r}")
    return _check_range(key, type(default)(value))


def _check_range(key: str, value: Any) -> Any:
    if key == "analysis.default_depth" and not MIN_DEPTH <= value <= MAX_DEPTH:
        raise ValueError(f"analysis.default_depth must be between {MIN_DEPTH} and {MAX_DEPTH}")
    if value < 0 or (value == 0 and key not in _ZERO_ALLOWED):
        raise ValueError(f"Value for '{key}' must be positive")
    return value


def set_value(key: str, raw: str) -> Any:
    """Validate and persist one ``section.name`` value; returns the stored value."""
    value = parse_value(key, raw)
    section, name = _split_key(key)
    data = load_full_config()
    data.setdefault(section, {})[name] = value
    _save_full_config(data)
    logger.info("Set %s = %r in %s", key, value, config.CONFIG_FILE)
    return value


def reset_config() -> bool:
    """Delete the config file; returns False when there was nothing to delete."""
    path = config.CONFIG_FILE
    if not path.exists():
        return False
    path.unlink()
    logger.info("Removed %s", path)
    return True
