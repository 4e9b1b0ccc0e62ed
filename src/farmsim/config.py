"""Engine configuration and per-user paths."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Tunable economy and pacing constants."""

    starting_cash: int = 50000
    base_ticks_per_second: int = 12
    bankruptcy_grace_days: int = 0
    bankruptcy_hard_floor: int = -25000
    loan_interest_rate: float = 0.10
    loan_repayment_fraction: float = 0.20
    loan_debt_cap: int = 100000
    loan_term_days: int = 1825
    loan_buffer: int = 5000
    max_loans: int = 1
    notification_limit: int = 50
    default_seed: int = 42


# Lower bounds accepted for each numeric field; anything below falls back to the default.
_MINIMUMS: Dict[str, float] = {
    "starting_cash": 0,
    "base_ticks_per_second": 1,
    "bankruptcy_grace_days": 0,
    "loan_interest_rate": 0.0,
    "loan_repayment_fraction": 0.0,
    "loan_debt_cap": 0,
    "loan_term_days": 1,
    "loan_buffer": 0,
    "max_loans": 0,
    "notification_limit": 1,
}


def get_user_data_dir() -> Path:
    """Return the per-user data directory."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "FarmSim"
        return Path.home() / "FarmSim"
    return Path.home() / ".config" / "farmsim"


def get_default_config_path() -> Path:
    return get_user_data_dir() / "config.json"


def get_save_dir() -> Path:
    """Return the per-user save directory."""
    return get_user_data_dir() / "saves"


def _normalize_field(name: str, value: Any, default: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(default, int) and not isinstance(value, int):
        return default
    if name == "loan_repayment_fraction" and value > 1:
        return default
    if name == "bankruptcy_hard_floor" and value > 0:
        return default
    minimum = _MINIMUMS.get(name)
    if minimum is not None and value < minimum:
        return default
    return value


def normalize_config(raw: Dict[str, Any]) -> EngineConfig:
    """Build an EngineConfig, replacing unknown or out-of-range values with defaults."""
    defaults = EngineConfig()
    values: Dict[str, Any] = {}
    for config_field in fields(EngineConfig):
        default = getattr(defaults, config_field.name)
        if config_field.name not in raw:
            values[config_field.name] = default
            continue
        values[config_field.name] = _normalize_field(config_field.name, raw[config_field.name], default)
    return EngineConfig(**values)


def load_config(path: Path | None = None) -> EngineConfig:
    """Load config from disk or return defaults."""
    config_path = path or get_default_config_path()
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return EngineConfig()
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable config at %s: %s", config_path, exc)
        return EngineConfig()
    if not isinstance(raw, dict):
        return EngineConfig()
    return normalize_config(raw)


def save_config(config: EngineConfig, path: Path | None = None) -> None:
    """Persist config to disk."""
    config_path = path or get_default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload = asdict(normalize_config(asdict(config)))
    config_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
