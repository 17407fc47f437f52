"""
Configuration management for the path canvas.

Settings come from, highest priority first:
1. Environment variables (PATHCANVAS_*), which a .env file can provide
2. config.json next to the project root
3. Built-in defaults

Config is stored in config.json next to the executable/project root.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from pathcanvas.cost_model import (
    CostPolicy,
    DEFAULT_DISTANCE_DIVISOR,
    DEFAULT_EDGE_COST,
    DEFAULT_MIN_COST,
)
from pathcanvas.path_engine import Solver
from pathcanvas.paths import get_config_path

logger = logging.getLogger(__name__)

ENV_PREFIX = "PATHCANVAS_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class EngineSettings:
    cost_policy: str = CostPolicy.PER_PREDECESSOR.value
    min_cost: int = DEFAULT_MIN_COST
    distance_divisor: int = DEFAULT_DISTANCE_DIVISOR
    default_cost: int = DEFAULT_EDGE_COST
    auto_recalculate: bool = False
    solver: str = Solver.HEAP.value
    log_level: str = "INFO"

    def validate(self) -> "EngineSettings":
        """Raise ValueError for settings the engine cannot run with."""
        CostPolicy(self.cost_policy)
        Solver(self.solver)
        if self.min_cost < 0:
            raise ValueError(f"min_cost must be >= 0, got {self.min_cost}")
        if self.distance_divisor < 1:
            raise ValueError(f"distance_divisor must be >= 1, got {self.distance_divisor}")
        if self.default_cost < 0:
            raise ValueError(f"default_cost must be >= 0, got {self.default_cost}")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")
        return self

    def cost_options(self) -> Dict[str, int]:
        return {
            "min_cost": self.min_cost,
            "distance_divisor": self.distance_divisor,
            "default_cost": self.default_cost,
        }


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration from config.json."""
    config_path = config_path or get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
                return data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            return {}
    return {}


def save_config(config: dict, config_path: Optional[Path] = None) -> None:
    """Save configuration to config.json."""
    config_path = config_path or get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


def _coerce(name: str, value: Any) -> Any:
    default = getattr(EngineSettings, name)
    if isinstance(default, bool):
        return _parse_bool(value)
    if isinstance(default, int):
        return int(value)
    return str(value)


def load_settings(config_path: Optional[Path] = None) -> EngineSettings:
    """
    Build EngineSettings from config.json with environment overrides.

    Unknown keys in config.json are ignored.
    """
    raw = load_config(config_path)
    values = {}
    for name in EngineSettings.__dataclass_fields__:
        env_value = os.environ.get(ENV_PREFIX + name.upper())
        if env_value is not None:
            values[name] = _coerce(name, env_value)
        elif name in raw:
            values[name] = _coerce(name, raw[name])
    return EngineSettings(**values).validate()


def save_settings(settings: EngineSettings, config_path: Optional[Path] = None) -> None:
    """Merge the settings into config.json, keeping any other keys."""
    config = load_config(config_path)
    config.update(asdict(settings))
    save_config(config, config_path)
