"""
Configuration management for nnviz.

Handles persistent configuration including:
- Default weight used to fill newly created connections
- Size of a newly added hidden layer and labels of new nodes
- Layout tuning (engine, rank and sibling separation)

Priority for every setting: environment variable, then config.json next to the
project root, then the built-in default.
"""

import json
import logging
import math
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

from nnviz.paths import get_config_path

logger = logging.getLogger(__name__)

LAYOUT_ENGINES = ("dot", "layered")


@dataclass(frozen=True)
class EditorSettings:
    default_weight: float = 0.5
    hidden_layer_size: int = 3
    new_input_label: str = "New Input"
    new_output_label: str = "New Output"
    new_input_value: float = 0.0
    layout_engine: str = "dot"
    rank_sep: float = 150.0
    node_sep: float = 20.0


# config.json key / environment variable for each setting
_ENV_KEYS = {
    "default_weight": "NNVIZ_DEFAULT_WEIGHT",
    "hidden_layer_size": "NNVIZ_HIDDEN_LAYER_SIZE",
    "new_input_label": "NNVIZ_NEW_INPUT_LABEL",
    "new_output_label": "NNVIZ_NEW_OUTPUT_LABEL",
    "new_input_value": "NNVIZ_NEW_INPUT_VALUE",
    "layout_engine": "NNVIZ_LAYOUT_ENGINE",
    "rank_sep": "NNVIZ_RANK_SEP",
    "node_sep": "NNVIZ_NODE_SEP",
}


def load_config() -> dict:
    """Read config.json; a missing or unreadable file gives an empty config."""
    config_path = get_config_path()
    if not config_path.exists():
        return {}
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Ignoring unreadable {config_path}: {e}")
        return {}
    if not isinstance(config, dict):
        logger.warning(f"Ignoring {config_path}: expected a JSON object")
        return {}
    return config


def save_config(config: dict) -> None:
    """Write editor settings to config.json."""
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2, sort_keys=True)


def _coerce(name: str, raw: Any, default: Any) -> Any:
    """Convert a raw config/env value to the type of `default`; raise ValueError if invalid."""
    if isinstance(default, str):
        value = str(raw)
        if name == "layout_engine" and value not in LAYOUT_ENGINES:
            raise ValueError(f"unknown layout engine {value!r}")
        return value
    if isinstance(default, bool) or isinstance(raw, bool):
        raise ValueError(f"{raw!r} is not a number")
    if isinstance(default, int):
        value = int(raw)
        if value < 1:
            raise ValueError(f"{name} must be at least 1")
        return value
    value = float(raw)
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite")
    if name in ("rank_sep", "node_sep") and value < 0:
        raise ValueError(f"{name} must not be negative")
    return value


def get_settings(config: Optional[Dict[str, Any]] = None) -> EditorSettings:
    """
    Build EditorSettings from environment and config.json.

    Invalid values are logged and the default is kept.
    """
    if config is None:
        config = load_config()
    defaults = EditorSettings()
    overrides = {}
    for f in fields(EditorSettings):
        env_name = _ENV_KEYS[f.name]
        raw = os.environ.get(env_name)
        source = env_name
        if raw is None and f.name in config:
            raw = config[f.name]
            source = f"config.json:{f.name}"
        if raw is None:
            continue
        try:
            overrides[f.name] = _coerce(f.name, raw, getattr(defaults, f.name))
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring invalid setting {source}={raw!r}: {e}")
    return replace(defaults, **overrides)
