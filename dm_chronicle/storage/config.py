"""Global app configuration (narrator connection, per-stage sampling, context sizes)."""

import copy
import json
from pathlib import Path
from typing import Any

from .core import data_dir

_CONFIG_DEFAULTS: dict[str, Any] = {
    "narrator": {
        "provider_url": "",
        "api_key": "",
        "provider_format": "openai",
        "model": "gpt-4.1-mini",
        "timeout": 60,
    },
    "stages": {
        "parse_intent":  {"temperature": 0.2, "max_tokens": 300},
        "narrative":     {"temperature": 0.8, "max_tokens": 700},
        "extract_delta": {"temperature": 0.0, "max_tokens": 300},
    },
    "history_window": 40,
    "narrative_length_hint": 600,
}


def _config_path() -> Path:
    return data_dir() / "config.json"


def get_config() -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config = copy.deepcopy(_CONFIG_DEFAULTS)
    path = _config_path()
    if path.is_file():
        stored = json.loads(path.read_text())
        _merge(config, stored)
    return config


def update_config(fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config."""
    config = get_config()
    _merge(config, fields)
    _config_path().write_text(json.dumps(config, indent=2))
    return config


def _merge(config: dict[str, Any], fields: dict[str, Any]) -> None:
    """Apply known keys only. Nested sections merge key-by-key; scalars are overwritten."""
    if isinstance(fields.get("narrator"), dict):
        config["narrator"].update(
            {k: v for k, v in fields["narrator"].items() if k in config["narrator"]}
        )
    if isinstance(fields.get("stages"), dict):
        for stage, vals in fields["stages"].items():
            if stage in config["stages"] and isinstance(vals, dict):
                config["stages"][stage].update(vals)
    for key in ("history_window", "narrative_length_hint"):
        if key in fields:
            config[key] = fields[key]
