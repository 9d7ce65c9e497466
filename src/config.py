"""Configuration loader for the assistant function runner

Values come from config/config.yaml and are validated with Pydantic when
loaded, so typos and invalid values fail at startup.

Usage:
    from src.config import load_config, apply_overrides, get_validated_config

    load_config("config/config.yaml")
    apply_overrides({"runs.max_wait_seconds": 30})   # e.g. from CLI flags
    config = get_validated_config()
"""

from __future__ import annotations

import yaml
from pathlib import Path
from typing import Any

from .config_schema import AppConfig, validate_config_dict


_raw: dict[str, Any] | None = None
_validated: AppConfig | None = None

DEFAULT_CONFIG_PATH: Path = Path(__file__).parent.parent / "config" / "config.yaml"


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Read and validate a config file, replacing any loaded config.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        pydantic.ValidationError: If the config is invalid.
    """
    global _raw, _validated

    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path) as f:
        loaded: Any = yaml.safe_load(f)

    raw = loaded if isinstance(loaded, dict) else {}
    _validated = validate_config_dict(raw)
    _raw = raw
    return _validated


def get_validated_config() -> AppConfig:
    """The loaded config; the default file is loaded on first use."""
    if _validated is None:
        return load_config()
    return _validated


def apply_overrides(overrides: dict[str, Any]) -> AppConfig:
    """Set dot-path keys (e.g. "runs.max_wait_seconds") and re-validate.

    Nothing changes unless the overridden config validates.
    """
    global _raw, _validated

    get_validated_config()
    raw: dict[str, Any] = yaml.safe_load(yaml.safe_dump(_raw or {})) or {}
    for key, value in overrides.items():
        *parents, leaf = key.split(".")
        target = raw
        for part in parents:
            target = target.setdefault(part, {})
        target[leaf] = value

    _validated = validate_config_dict(raw)
    _raw = raw
    return _validated


def reset_config() -> None:
    """Forget any loaded configuration (tests use this between cases)."""
    global _raw, _validated
    _raw = None
    _validated = None
