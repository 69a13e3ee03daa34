"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. config/config.yaml  — static defaults checked into the repo
  2. .env file           — local developer overrides (not committed)
  3. Environment vars    — set by the scheduler at deploy time

``load_config()`` reads the YAML file first, then deep-merges the
environment-based values on top.  Only environment values that were
explicitly set are merged, so YAML defaults survive when the environment is
silent.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from stagelineage.config.settings import Settings
from stagelineage.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file is not an
              error; the environment alone is used.
        settings: Pre-built settings (mainly for tests).  Built from the
                  environment when omitted.

    Returns:
        Fully resolved configuration dictionary.

    Raises:
        ConfigurationError: if the YAML file exists but cannot be parsed or
            does not contain a mapping at the top level.
    """
    config_path = Path(path)
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Unable to parse {config_path}: {exc}") from exc
        if not isinstance(yaml_config, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping at the top level")
    else:
        yaml_config = {}

    if settings is None:
        try:
            settings = Settings()
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid environment settings: {exc}") from exc
    explicit = settings.model_fields_set
    env_overrides: dict[str, Any] = {
        "igc": _pick(
            settings,
            explicit,
            {
                "igc_host": "host",
                "igc_port": "port",
                "igc_username": "username",
                "igc_password": "password",
                "igc_verify_ssl": "verify_ssl",
                "igc_page_size": "page_size",
                "igc_timeout": "timeout",
            },
        ),
        "sync": _pick(
            settings,
            explicit,
            {
                "lineage_mode": "mode",
                "limit_to_projects": "projects",
                "limit_to_lineage_enabled": "lineage_enabled_only",
            },
        ),
        "logging": _pick(settings, explicit, {"log_level": "level"}),
        "app": _pick(settings, explicit, {"app_env": "env"}),
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _pick(settings: Settings, explicit: set[str], mapping: dict[str, str]) -> dict[str, Any]:
    """Return the explicitly-set settings in *mapping*, renamed to config keys."""
    picked: dict[str, Any] = {}
    for field_name, key in mapping.items():
        if field_name in explicit:
            value = getattr(settings, field_name)
            picked[key] = value.value if hasattr(value, "value") else value
    return picked


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
