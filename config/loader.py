"""Settings loader.

Configuration priority (highest to lowest):
1. CLI overrides
2. User config (~/.inherit-cwd/config.yaml)
3. Defaults from PatchSettings
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from config.schema import PatchSettings

logger = logging.getLogger(__name__)

USER_CONFIG_DIR = ".inherit-cwd"
USER_CONFIG_FILE = "config.yaml"


def remove_none_values(obj: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in obj.items() if v is not None}


class SettingsLoader:
    """Merge user config with CLI overrides into PatchSettings."""

    def __init__(self, config_path: str | Path | None = None):
        self.config_path = Path(config_path) if config_path else Path.home() / USER_CONFIG_DIR / USER_CONFIG_FILE

    def load(self, cli_overrides: dict[str, Any] | None = None) -> PatchSettings:
        user_config = self._load_user_config()
        merged = {**user_config, **remove_none_values(cli_overrides or {})}
        merged = self._expand_env_vars(merged)
        return PatchSettings(**merged)

    def _load_user_config(self) -> dict[str, Any]:
        if not self.config_path.exists():
            return {}
        try:
            data = yaml.safe_load(self.config_path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as e:
            logger.warning("Ignoring unreadable config %s: %s", self.config_path, e)
            return {}
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config %s: expected a mapping", self.config_path)
            return {}

        known = {k: v for k, v in data.items() if k in PatchSettings.model_fields}
        for key in data.keys() - known.keys():
            logger.warning("Unknown config key %r in %s", key, self.config_path)
        return remove_none_values(known)

    def _expand_env_vars(self, obj: Any) -> Any:
        """Expand ${VAR} and ~ in string values."""
        if isinstance(obj, dict):
            return {k: self._expand_env_vars(v) for k, v in obj.items()}
        if isinstance(obj, str):
            return os.path.expandvars(os.path.expanduser(obj))
        return obj


def load_settings(
    cli_overrides: dict[str, Any] | None = None,
    config_path: str | Path | None = None,
) -> PatchSettings:
    """Convenience function to load run settings."""
    loader = SettingsLoader(config_path)
    try:
        return loader.load(cli_overrides=cli_overrides)
    except ValidationError as e:
        logger.error("Invalid configuration in %s, ignoring it: %s", loader.config_path, e)
        return PatchSettings(**remove_none_values(cli_overrides or {}))
