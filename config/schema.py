"""Configuration schema for inherit-cwd using Pydantic.

Two groups:
- PatchSettings: what the user asked for (dry-run, verbosity, overrides)
- HostEnvironment: per-user locations taken from environment variables
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

# Root-level theme attribute that makes oh-my-posh report the cwd via OSC 9;9
THEME_PWD_KEY = "pwd"
THEME_PWD_VALUE = "osc99"

DEFAULT_THEME_NAME = "inherit-cwd.omp.json"
SEED_THEME_NAME = "jandedobbeleer.omp.json"


class PatchSettings(BaseModel):
    """Run options.

    Configuration priority (highest to lowest):
    1. CLI overrides
    2. User config (~/.inherit-cwd/config.yaml)
    3. Defaults below
    """

    dry_run: bool = Field(False, description="Preview only, never write/copy/create")
    verbose: bool = Field(False, description="Log detail lines")
    theme_dir: Path | None = Field(None, description="User-writable theme directory override")
    enable_copilot: bool = Field(False, description="Insert the GitHub Copilot helper functions")
    profile_path: Path | None = Field(None, description="PowerShell profile override")
    settings_path: Path | None = Field(None, description="Windows Terminal settings.json override")

    @field_validator("theme_dir", "profile_path", "settings_path")
    @classmethod
    def expand_path(cls, v: Path | None) -> Path | None:
        if v is None:
            return v
        return Path(v).expanduser()


class HostEnvironment(BaseModel):
    """Environment variables the patcher consumes."""

    local_app_data: Path | None = Field(None, description="LOCALAPPDATA")
    user_profile: Path = Field(default_factory=Path.home, description="USERPROFILE")
    posh_themes_path: Path | None = Field(None, description="POSH_THEMES_PATH (built-in themes)")
    theme_dir_override: Path | None = Field(None, description="INHERIT_CWD_THEME_DIR")

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> HostEnvironment:
        env = os.environ if environ is None else environ

        def _path(name: str) -> Path | None:
            value = env.get(name, "").strip()
            return Path(value) if value else None

        values = {
            "local_app_data": _path("LOCALAPPDATA"),
            "posh_themes_path": _path("POSH_THEMES_PATH"),
            "theme_dir_override": _path("INHERIT_CWD_THEME_DIR"),
        }
        user_profile = _path("USERPROFILE")
        if user_profile is not None:
            values["user_profile"] = user_profile
        return cls(**values)
