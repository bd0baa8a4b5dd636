"""Per-user file locations for PowerShell, oh-my-posh and Windows Terminal."""

from __future__ import annotations

from pathlib import Path

from config.schema import SEED_THEME_NAME, HostEnvironment, PatchSettings

PROFILE_RELATIVE = Path("Documents") / "PowerShell" / "Microsoft.PowerShell_profile.ps1"

# Checked in order; first existing path wins
SETTINGS_RELATIVE = (
    Path("Packages") / "Microsoft.WindowsTerminal_8wekyb3d8bbwe" / "LocalState" / "settings.json",
    Path("Packages") / "Microsoft.WindowsTerminalPreview_8wekyb3d8bbwe" / "LocalState" / "settings.json",
    Path("Microsoft") / "Windows Terminal" / "settings.json",
)


def profile_path(env: HostEnvironment, settings: PatchSettings | None = None) -> Path:
    if settings is not None and settings.profile_path is not None:
        return settings.profile_path
    return env.user_profile / PROFILE_RELATIVE


def settings_candidates(env: HostEnvironment) -> list[Path]:
    if env.local_app_data is None:
        return []
    return [env.local_app_data / rel for rel in SETTINGS_RELATIVE]


def find_terminal_settings(env: HostEnvironment, settings: PatchSettings | None = None) -> Path | None:
    """Return the first existing settings.json, or None."""
    if settings is not None and settings.settings_path is not None:
        return settings.settings_path if settings.settings_path.is_file() else None
    for candidate in settings_candidates(env):
        if candidate.is_file():
            return candidate
    return None


def writable_theme_dir(env: HostEnvironment, settings: PatchSettings | None = None) -> Path:
    if settings is not None and settings.theme_dir is not None:
        return settings.theme_dir
    if env.theme_dir_override is not None:
        return env.theme_dir_override
    root = env.local_app_data or (env.user_profile / "AppData" / "Local")
    return root / "inherit-cwd" / "themes"


def seed_theme_sources(env: HostEnvironment) -> list[Path]:
    """Known locations of the stock oh-my-posh theme used to seed a new profile."""
    sources = []
    if env.posh_themes_path is not None:
        sources.append(env.posh_themes_path / SEED_THEME_NAME)
    if env.local_app_data is not None:
        sources.append(env.local_app_data / "Programs" / "oh-my-posh" / "themes" / SEED_THEME_NAME)
    return sources


def find_seed_theme(env: HostEnvironment) -> Path | None:
    for source in seed_theme_sources(env):
        if source.is_file():
            return source
    return None
