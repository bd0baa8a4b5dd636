"""Pytest configuration for inherit-cwd tests.

Ensures the project root is in sys.path so imports work correctly, and
provides a fake per-user Windows layout under tmp_path.
"""

import json
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Add project root to sys.path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

STOCK_THEME = {
    "$schema": "https://raw.githubusercontent.com/JanDeDobbeleer/oh-my-posh/main/themes/schema.json",
    "blocks": [
        {
            "alignment": "left",
            "segments": [
                {"type": "path", "style": "powerline", "properties": {"style": "folder"}},
                {"type": "git", "style": "powerline"},
            ],
            "type": "prompt",
        }
    ],
    "final_space": True,
    "version": 2,
}


@pytest.fixture
def host(tmp_path):
    """USERPROFILE / LOCALAPPDATA / POSH_THEMES_PATH laid out like a Windows machine."""
    from config.schema import HostEnvironment

    home = tmp_path / "home"
    local = home / "AppData" / "Local"
    themes = local / "Programs" / "oh-my-posh" / "themes"
    themes.mkdir(parents=True)
    (themes / "jandedobbeleer.omp.json").write_text(json.dumps(STOCK_THEME, indent=2), encoding="utf-8")

    environ = {
        "USERPROFILE": str(home),
        "LOCALAPPDATA": str(local),
        "POSH_THEMES_PATH": str(themes),
    }
    return SimpleNamespace(
        home=home,
        local=local,
        themes=themes,
        stock_theme=themes / "jandedobbeleer.omp.json",
        environ=environ,
        env=HostEnvironment.from_environ(environ),
        profile=home / "Documents" / "PowerShell" / "Microsoft.PowerShell_profile.ps1",
        settings=local / "Packages" / "Microsoft.WindowsTerminal_8wekyb3d8bbwe" / "LocalState" / "settings.json",
        writable_themes=local / "inherit-cwd" / "themes",
    )
