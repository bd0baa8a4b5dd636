"""Configuration management for inherit-cwd."""

from .loader import SettingsLoader, load_settings
from .schema import HostEnvironment, PatchSettings

__all__ = ["HostEnvironment", "PatchSettings", "SettingsLoader", "load_settings"]
