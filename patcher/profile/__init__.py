"""PowerShell profile patching."""

from patcher.profile.document import ProfileDocument
from patcher.profile.patcher import InitLine, ProfilePatcher, find_init_lines, resolve_config_path

__all__ = ["InitLine", "ProfileDocument", "ProfilePatcher", "find_init_lines", "resolve_config_path"]
