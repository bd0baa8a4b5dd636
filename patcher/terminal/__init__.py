"""Windows Terminal settings.json patching."""

from patcher.terminal.actions import reconcile_actions, reconcile_actions_document
from patcher.terminal.settings_file import SettingsFile
from patcher.terminal.types import DESIRED_ACTIONS, CombinedSchema, DesiredAction, SplitSchema, detect_schema
from patcher.terminal.wsl import WslProfileReconciler, list_wsl_distributions

__all__ = [
    "DESIRED_ACTIONS",
    "CombinedSchema",
    "DesiredAction",
    "SettingsFile",
    "SplitSchema",
    "WslProfileReconciler",
    "detect_schema",
    "list_wsl_distributions",
    "reconcile_actions",
    "reconcile_actions_document",
]
