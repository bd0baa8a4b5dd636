"""Idempotent patch engine for PowerShell, oh-my-posh and Windows Terminal files.

Entry point: patcher.orchestrator.run_patch
"""

from patcher.backup import BackupManager, BackupRecord
from patcher.errors import MalformedDocumentError, PatchError, PrerequisiteError

__all__ = [
    "BackupManager",
    "BackupRecord",
    "MalformedDocumentError",
    "PatchError",
    "PrerequisiteError",
]
