"""Reconcile split/duplicate keybindings in Windows Terminal settings.

For every desired action, keyed by its trigger keys, the first existing
entry with the same keys wins; later duplicates are left alone.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from patcher.backup import BackupManager
from patcher.errors import MalformedDocumentError
from patcher.terminal.settings_file import SettingsFile
from patcher.terminal.types import (
    DESIRED_ACTIONS,
    SPLIT_MODE_KEY,
    CombinedSchema,
    DesiredAction,
    SplitSchema,
    detect_schema,
)

logger = logging.getLogger(__name__)


def _normalize_keys(keys: Any) -> list[str]:
    if isinstance(keys, str):
        keys = [keys]
    if not isinstance(keys, list):
        return []
    return [k.lower().replace(" ", "") for k in keys if isinstance(k, str)]


def _first_with_keys(entries: list[Any], keys: str) -> dict[str, Any] | None:
    wanted = keys.lower()
    for entry in entries:
        if isinstance(entry, dict) and wanted in _normalize_keys(entry.get("keys")):
            return entry
    return None


def _as_command_dict(command: Any) -> dict[str, Any] | None:
    if isinstance(command, dict):
        return command
    if isinstance(command, str):
        return {"action": command}
    return None


def _differs_only_in_split_mode(existing: Any, desired: DesiredAction) -> bool:
    command = _as_command_dict(existing)
    if command is None or command.get(SPLIT_MODE_KEY) == desired.split_mode:
        return False

    def _without_mode(c: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in c.items() if k != SPLIT_MODE_KEY}

    return _without_mode(command) == _without_mode(desired.command)


def _lacks_split_mode(existing: Any, desired: DesiredAction) -> bool:
    command = _as_command_dict(existing)
    return command is None or command.get(SPLIT_MODE_KEY) != desired.split_mode


def _reconcile_combined(schema: CombinedSchema, desired: DesiredAction) -> str | None:
    entry = _first_with_keys(schema.actions, desired.keys)
    if entry is None:
        schema.actions.append({"command": copy.deepcopy(desired.command), "keys": desired.keys})
        return f"added {desired.keys}"

    if desired.split_mode is None:
        return None
    if _differs_only_in_split_mode(entry.get("command"), desired):
        entry["command"] = copy.deepcopy(desired.command)
        return f"updated {desired.keys}"
    if _lacks_split_mode(entry.get("command"), desired):
        logger.debug("%s is bound to a different command, left unchanged", desired.keys)
    return None


def _find_action(actions: list[Any], action_id: str) -> dict[str, Any] | None:
    for action in actions:
        if isinstance(action, dict) and action.get("id") == action_id:
            return action
    return None


def _ensure_own_action(schema: SplitSchema, desired: DesiredAction) -> None:
    action = _find_action(schema.actions, desired.action_id)
    if action is None:
        schema.actions.append({"command": copy.deepcopy(desired.command), "id": desired.action_id})
    elif _lacks_split_mode(action.get("command"), desired) and desired.split_mode is not None:
        action["command"] = copy.deepcopy(desired.command)


def _reconcile_split(schema: SplitSchema, desired: DesiredAction) -> str | None:
    binding = _first_with_keys(schema.keybindings, desired.keys)
    if binding is None:
        _ensure_own_action(schema, desired)
        schema.keybindings.append({"id": desired.action_id, "keys": desired.keys})
        return f"added {desired.keys}"

    if desired.split_mode is None:
        return None

    action_id = binding.get("id")
    if action_id is None:
        logger.debug("%s is explicitly unbound, left unchanged", desired.keys)
        return None

    action = _find_action(schema.actions, action_id)
    if action is None:
        # Bound to a built-in action we cannot inspect; bind it to our own.
        _ensure_own_action(schema, desired)
        binding["id"] = desired.action_id
        return f"rebound {desired.keys} from {action_id}"

    if _lacks_split_mode(action.get("command"), desired):
        action["command"] = copy.deepcopy(desired.command)
        return f"updated {desired.keys}"
    return None


def reconcile_actions_document(
    document: Any,
    desired_actions: Iterable[DesiredAction] = DESIRED_ACTIONS,
    path: str | Path = "settings.json",
) -> list[str]:
    """Patch a parsed settings document in place. Returns one line per change."""
    schema = detect_schema(document, path)
    reconcile = _reconcile_split if isinstance(schema, SplitSchema) else _reconcile_combined
    logger.debug("%s uses the %s action layout", path, type(schema).__name__)

    changes = []
    for desired in desired_actions:
        change = reconcile(schema, desired)
        if change:
            logger.debug("%s: %s", path, change)
            changes.append(change)
    return changes


def reconcile_actions(
    settings_path: str | Path,
    desired_actions: Iterable[DesiredAction] = DESIRED_ACTIONS,
    backups: BackupManager | None = None,
    dry_run: bool = False,
) -> bool:
    """Load, reconcile and (if anything changed) back up and rewrite settings.json.

    Malformed documents are reported and leave the file untouched.
    """
    settings_file = SettingsFile(settings_path)
    backups = backups or BackupManager(dry_run=dry_run)
    try:
        document = settings_file.load()
        changes = reconcile_actions_document(document, desired_actions, settings_file.path)
    except MalformedDocumentError as e:
        logger.error("Skipping keybindings: %s", e)
        return False

    if not changes:
        return False
    settings_file.save(document, backups, dry_run=dry_run)
    return True
