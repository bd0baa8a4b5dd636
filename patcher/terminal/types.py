"""Desired keybindings and the two settings.json action layouts."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from patcher.errors import MalformedDocumentError

SPLIT_MODE_KEY = "splitMode"
SPLIT_MODE_DUPLICATE = "duplicate"

ACTION_ID_PREFIX = "User.inheritCwd."


@dataclass(frozen=True)
class DesiredAction:
    """A keybinding the terminal should have, and the command it should run."""
    keys: str
    command: dict[str, Any]

    @property
    def action_id(self) -> str:
        """Identifier used when the action has to be created in the split layout."""
        return ACTION_ID_PREFIX + self.keys.replace("+", "")

    @property
    def split_mode(self) -> str | None:
        return self.command.get(SPLIT_MODE_KEY)


DESIRED_ACTIONS: tuple[DesiredAction, ...] = (
    DesiredAction(
        keys="alt+shift+minus",
        command={"action": "splitPane", "split": "horizontal", SPLIT_MODE_KEY: SPLIT_MODE_DUPLICATE},
    ),
    DesiredAction(
        keys="alt+shift+plus",
        command={"action": "splitPane", "split": "vertical", SPLIT_MODE_KEY: SPLIT_MODE_DUPLICATE},
    ),
    DesiredAction(
        keys="ctrl+shift+d",
        command={"action": "duplicateTab"},
    ),
)


@dataclass
class CombinedSchema:
    """Older layout: each `actions` entry carries both `keys` and `command`."""
    actions: list[Any]


@dataclass
class SplitSchema:
    """Current layout: `actions` maps id -> command, `keybindings` maps keys -> id."""
    actions: list[Any]
    keybindings: list[Any]


SettingsSchema = CombinedSchema | SplitSchema


def detect_schema(document: Any, path: str | Path = "settings.json") -> SettingsSchema:
    """Pick the layout by the presence of a top-level `keybindings` array.

    The returned lists are the document's own lists, so changes to them are
    changes to the document.
    """
    if not isinstance(document, dict):
        raise MalformedDocumentError(path, "settings root is not a JSON object")

    keybindings = document.get("keybindings")
    if keybindings is not None and not isinstance(keybindings, list):
        raise MalformedDocumentError(path, "'keybindings' is not an array")

    actions = document.get("actions")
    if actions is None:
        actions = document["actions"] = []
    elif not isinstance(actions, list):
        raise MalformedDocumentError(path, "'actions' is not an array")

    if keybindings is None:
        return CombinedSchema(actions=actions)
    return SplitSchema(actions=actions, keybindings=keybindings)
