"""Read and write Windows Terminal settings.json."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from patcher.backup import BackupManager
from patcher.errors import MalformedDocumentError
from patcher.jsonc import loads_jsonc

logger = logging.getLogger(__name__)


class SettingsFile:
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> dict[str, Any]:
        text = self.path.read_text(encoding="utf-8-sig")
        try:
            data = loads_jsonc(text)
        except json.JSONDecodeError as e:
            raise MalformedDocumentError(self.path, f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedDocumentError(self.path, "settings root is not a JSON object")
        return data

    def save(self, data: dict[str, Any], backups: BackupManager, dry_run: bool = False) -> None:
        """Back up the current file, then rewrite it. Comments are not preserved."""
        backups.ensure_backup(self.path)
        if dry_run:
            logger.info("Would write %s", self.path)
            return
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=4, ensure_ascii=False)
            f.write("\n")
        logger.info("Wrote %s", self.path)
