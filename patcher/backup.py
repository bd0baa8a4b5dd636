"""Timestamped backups taken before any file mutation."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackupRecord:
    """A copy of a file taken before it was modified."""
    original_path: Path
    backup_path: Path
    timestamp: datetime


class BackupManager:
    """Copy files aside as `<name>.bak-<timestamp>` before they are rewritten.

    Backups are never deleted by the tool. In dry-run mode the target name is
    computed and logged, but nothing is copied.
    """

    def __init__(self, dry_run: bool = False, clock=datetime.now):
        self.dry_run = dry_run
        self._clock = clock
        self.records: dict[Path, BackupRecord] = {}
        # Files this run created; they have no prior content to keep
        self.created: set[Path] = set()
        self._issued: set[Path] = set()

    def backup(self, path: str | Path) -> Path | None:
        """Copy `path` to a fresh backup name. Returns None if `path` does not exist."""
        path = Path(path)
        if not path.is_file():
            return None

        timestamp = self._clock()
        target = self._free_name(path, timestamp)
        if self.dry_run:
            logger.info("Would back up %s to %s", path, target)
        else:
            shutil.copy2(path, target)
            logger.info("Backed up %s to %s", path, target)

        self.records[path] = BackupRecord(original_path=path, backup_path=target, timestamp=timestamp)
        return target

    def ensure_backup(self, path: str | Path) -> Path | None:
        """Back up `path` unless it was already backed up during this run."""
        path = Path(path)
        if path in self.created:
            return None
        record = self.records.get(path)
        if record is not None:
            return record.backup_path
        return self.backup(path)

    def mark_created(self, path: str | Path) -> None:
        self.created.add(Path(path))

    def _free_name(self, path: Path, timestamp: datetime) -> Path:
        stamp = timestamp.strftime("%Y%m%d-%H%M%S-%f")
        candidate = path.with_name(f"{path.name}.bak-{stamp}")
        suffix = 0
        while candidate.exists() or candidate in self._issued:
            suffix += 1
            candidate = path.with_name(f"{path.name}.bak-{stamp}-{suffix}")
        self._issued.add(candidate)
        return candidate
