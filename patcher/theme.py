"""oh-my-posh theme patching.

Themes shipped with oh-my-posh live under POSH_THEMES_PATH and are replaced
on every upgrade, so a theme found there is copied to a user-writable
directory first and the profile is pointed at the copy.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
from pathlib import Path

from config.schema import THEME_PWD_KEY, THEME_PWD_VALUE, HostEnvironment
from patcher.backup import BackupManager
from patcher.errors import MalformedDocumentError, PatchError
from patcher.profile.document import ProfileDocument

logger = logging.getLogger(__name__)

THEMES_ENV_VAR = "POSH_THEMES_PATH"


def _normalized(path: Path | str) -> str:
    return str(path).replace("\\", "/").rstrip("/").lower()


def _quote_escape(value: str, quote: str) -> str:
    """Escape `value` for use inside a PowerShell string delimited by `quote`."""
    if quote == "'":
        return value.replace("'", "''")
    return re.sub(r'([`$"])', r"`\1", value)


class ThemePatcher:
    def __init__(
        self,
        env: HostEnvironment,
        backups: BackupManager,
        writable_dir: Path,
        dry_run: bool = False,
    ):
        self.env = env
        self.backups = backups
        self.writable_dir = Path(writable_dir)
        self.dry_run = dry_run

    def is_builtin(self, theme_path: Path) -> bool:
        if self.env.posh_themes_path is None:
            return False
        base = _normalized(self.env.posh_themes_path)
        return _normalized(theme_path).startswith(base + "/")

    def ensure_theme_writable(self, doc: ProfileDocument, theme_path: Path) -> Path:
        """Return a theme path that is safe to modify, copying built-in themes out first.

        When a copy is made (or already exists from an earlier run) every reference
        to the built-in theme in the profile is rewritten to the copy.
        """
        if not self.is_builtin(theme_path):
            return theme_path

        target = self.writable_dir / theme_path.name
        if target.exists():
            logger.debug("Writable copy %s already exists", target)
        elif self.dry_run:
            logger.info("Would copy built-in theme %s to %s", theme_path, target)
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(theme_path, target)
            self.backups.mark_created(target)
            logger.info("Copied built-in theme %s to %s", theme_path, target)

        rewritten = self._rewrite_references(doc, theme_path, target)
        if rewritten:
            logger.info("Pointed %d profile reference(s) at %s", rewritten, target)
        else:
            logger.warning("No reference to %s found in %s to rewrite", theme_path, doc.path)
        return target

    def _rewrite_references(self, doc: ProfileDocument, original: Path, target: Path) -> int:
        name = original.name
        forms = {
            str(original),
            str(original).replace("\\", "/"),
            str(original).replace("/", "\\"),
        }
        if self.env.posh_themes_path is not None:
            absolute = str(self.env.posh_themes_path / name)
            forms.update({absolute.replace("\\", "/"), absolute.replace("/", "\\")})
        for ref in (f"$env:{THEMES_ENV_VAR}", f"${{env:{THEMES_ENV_VAR}}}"):
            forms.update({f"{ref}\\{name}", f"{ref}/{name}"})

        alternatives = "|".join(re.escape(form) for form in sorted(forms, key=len, reverse=True))
        pattern = re.compile(rf"""(?P<open>["']?)(?:{alternatives})(?P<close>["']?)""", re.IGNORECASE)

        def _replace(match: re.Match) -> str:
            quote = match.group("open") or match.group("close")
            if quote:
                return match.group("open") + _quote_escape(str(target), quote) + match.group("close")
            # A bare argument would split at spaces in the new path
            return '"' + _quote_escape(str(target), '"') + '"'

        doc.text, count = pattern.subn(_replace, doc.text)
        return count

    def set_pwd_attribute(self, theme_path: Path, read_path: Path | None = None) -> bool:
        """Set the root `pwd` attribute to `osc99`. Returns True if the theme changed.

        `read_path` lets a dry run inspect the built-in original when the
        writable copy has not been made.
        """
        source = read_path or theme_path
        try:
            text = source.read_text(encoding="utf-8-sig")
        except OSError as e:
            raise PatchError(f"Cannot read theme {source}: {e}") from e
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedDocumentError(source, f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedDocumentError(source, "theme root is not a JSON object")

        if data.get(THEME_PWD_KEY) == THEME_PWD_VALUE:
            logger.debug("Theme %s already has %s=%s", source, THEME_PWD_KEY, THEME_PWD_VALUE)
            return False

        data[THEME_PWD_KEY] = THEME_PWD_VALUE
        if self.dry_run:
            logger.info("Would set %s=%s in %s", THEME_PWD_KEY, THEME_PWD_VALUE, theme_path)
            return True

        self.backups.ensure_backup(theme_path)
        with open(theme_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        logger.info("Set %s=%s in %s", THEME_PWD_KEY, THEME_PWD_VALUE, theme_path)
        return True
