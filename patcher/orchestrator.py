"""Run every patch step against the user's real files and report what happened.

Steps are independent: a failure in one is recorded and the run goes on.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from config.schema import HostEnvironment, PatchSettings
from patcher import locations
from patcher.backup import BackupManager, BackupRecord
from patcher.errors import PatchError
from patcher.profile.document import ProfileDocument
from patcher.profile.patcher import ProfilePatcher
from patcher.profile.snippets import COPILOT_BODY, COPILOT_SNIPPET, OSC99_BODY, OSC99_SNIPPET
from patcher.terminal.actions import reconcile_actions_document
from patcher.terminal.settings_file import SettingsFile
from patcher.terminal.types import DESIRED_ACTIONS, DesiredAction
from patcher.terminal.wsl import WslProfileReconciler, list_wsl_distributions
from patcher.theme import ThemePatcher

logger = logging.getLogger(__name__)

CHANGED = "changed"
UNCHANGED = "unchanged"
SKIPPED = "skipped"
ERROR = "error"


@dataclass
class StepResult:
    name: str
    status: str  # changed / unchanged / skipped / error
    detail: str = ""


@dataclass
class RunReport:
    """Outcome of one run. Replaces a global "did anything change" flag."""

    dry_run: bool = False
    steps: list[StepResult] = field(default_factory=list)
    changed_files: list[Path] = field(default_factory=list)
    backups: list[BackupRecord] = field(default_factory=list)

    def record(self, name: str, status: str, detail: str = "") -> StepResult:
        step = StepResult(name=name, status=status, detail=detail)
        self.steps.append(step)
        line = f"{name}: {status}" + (f" ({detail})" if detail else "")
        if status == ERROR:
            logger.error(line)
        else:
            logger.info(line)
        return step

    def file_changed(self, path: Path) -> None:
        if path not in self.changed_files:
            self.changed_files.append(path)

    @property
    def changed(self) -> bool:
        return bool(self.changed_files)

    @property
    def errors(self) -> list[StepResult]:
        return [s for s in self.steps if s.status == ERROR]

    @property
    def summary(self) -> str:
        if self.dry_run:
            if self.changed:
                return f"Dry run completed, {len(self.changed_files)} file(s) would change."
            return "Dry run completed, no changes necessary."
        if self.changed:
            return "Changes applied."
        return "No changes necessary."


def _status(changed: bool) -> str:
    return CHANGED if changed else UNCHANGED


class PatchRun:
    """One pass over the profile, its theme and the terminal settings."""

    def __init__(
        self,
        settings: PatchSettings,
        env: HostEnvironment,
        environ: Mapping[str, str] | None = None,
        distribution_lister: Callable[[], list[str]] = list_wsl_distributions,
        desired_actions: Iterable[DesiredAction] = DESIRED_ACTIONS,
    ):
        self.settings = settings
        self.env = env
        self.dry_run = settings.dry_run
        self.backups = BackupManager(dry_run=self.dry_run)
        self.report = RunReport(dry_run=self.dry_run)
        self.profiles = ProfilePatcher(env, self.backups, dry_run=self.dry_run, environ=environ)
        self.themes = ThemePatcher(
            env,
            self.backups,
            writable_dir=locations.writable_theme_dir(env, settings),
            dry_run=self.dry_run,
        )
        self.distribution_lister = distribution_lister
        self.desired_actions = tuple(desired_actions)

    def run(self) -> RunReport:
        self.patch_profile()
        self.patch_terminal_settings()
        self.report.backups = list(self.backups.records.values())
        logger.info(self.report.summary)
        return self.report

    # ── Profile + theme ──

    def patch_profile(self) -> None:
        path = locations.profile_path(self.env, self.settings)
        try:
            doc = ProfileDocument.load(path)
        except (OSError, UnicodeDecodeError) as e:
            self.report.record("profile", ERROR, f"cannot read {path}: {e}")
            return

        try:
            self._patch_profile_text(doc)
        except (PatchError, OSError) as e:
            # A failed backup or seed copy leaves the profile unwritten
            self.report.record("profile", ERROR, str(e))
            return

        if not doc.changed:
            self.report.record("profile", UNCHANGED, str(doc.path))
            return
        try:
            if doc.existed:
                self.backups.ensure_backup(doc.path)
            if self.dry_run:
                logger.info("Would write %s", doc.path)
            else:
                doc.write()
        except OSError as e:
            self.report.record("profile", ERROR, f"cannot write {doc.path}: {e}")
            return
        self.report.file_changed(doc.path)
        self.report.record("profile", CHANGED, str(doc.path))

    def _patch_profile_text(self, doc: ProfileDocument) -> None:
        disabled = self.profiles.disable_custom_prompt(doc)
        self.report.record("custom prompt", _status(bool(disabled)), f"{disabled} disabled" if disabled else "")

        added = self.profiles.ensure_init_line(doc)
        collapsed = self.profiles.collapse_duplicate_init_lines(doc)
        detail = "added" if added else (f"{collapsed} duplicate(s) disabled" if collapsed else "")
        self.report.record("oh-my-posh init", _status(added or bool(collapsed)), detail)

        if not self.patch_theme(doc):
            inserted = self.profiles.ensure_snippet(doc, OSC99_SNIPPET, OSC99_BODY)
            self.report.record("osc99 prompt fallback", _status(inserted))

        if self.settings.enable_copilot:
            inserted = self.profiles.ensure_snippet(doc, COPILOT_SNIPPET, COPILOT_BODY)
            self.report.record("copilot helpers", _status(inserted))

    def patch_theme(self, doc: ProfileDocument) -> bool:
        """Make the configured theme report the cwd. False if no theme could be patched."""
        theme_path = self.profiles.extract_theme_path(doc)
        read_path = None
        if theme_path is not None and not theme_path.is_file():
            # Dry run: the seeded theme exists only as a pending copy
            read_path = self.profiles.pending_seeds.get(theme_path)
        if theme_path is None or (read_path is None and not theme_path.is_file()):
            self.report.record("theme", SKIPPED, f"theme not found: {theme_path}" if theme_path else "no init line")
            return False

        try:
            writable = self.themes.ensure_theme_writable(doc, theme_path)
            if read_path is None and not writable.is_file():
                read_path = theme_path
            changed = self.themes.set_pwd_attribute(writable, read_path=read_path)
        except (PatchError, OSError) as e:
            self.report.record("theme", ERROR, str(e))
            return False

        if changed:
            self.report.file_changed(writable)
        detail = str(writable) if writable == theme_path else f"{theme_path} -> {writable}"
        self.report.record("theme", _status(changed or writable != theme_path), detail)
        return True

    # ── Terminal settings ──

    def patch_terminal_settings(self) -> None:
        path = locations.find_terminal_settings(self.env, self.settings)
        if path is None:
            self.report.record("terminal settings", SKIPPED, "settings.json not found")
            return

        settings_file = SettingsFile(path)
        try:
            document = settings_file.load()
        except (PatchError, OSError, UnicodeDecodeError) as e:
            self.report.record("terminal settings", ERROR, str(e))
            return

        changes = []
        try:
            action_changes = reconcile_actions_document(document, self.desired_actions, path)
        except PatchError as e:
            self.report.record("keybindings", ERROR, str(e))
        else:
            changes.extend(action_changes)
            self.report.record("keybindings", _status(bool(action_changes)), "; ".join(action_changes))

        wsl_changes = WslProfileReconciler(self.distribution_lister).reconcile(document)
        changes.extend(wsl_changes)
        self.report.record("wsl profiles", _status(bool(wsl_changes)), "; ".join(wsl_changes))

        if not changes:
            return
        try:
            settings_file.save(document, self.backups, dry_run=self.dry_run)
        except OSError as e:
            self.report.record("terminal settings", ERROR, f"cannot write {path}: {e}")
            return
        self.report.file_changed(path)


def run_patch(
    settings: PatchSettings | None = None,
    env: HostEnvironment | None = None,
    environ: Mapping[str, str] | None = None,
    distribution_lister: Callable[[], list[str]] = list_wsl_distributions,
) -> RunReport:
    """Convenience function to run every step once."""
    settings = settings or PatchSettings()
    env = env or HostEnvironment.from_environ(environ)
    return PatchRun(settings, env, environ=environ, distribution_lister=distribution_lister).run()
