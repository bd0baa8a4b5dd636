"""Bring a PowerShell profile to a canonical oh-my-posh state.

Steps, each applied only when needed:
1. Comment out custom `prompt` functions (they would override oh-my-posh).
2. Make sure exactly one oh-my-posh init line is active: synthesize one when
   none exists, comment out all but the first when several exist.
3. Resolve the theme path configured by that init line.

Nothing is deleted; replaced text is kept in commented form.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from config.schema import DEFAULT_THEME_NAME, HostEnvironment
from patcher.backup import BackupManager
from patcher.locations import find_seed_theme
from patcher.profile.document import (
    ProfileDocument,
    in_spans,
    inactive_spans,
    mask,
    matching_brace,
)
from patcher.profile.snippets import (
    DUPLICATE_INIT_MARKER,
    INIT_LINE_TEMPLATE,
    PROFILE_DIR_EXPR,
    PROMPT_DISABLED_MARKER,
    block_start,
    managed_block,
)

logger = logging.getLogger(__name__)

_INIT_RE = re.compile(
    r"""\boh-my-posh(?:\.exe)?\b(?=[^\r\n]*\binit\b)[^\r\n]*?--config(?:[ \t]+|=)"""
    r"""(?P<path>"(?:[^"`\r\n]|`.)*"|'(?:[^'\r\n]|'')*'|[^\s|)]+)""",
    re.IGNORECASE,
)

_PROMPT_RE = re.compile(
    r"^[ \t]*function[ \t]+(?:global:|script:)?prompt\b\s*(?:\([^)]*\)\s*)?\{",
    re.IGNORECASE | re.MULTILINE,
)

_PROFILE_DIR_RE = re.compile(
    r"\$\(\s*Split-Path\s+(?:-Parent\s+)?\$PROFILE(?:\s+-Parent)?\s*\)|\$PSScriptRoot\b",
    re.IGNORECASE,
)

_ENV_REF_RE = re.compile(
    r"\$\{env:(?P<braced>[A-Za-z_][\w()]*)\}|\$env:(?P<bare>[A-Za-z_]\w*)",
    re.IGNORECASE,
)

_MAX_EXPANSION_PASSES = 10


@dataclass(frozen=True)
class InitLine:
    """An active oh-my-posh init invocation."""
    line_no: int
    start: int
    end: int
    text: str
    raw_path: str


def find_init_lines(text: str) -> list[InitLine]:
    """All active init lines, in document order."""
    spans = inactive_spans(text, strings=False)
    found = []
    offset = 0
    for line_no, line in enumerate(text.splitlines(keepends=True)):
        body = line.rstrip("\r\n")
        match = _INIT_RE.search(body)
        if match and not in_spans(offset + match.start(), spans):
            found.append(InitLine(line_no, offset, offset + len(body), body, match.group("path")))
        offset += len(line)
    return found


def resolve_config_path(
    raw: str,
    profile_dir: Path,
    home: Path,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Turn the `--config` argument as written in the profile into a filesystem path.

    Double-quoted and bare values get profile-directory and `$env:` expansion;
    single-quoted values are literal. A leading `~` is expanded in all forms.
    """
    if len(raw) >= 2 and raw[0] == raw[-1] == "'":
        value = raw[1:-1].replace("''", "'")
    else:
        if len(raw) >= 2 and raw[0] == raw[-1] == '"':
            value = re.sub(r"`(.)", r"\1", raw[1:-1])
        else:
            value = raw
        value = _PROFILE_DIR_RE.sub(lambda _: str(profile_dir), value)
        value = _expand_env_refs(value, os.environ if environ is None else environ)

    if value == "~" or value.startswith(("~/", "~\\")):
        value = str(home) + value[1:]
    return Path(value.replace("\\", "/"))


def _expand_env_refs(value: str, environ: Mapping[str, str]) -> str:
    # Windows environment variable names are case-insensitive
    upper = {k.upper(): v for k, v in environ.items()}
    for _ in range(_MAX_EXPANSION_PASSES):
        undefined = []

        def _sub(match: re.Match) -> str:
            name = match.group("braced") or match.group("bare")
            if name.upper() not in upper:
                undefined.append(name)
                return match.group(0)
            return upper[name.upper()]

        expanded = _ENV_REF_RE.sub(_sub, value)
        if undefined:
            logger.debug("Undefined environment variable(s) in theme path: %s", ", ".join(undefined))
            return expanded
        if expanded == value:
            return expanded
        value = expanded
    return value


class ProfilePatcher:
    """Apply the profile patch steps to a ProfileDocument."""

    def __init__(
        self,
        env: HostEnvironment,
        backups: BackupManager,
        dry_run: bool = False,
        environ: Mapping[str, str] | None = None,
    ):
        self.env = env
        self.backups = backups
        self.dry_run = dry_run
        self.environ = os.environ if environ is None else environ
        # Seed copies a dry run skipped, target -> source
        self.pending_seeds: dict[Path, Path] = {}

    # ── Custom prompt ──

    def disable_custom_prompt(self, doc: ProfileDocument) -> int:
        """Wrap every active `function prompt { ... }` in a comment. Returns how many."""
        text = doc.text
        masked = mask(text, inactive_spans(text))
        regions = []
        for match in _PROMPT_RE.finditer(masked):
            close = matching_brace(masked, match.end() - 1)
            if close is None:
                logger.warning("Unbalanced braces in prompt function at offset %d, left as is", match.start())
                continue
            end = text.find("\n", close)
            end = len(text) if end == -1 else end
            if text[end - 1:end] == "\r":
                end -= 1
            regions.append((match.start(), end))

        if not regions:
            return 0

        self.backups.ensure_backup(doc.path)
        nl = doc.newline
        for start, end in reversed(regions):
            original = text[start:end]
            if "<#" in original or "#>" in original:
                commented = nl.join("# " + line for line in original.splitlines())
                replacement = nl.join([PROMPT_DISABLED_MARKER, commented])
            else:
                replacement = nl.join([PROMPT_DISABLED_MARKER, "<#", original, "#>"])
            text = text[:start] + replacement + text[end:]
        doc.text = text
        logger.info("Disabled %d custom prompt function(s) in %s", len(regions), doc.path)
        return len(regions)

    # ── Init lines ──

    def ensure_init_line(self, doc: ProfileDocument) -> bool:
        """Append an init line pointing at a theme next to the profile if none is active."""
        if find_init_lines(doc.text):
            return False

        config = f"{PROFILE_DIR_EXPR}\\themes\\{DEFAULT_THEME_NAME}"
        doc.append_block(INIT_LINE_TEMPLATE.format(path=config))
        logger.info("Added oh-my-posh init line to %s", doc.path)
        self.seed_default_theme(doc.directory / "themes" / DEFAULT_THEME_NAME)
        return True

    def seed_default_theme(self, target: Path) -> Path | None:
        """Copy the stock oh-my-posh theme to `target` unless it already exists."""
        if target.exists():
            return target
        source = find_seed_theme(self.env)
        if source is None:
            logger.info("No stock oh-my-posh theme found, %s not created", target)
            return None
        if self.dry_run:
            logger.info("Would create %s from %s", target, source)
            self.pending_seeds[target] = source
            return target
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
        self.backups.mark_created(target)
        logger.info("Seeded theme %s from %s", target, source)
        return target

    def collapse_duplicate_init_lines(self, doc: ProfileDocument) -> int:
        """Keep the first init line, comment out the rest. Returns how many were disabled."""
        lines = find_init_lines(doc.text)
        if len(lines) < 2:
            return 0

        text = doc.text
        for line in reversed(lines[1:]):
            indent = line.text[: len(line.text) - len(line.text.lstrip())]
            replacement = doc.newline.join([
                indent + DUPLICATE_INIT_MARKER,
                indent + "# " + line.text.lstrip(),
            ])
            text = text[:line.start] + replacement + text[line.end:]
            logger.debug("Disabled duplicate init line %d: %s", line.line_no + 1, line.text.strip())
        doc.text = text
        logger.info("Disabled %d duplicate oh-my-posh init line(s) in %s", len(lines) - 1, doc.path)
        return len(lines) - 1

    def extract_theme_path(self, doc: ProfileDocument) -> Path | None:
        lines = find_init_lines(doc.text)
        if not lines:
            return None
        path = resolve_config_path(lines[0].raw_path, doc.directory, self.env.user_profile, self.environ)
        logger.debug("Theme configured in profile: %s", path)
        return path

    # ── Managed snippets ──

    def ensure_snippet(self, doc: ProfileDocument, name: str, body: str) -> bool:
        """Append a marker-delimited snippet unless its start marker is already present."""
        if block_start(name) in doc.text:
            return False
        doc.append_block(managed_block(name, body))
        logger.info("Inserted %s snippet into %s", name, doc.path)
        return True
