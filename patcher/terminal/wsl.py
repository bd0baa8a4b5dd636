"""Point WSL terminal profiles straight at `wsl.exe -d <distro>`.

Profiles launched through a distro-specific launcher (ubuntu.exe and friends)
or through the dynamic WSL profile generator do not report their working
directory the same way, so duplicated panes open in the home directory.
Best effort: anything that cannot be resolved is left as it is.
"""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

_DISTRO_HINT_RE = re.compile(
    r"\b(?:ubuntu|debian|kali|opensuse|suse|sles|fedora|archlinux|arch|alpine|oraclelinux|oracle|almalinux|pengwin|wsl)"
    r"[\d._]*\b",
    re.IGNORECASE,
)
_WSL_SOURCE_RE = re.compile(r"\b(?:wsl|canonical|debian|kali|suse|fedora|arch|alpine|oracle)", re.IGNORECASE)
_DIRECT_WSL_RE = re.compile(
    r"""(?:^|[\s\\/"'])wsl(?:\.exe)?["']?\s(?:.*\s)?(?:-d|--distribution)(?:\s+|=)\S+""",
    re.IGNORECASE,
)
_LAUNCHER_RE = re.compile(
    r"""^\s*["']?(?:[^"'\s]*[\\/])?"""
    r"""(?P<exe>ubuntu[\w.]*|debian|kali|opensuse[\w.-]*|sles[\w.-]*|fedora\w*|arch\w*"""
    r"""|alpine\w*|oraclelinux[\w.]*|almalinux[\w.]*|pengwin)\.exe\b""",
    re.IGNORECASE,
)

LIST_COMMAND = ["wsl.exe", "--list", "--quiet"]
LIST_TIMEOUT_SEC = 15


def parse_distribution_list(raw: bytes) -> list[str]:
    """Parse `wsl.exe --list --quiet` output, which is UTF-16 with a BOM on most hosts."""
    for bom in (b"\xff\xfe", b"\xfe\xff", b"\xef\xbb\xbf"):
        if raw.startswith(bom):
            raw = raw[len(bom):]
            break
    text = raw.replace(b"\x00", b"").decode("utf-8", errors="replace")
    return [line.strip() for line in text.splitlines() if line.strip()]


def list_wsl_distributions() -> list[str]:
    try:
        result = subprocess.run(LIST_COMMAND, capture_output=True, timeout=LIST_TIMEOUT_SEC)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Could not run %s: %s", " ".join(LIST_COMMAND), e)
        return []
    if result.returncode != 0:
        logger.debug("%s exited with %d", " ".join(LIST_COMMAND), result.returncode)
        return []
    return parse_distribution_list(result.stdout)


def _normalize(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


def match_distribution(hint: str, distributions: list[str], exact: bool = False) -> str | None:
    """Best installed distribution for a profile name or launcher name.

    With `exact`, only a name equal to the hint up to case and punctuation counts.
    """
    if not hint:
        return None
    for distro in distributions:
        if distro.lower() == hint.lower():
            return distro

    wanted = _normalize(hint)
    if not wanted:
        return None
    if exact:
        return next((d for d in distributions if _normalize(d) == wanted), None)
    candidates = [
        d for d in distributions
        if _normalize(d) and (wanted.startswith(_normalize(d)) or _normalize(d).startswith(wanted))
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda d: len(_normalize(d)))


def wsl_commandline(distribution: str) -> str:
    if re.search(r"\s", distribution):
        return f'wsl.exe -d "{distribution}"'
    return f"wsl.exe -d {distribution}"


def _profile_list(document: dict[str, Any]) -> list[Any]:
    profiles = document.get("profiles")
    if isinstance(profiles, dict):
        profiles = profiles.get("list")
    return profiles if isinstance(profiles, list) else []


class WslProfileReconciler:
    """Rewrite WSL profile command lines using the installed distribution list."""

    def __init__(self, lister: Callable[[], list[str]] = list_wsl_distributions):
        self._lister = lister
        self._distributions: list[str] | None = None

    @property
    def distributions(self) -> list[str]:
        if self._distributions is None:
            self._distributions = self._lister()
            if not self._distributions:
                logger.info("No WSL distributions installed")
        return self._distributions

    @staticmethod
    def is_wsl_profile(profile: dict[str, Any]) -> bool:
        name = profile.get("name")
        source = profile.get("source")
        return bool(
            (isinstance(name, str) and _DISTRO_HINT_RE.search(name))
            or (isinstance(source, str) and _WSL_SOURCE_RE.search(source))
        )

    def reconcile(self, document: dict[str, Any]) -> list[str]:
        """Patch profiles in place. Returns one line per rewritten profile."""
        changes = []
        for profile in _profile_list(document):
            if not isinstance(profile, dict) or not self.is_wsl_profile(profile):
                continue
            name = profile.get("name") if isinstance(profile.get("name"), str) else ""
            commandline = profile.get("commandline")
            if isinstance(commandline, str) and commandline.strip():
                if _DIRECT_WSL_RE.search(commandline):
                    logger.debug("Profile %r already launches wsl.exe with a distribution", name)
                    continue
                launcher = _LAUNCHER_RE.match(commandline)
                if launcher is None:
                    logger.debug("Profile %r has a custom command line, left unchanged", name)
                    continue
                hints = [name, launcher.group("exe")]
                exact = False
            else:
                hints = [name]
                # Without a launcher or a WSL source the name is all there is to go on
                source = profile.get("source")
                exact = not (isinstance(source, str) and _WSL_SOURCE_RE.search(source))

            distribution = self._resolve(hints, exact)
            if distribution is None:
                logger.debug("No installed distribution matches profile %r", name)
                continue
            profile["commandline"] = wsl_commandline(distribution)
            changes.append(f"profile {name!r} -> {profile['commandline']}")
        return changes

    def _resolve(self, hints: list[str], exact: bool = False) -> str | None:
        for hint in hints:
            if not hint:
                continue
            match = match_distribution(hint, self.distributions, exact)
            if match:
                return match
        return None
