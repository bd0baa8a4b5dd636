"""In-memory PowerShell profile plus a small lexical scanner.

The scanner is not a PowerShell parser. It only knows enough to tell active
code apart from comments, string literals and blocks this tool manages, so
that pattern detection does not fire on text that has no runtime effect.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from patcher.profile.snippets import MANAGED_BLOCK_RE

logger = logging.getLogger(__name__)

# Characters after which `#` starts a comment rather than being part of a word
_COMMENT_LEAD = " \t\r\n;(){}|"


@dataclass
class ProfileDocument:
    """A profile read once, patched in memory, and written back at most once."""

    path: Path
    original: str
    text: str
    existed: bool
    bom: bool = False
    newline: str = field(default="\n")

    @classmethod
    def load(cls, path: str | Path) -> ProfileDocument:
        path = Path(path)
        if not path.exists():
            logger.debug("Profile %s does not exist yet", path)
            return cls(path=path, original="", text="", existed=False, newline="\r\n")

        with open(path, encoding="utf-8", newline="") as f:
            raw = f.read()
        bom = raw.startswith("\ufeff")
        text = raw[1:] if bom else raw
        newline = "\r\n" if "\r\n" in text else "\n"
        return cls(path=path, original=text, text=text, existed=True, bom=bom, newline=newline)

    @property
    def changed(self) -> bool:
        return self.text != self.original

    @property
    def directory(self) -> Path:
        return self.path.parent

    def append_block(self, block: str) -> None:
        """Append lines at the end, separated from existing content by a blank line."""
        block = block.replace("\r\n", "\n").replace("\n", self.newline)
        if not self.text:
            self.text = block + self.newline
            return
        if not self.text.endswith(self.newline):
            self.text += self.newline
        if not self.text.endswith(self.newline * 2):
            self.text += self.newline
        self.text += block + self.newline

    def write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        content = ("\ufeff" if self.bom else "") + self.text
        with open(self.path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        self.original = self.text


def iter_lexical_spans(text: str) -> Iterator[tuple[int, int, str]]:
    """Yield (start, end, kind) for comments and string literals, kind in {"comment", "string"}."""
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if text.startswith("<#", i):
            end = text.find("#>", i + 2)
            end = n if end == -1 else end + 2
            yield i, end, "comment"
            i = end
        elif ch == "#" and (i == 0 or text[i - 1] in _COMMENT_LEAD):
            end = text.find("\n", i)
            end = n if end == -1 else end
            yield i, end, "comment"
            i = end
        elif ch == "@" and text[i + 1:i + 2] in ('"', "'") and text[i + 2:i + 3] in ("\n", "\r"):
            terminator = "\n" + text[i + 1] + "@"
            end = text.find(terminator, i + 2)
            end = n if end == -1 else end + len(terminator)
            yield i, end, "string"
            i = end
        elif ch == '"':
            end = _string_end(text, i, escapes=True)
            yield i, end, "string"
            i = end
        elif ch == "'":
            end = _string_end(text, i, escapes=False)
            yield i, end, "string"
            i = end
        else:
            i += 1


def _string_end(text: str, start: int, escapes: bool) -> int:
    quote = text[start]
    j = start + 1
    n = len(text)
    while j < n:
        c = text[j]
        if escapes and c == "`":
            j += 2
            continue
        if c == quote:
            if text[j + 1:j + 2] == quote:
                j += 2
                continue
            return j + 1
        j += 1
    return n


def managed_block_spans(text: str) -> list[tuple[int, int]]:
    return [(m.start(), m.end()) for m in MANAGED_BLOCK_RE.finditer(text)]


def inactive_spans(text: str, strings: bool = True) -> list[tuple[int, int]]:
    """Spans with no effect on prompt/init detection: comments, managed blocks and optionally strings."""
    spans = [
        (start, end)
        for start, end, kind in iter_lexical_spans(text)
        if kind == "comment" or strings
    ]
    spans.extend(managed_block_spans(text))
    return sorted(spans)


def mask(text: str, spans: list[tuple[int, int]]) -> str:
    """Blank out `spans` with spaces, keeping offsets and line breaks intact."""
    chars = list(text)
    for start, end in spans:
        for k in range(start, min(end, len(chars))):
            if chars[k] not in "\r\n":
                chars[k] = " "
    return "".join(chars)


def in_spans(offset: int, spans: list[tuple[int, int]]) -> bool:
    return any(start <= offset < end for start, end in spans)


def matching_brace(masked: str, open_index: int) -> int | None:
    """Index of the `}` closing the `{` at `open_index`, or None if unbalanced."""
    depth = 0
    for k in range(open_index, len(masked)):
        c = masked[k]
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return k
    return None
