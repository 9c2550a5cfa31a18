r"""Canonical production diff.

The canonical form keeps only what a reviewer would call "the change": the
file path and every added/removed line. Hunk headers, index lines, file
headers and "\ No newline at end of file" markers are dropped, files are
sorted by path, and trailing whitespace is stripped, so two PRs with the same
edits hash identically regardless of base offsets or file order.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..utils.hashing import sha256_hex

_METADATA_PREFIXES = ("diff --git", "index ", "--- ", "+++ ", "@@")
_NO_NEWLINE_MARKER = "\\ No newline at end of file"


def _is_metadata(line: str) -> bool:
    return line.startswith(_METADATA_PREFIXES) or line.startswith(_NO_NEWLINE_MARKER)


def extract_added_removed_lines(patch: Optional[str]) -> List[str]:
    """+/- lines of a unified diff, marker included, metadata excluded.

    Only newlines end a line; form feeds and Unicode line separators are
    part of the line content.
    """
    if not patch:
        return []
    out = []
    for line in patch.split("\n"):
        if _is_metadata(line):
            continue
        if line.startswith("+") or line.startswith("-"):
            out.append(line)
    return out


@dataclass(frozen=True)
class CanonicalDiff:
    text: str
    line_count: int

    @property
    def hash(self) -> Optional[str]:
        """SHA-256 hex of the text, or None when there are no +/- lines."""
        if self.line_count == 0:
            return None
        return sha256_hex(self.text)


def canonicalize(files: Iterable) -> CanonicalDiff:
    """Canonical text for a set of ChangedFile (normally the PRODUCTION channel)."""
    parts: List[str] = []
    line_count = 0
    for f in sorted(files, key=lambda f: f.path):
        parts.append(f"file:{f.path}")
        for line in extract_added_removed_lines(f.patch):
            parts.append(line.rstrip())
            line_count += 1
    return CanonicalDiff(text="\n".join(parts), line_count=line_count)
