"""Documentation structure: headings, fenced code languages, issue references."""

from __future__ import annotations
import re
from typing import Iterable, List

from ..fingerprints.canonical import extract_added_removed_lines
from ..fingerprints.schema import DocsStructure
from ..pipeline.context import ChangedFile
from ..utils.text import normalize_name, unique_sorted

HEADING_RE = re.compile(r"^#{1,6}\s+(.+)")
FENCE_RE = re.compile(r"^```([A-Za-z0-9_-]+)")
REFERENCE_RE = re.compile(r"#(\d{1,10})\b")


def extract_doc_structure(files: Iterable[ChangedFile]) -> DocsStructure:
    headings: List[str] = []
    fences: List[str] = []
    refs: List[str] = []
    for f in files:
        for raw in extract_added_removed_lines(f.patch):
            line = raw[1:].strip()
            m = HEADING_RE.match(line)
            if m:
                headings.append(normalize_name(m.group(1)))
            m = FENCE_RE.match(line)
            if m:
                fences.append(m.group(1).lower())
            refs.extend(f"#{m.group(1)}" for m in REFERENCE_RE.finditer(line))
    return DocsStructure(
        headings=tuple(unique_sorted(headings)),
        code_fences=tuple(unique_sorted(fences)),
        references=tuple(unique_sorted(refs)),
    )
