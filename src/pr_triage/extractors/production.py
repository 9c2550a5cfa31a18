"""Regex-based production signal extractors."""

from __future__ import annotations
import re
from typing import Iterable, List

from ..fingerprints.canonical import extract_added_removed_lines
from ..fingerprints.schema import ProductionSignals
from ..pipeline.context import ChangedFile
from ..utils.text import unique_sorted
from .base import ProductionSignalExtractor

_IDENT = r"[A-Za-z_$][A-Za-z0-9_$]*"
_DECL_KEYWORDS = r"(?:class|function|const|let|var|interface|type|enum)"

EXPORT_RE = re.compile(
    rf"\bexport\s+(?:default\s+)?(?:async\s+)?{_DECL_KEYWORDS}\s+({_IDENT})"
)
SYMBOL_RE = re.compile(rf"\b{_DECL_KEYWORDS}\s+({_IDENT})")
IMPORT_RE = re.compile(r"\bfrom\s+[\"']([^\"']+)[\"']")

# Python
PY_DEF_RE = re.compile(r"^(\s*)(?:async\s+)?def\s+([A-Za-z_][A-Za-z0-9_]*)")
PY_CLASS_RE = re.compile(r"^(\s*)class\s+([A-Za-z_][A-Za-z0-9_]*)")
PY_IMPORT_RE = re.compile(r"^\s*import\s+([A-Za-z_][\w.]*)")
PY_FROM_IMPORT_RE = re.compile(r"^\s*from\s+(\.*[A-Za-z_][\w.]*|\.+)\s+import\b")


class RegexProductionExtractor(ProductionSignalExtractor):
    """JS/TS declarations, `export` forms and `from "..."` specifiers."""
    name = "regex"

    def extract(self, files: Iterable[ChangedFile]) -> ProductionSignals:
        exports: List[str] = []
        symbols: List[str] = []
        imports: List[str] = []
        for f in files:
            for raw in extract_added_removed_lines(f.patch):
                self._scan_line(raw[1:], f.path, exports, symbols, imports)
        return ProductionSignals(
            exports=tuple(unique_sorted(exports)),
            symbols=tuple(unique_sorted(symbols)),
            imports=tuple(unique_sorted(imports)),
        )

    def _scan_line(self, line: str, path: str, exports: List[str], symbols: List[str], imports: List[str]) -> None:
        exports.extend(m.group(1) for m in EXPORT_RE.finditer(line))
        symbols.extend(m.group(1) for m in SYMBOL_RE.finditer(line))
        imports.extend(m.group(1) for m in IMPORT_RE.finditer(line))


class PolyglotProductionExtractor(RegexProductionExtractor):
    """Regex extractor plus Python `def`/`class`/`import` in `.py` files.

    Top-level public Python definitions count as exports.
    """
    name = "regex_polyglot"

    def _scan_line(self, line: str, path: str, exports: List[str], symbols: List[str], imports: List[str]) -> None:
        super()._scan_line(line, path, exports, symbols, imports)
        if not path.endswith(".py"):
            return
        for rx in (PY_DEF_RE, PY_CLASS_RE):
            m = rx.match(line)
            if m:
                indent, name = m.group(1), m.group(2)
                symbols.append(name)
                if not indent and not name.startswith("_"):
                    exports.append(name)
        m = PY_IMPORT_RE.match(line) or PY_FROM_IMPORT_RE.match(line)
        if m:
            imports.append(m.group(1))
