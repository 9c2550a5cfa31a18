"""Config diff tool.

Compares two rules/thresholds YAML files and prints a structured diff.

Usage:
`pr-triage config-diff --a configs/thresholds.yaml --b thresholds_v2.yaml`

Every edge records the thresholds `version` it was scored under, so a content
change that keeps the same version makes historical results ambiguous. The
tool flags that case.
"""

from __future__ import annotations
from typing import Any, List, Tuple

from ..config.loader import load_yaml

VERSION_KEY = "version"
VERSION_WARNING = "! content differs but 'version' is unchanged ({version}); bump it so stored edges stay interpretable"

DiffRow = Tuple[str, str, Any, Any]


def diff(a: Any, b: Any, prefix: str = "") -> List[DiffRow]:
    """Return list of (path, change_type, old, new)."""
    out: List[DiffRow] = []
    if isinstance(a, dict) and isinstance(b, dict):
        keys = set(a.keys()) | set(b.keys())
        for k in sorted(keys, key=str):
            va = a.get(k, None)
            vb = b.get(k, None)
            pfx = f"{prefix}.{k}" if prefix else str(k)
            if k not in a:
                out.append((pfx, "added", None, vb))
            elif k not in b:
                out.append((pfx, "removed", va, None))
            else:
                out.extend(diff(va, vb, pfx))
    elif a != b:
        out.append((prefix, "changed", a, b))
    return out


def version_unchanged(a: Any, b: Any, rows: List[DiffRow]) -> bool:
    """True when content differs while the top-level version stays the same."""
    if not rows or not isinstance(a, dict) or not isinstance(b, dict):
        return False
    return a.get(VERSION_KEY) == b.get(VERSION_KEY)


def render(diff_rows: List[DiffRow]) -> str:
    lines = []
    for path, typ, old, new in diff_rows:
        if typ == "added":
            lines.append(f"+ {path}: {new}")
        elif typ == "removed":
            lines.append(f"- {path}: {old}")
        else:
            lines.append(f"~ {path}: {old} -> {new}")
    return "\n".join(lines)


def main(a_path: str, b_path: str) -> str:
    a = load_yaml(a_path)
    b = load_yaml(b_path)
    rows = diff(a, b)
    if not rows:
        return "no differences"
    out = render(rows)
    if version_unchanged(a, b, rows):
        out += "\n" + VERSION_WARNING.format(version=a.get(VERSION_KEY))
    return out
