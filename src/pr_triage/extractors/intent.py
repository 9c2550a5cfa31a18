"""Test intent extraction.

Two PRs that implement the same behaviour differently tend to describe it the
same way in their tests. We keep the names of suites and cases, the matchers
used, and the modules under test (test frameworks themselves excluded).
"""

from __future__ import annotations
import re
from typing import FrozenSet, Iterable, List

from ..fingerprints.canonical import extract_added_removed_lines
from ..fingerprints.schema import TestIntent
from ..pipeline.context import ChangedFile
from ..utils.text import normalize_name, unique_sorted

TEST_FRAMEWORK_MODULES: FrozenSet[str] = frozenset({
    "vitest",
    "jest",
    "@jest/globals",
    "@playwright/test",
    "mocha",
    "chai",
    "pytest",
    "unittest",
})

SUITE_RE = re.compile(r"\bdescribe\s*\(\s*[\"'`]([^\"'`]+)")
TEST_RE = re.compile(r"\b(?:it|test)\s*\(\s*[\"'`]([^\"'`]+)")
MATCHER_RE = re.compile(r"\.to([A-Z][A-Za-z0-9_]*)\s*\(")
IMPORT_RE = re.compile(r"\bfrom\s+[\"'`]([^\"'`]+)[\"'`]")

PY_TEST_CLASS_RE = re.compile(r"^\s*class\s+(Test[A-Za-z0-9_]*)")
PY_TEST_FUNC_RE = re.compile(r"^\s*(?:async\s+)?def\s+(test_[A-Za-z0-9_]*)")
PY_IMPORT_RE = re.compile(r"^\s*(?:from\s+([A-Za-z_][\w.]*)\s+import\b|import\s+([A-Za-z_][\w.]*))")


def _root_module(name: str) -> str:
    return name.split(".", 1)[0]


def extract_test_intent(files: Iterable[ChangedFile]) -> TestIntent:
    suites: List[str] = []
    tests: List[str] = []
    matchers: List[str] = []
    imports: List[str] = []
    for f in files:
        is_python = f.path.endswith(".py")
        for raw in extract_added_removed_lines(f.patch):
            line = raw[1:]
            suites.extend(normalize_name(m.group(1)) for m in SUITE_RE.finditer(line))
            tests.extend(normalize_name(m.group(1)) for m in TEST_RE.finditer(line))
            matchers.extend(f"to{m.group(1)}" for m in MATCHER_RE.finditer(line))
            imports.extend(
                m.group(1) for m in IMPORT_RE.finditer(line)
                if m.group(1) not in TEST_FRAMEWORK_MODULES
            )

            if not is_python:
                continue
            m = PY_TEST_CLASS_RE.match(line)
            if m:
                suites.append(normalize_name(m.group(1)))
            m = PY_TEST_FUNC_RE.match(line)
            if m:
                tests.append(normalize_name(m.group(1)))
            m = PY_IMPORT_RE.match(line)
            if m:
                module = m.group(1) or m.group(2)
                if _root_module(module) not in TEST_FRAMEWORK_MODULES:
                    imports.append(module)

    return TestIntent(
        suite_names=tuple(unique_sorted(suites)),
        test_names=tuple(unique_sorted(tests)),
        matchers=tuple(unique_sorted(matchers)),
        imports_under_test=tuple(unique_sorted(imports)),
    )
