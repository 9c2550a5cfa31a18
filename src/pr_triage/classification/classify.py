"""Channel classification.

Every changed file lands in exactly one channel. Precedence is fixed:
META -> TESTS -> DOCS -> PRODUCTION, first match wins, so a markdown file under
`tests/` is TESTS and an agent trace under `docs/` is META.

Globs are matched one path segment at a time with `fnmatch` (case-sensitive,
dotfiles not special). `*` never crosses `/`; a `**` segment matches zero or
more whole segments, so `**/*.md` covers a top-level `README.md` and
`**/*trace*.json` does not match `src/tracer/config.json`.

A PRODUCTION-classified source file is moved to TESTS when its patch calls a
test-runner entry point (`describe("...")`, `it("...")`, `test("...")`) or
imports a test framework. This catches ad-hoc test helpers that live next to
code.
"""

from __future__ import annotations
import logging
import posixpath
import re
from fnmatch import fnmatchcase
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern, Tuple

from ..config.models import ChannelRule, ClassificationRules
from ..constants import CHANNEL_ORDER
from ..errors import ConfigError
from ..fingerprints.canonical import extract_added_removed_lines
from ..pipeline.context import ChangedFile, Channel, ClassifiedFile

log = logging.getLogger("pr_triage.classification")

# PRODUCTION is the fallback, not a rule.
_PRECEDENCE: Tuple[Channel, ...] = tuple(Channel(c) for c in CHANNEL_ORDER if c != Channel.PRODUCTION.value)


def to_posix(path: str) -> str:
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path


def _match_segments(parts: Tuple[str, ...], pats: Tuple[str, ...]) -> bool:
    if not pats:
        return not parts
    head, rest = pats[0], pats[1:]
    if head == "**":
        return any(_match_segments(parts[i:], rest) for i in range(len(parts) + 1))
    if not parts or not fnmatchcase(parts[0], head):
        return False
    return _match_segments(parts[1:], rest)


def glob_matches(path: str, pattern: str) -> bool:
    return _match_segments(tuple(path.split("/")), tuple(pattern.split("/")))


def _extension(path: str) -> str:
    return posixpath.splitext(path)[1].lower()


def _rule_for(rules: ClassificationRules, channel: Channel) -> ChannelRule:
    rule = getattr(rules.channels, channel.value.lower(), None)
    if rule is None:
        raise ConfigError(f"classification rules have no channel {channel.value!r}")
    return rule


def _matches_rule(path: str, rule: ChannelRule) -> bool:
    if any(glob_matches(path, g) for g in rule.path_globs):
        return True
    ext = _extension(path)
    return bool(ext) and ext in {e.lower() for e in rule.extensions}


def classify_path(path: str, rules: ClassificationRules) -> Channel:
    """Channel for a path using glob/extension rules only."""
    path = to_posix(path)
    for channel in _PRECEDENCE:
        if _matches_rule(path, _rule_for(rules, channel)):
            return channel
    return Channel.PRODUCTION


@lru_cache(maxsize=32)
def _refinement_patterns(
    function_names: Tuple[str, ...], framework_imports: Tuple[str, ...]
) -> Tuple[Optional[Pattern[str]], Optional[Pattern[str]]]:
    call_re = None
    if function_names:
        names = "|".join(re.escape(n) for n in function_names)
        call_re = re.compile(rf"(?<![\w$.])(?:{names})\s*\(\s*[\"'`]")
    import_re = None
    if framework_imports:
        mods = "|".join(re.escape(m) for m in framework_imports)
        import_re = re.compile(
            rf"(?:\bfrom\s+[\"']({mods})[\"']"
            rf"|\brequire\(\s*[\"']({mods})[\"']\s*\)"
            rf"|^\s*(?:import|from)\s+({mods})\b)",
            re.MULTILINE,
        )
    return call_re, import_re


def refine_channel(file: ChangedFile, channel: Channel, rules: ClassificationRules) -> Channel:
    """Move source files whose content looks like a test into TESTS."""
    refinements = rules.ast_refinements
    if channel is not Channel.PRODUCTION or refinements is None or not file.patch:
        return channel
    if _extension(file.path) not in {e.lower() for e in rules.channels.production.extensions}:
        return channel
    call_re, import_re = _refinement_patterns(
        tuple(refinements.test_function_names), tuple(refinements.test_framework_imports)
    )
    content = "\n".join(line[1:] for line in extract_added_removed_lines(file.patch))
    if (call_re is not None and call_re.search(content)) or (import_re is not None and import_re.search(content)):
        log.debug("refined %s to TESTS from patch content", file.path)
        return Channel.TESTS
    return channel


def classify_file(file: ChangedFile, rules: ClassificationRules) -> ClassifiedFile:
    channel = classify_path(file.path, rules)
    return ClassifiedFile(file=file, channel=refine_channel(file, channel, rules))


def classify_files(files: Iterable[ChangedFile], rules: ClassificationRules) -> List[ClassifiedFile]:
    return [classify_file(f, rules) for f in files]


def files_in_channel(classified: Iterable[ClassifiedFile], channel: Channel) -> List[ChangedFile]:
    return [c.file for c in classified if c.channel is channel]
