"""Tokenizer and shingler for code and token lists.

Normalization erases the noise that differs between two implementations of
the same edit: whitespace runs and literal values. Identifiers and operators
are kept because they carry the structure of the change.
"""

from __future__ import annotations
import re
from typing import Iterable, List, Set

from ..constants import PRODUCTION_SHINGLE_SIZE, TOKEN_SHINGLE_SIZE

NUM_TOKEN = "<NUM>"
STR_TOKEN = "<STR>"
# Unit separator; never produced by the tokenizer.
SHINGLE_SEPARATOR = "\x1f"

_WS_RE = re.compile(r"\s+")
_NUMBER_LITERAL_RE = re.compile(r"\b\d+(?:\.\d+)?\b")
_TOKEN_RE = re.compile(
    r"<NUM>"
    r"|[A-Za-z_$][A-Za-z0-9_$]*"
    r"|\"(?:\\.|[^\"\\])*\""
    r"|'(?:\\.|[^'\\])*'"
    r"|`(?:\\.|[^`\\])*`"
    r"|\d+"
    r"|==|!=|<=|>=|=>|&&|\|\|"
    r"|[{}()\[\].,;:+\-*/%<>=!?&|^~]=?"
)


def normalize_code_line(line: str) -> str:
    line = _WS_RE.sub(" ", line.strip())
    return _NUMBER_LITERAL_RE.sub(NUM_TOKEN, line)


def tokenize_line(line: str) -> List[str]:
    tokens = []
    for tok in _TOKEN_RE.findall(normalize_code_line(line)):
        if tok[0].isdigit():
            tokens.append(NUM_TOKEN)
        elif tok[0] in "\"'`":
            tokens.append(STR_TOKEN)
        else:
            tokens.append(tok)
    return tokens


def tokenize_lines(lines: Iterable[str]) -> List[str]:
    out: List[str] = []
    for line in lines:
        out.extend(tokenize_line(line))
    return out


def shingles(tokens: List[str], k: int) -> Set[str]:
    """Every window of exactly k consecutive tokens; empty when len(tokens) < k."""
    if k <= 0 or len(tokens) < k:
        return set()
    return {SHINGLE_SEPARATOR.join(tokens[i:i + k]) for i in range(len(tokens) - k + 1)}


def production_shingles(patch_lines: Iterable[str], k: int = PRODUCTION_SHINGLE_SIZE) -> Set[str]:
    """Shingles over +/- lines with their marker removed."""
    return shingles(tokenize_lines(line[1:] for line in patch_lines), k)


def token_list_shingles(tokens: List[str], k: int = TOKEN_SHINGLE_SIZE) -> Set[str]:
    return shingles(tokens, k)
