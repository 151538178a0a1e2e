"""Name canonicalization for moderation.

Two stages are exposed:

- ``clean_name`` trims, truncates to ``MAX_NAME_LENGTH`` and drops every
  character outside ASCII word characters, whitespace, ``-`` and ``.``.
  This is what gets submitted upstream.
- ``normalize_name`` additionally lowercases, folds leetspeak and collapses
  whitespace. It is used only for comparisons.

Stripping runs before folding, so ``@ ! | $`` are already gone by the time the
fold table is applied; only the digit substitutions change anything in
practice.
"""
from __future__ import annotations

import re

MAX_NAME_LENGTH = 20

_DISALLOWED_CHARS_RE = re.compile(r"[^\w\s\-.]", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+")

LEET_TABLE = str.maketrans({
    "@": "a",
    "0": "o",
    "1": "i",
    "|": "i",
    "!": "i",
    "3": "e",
    "4": "a",
    "5": "s",
    "$": "s",
    "7": "t",
})


def strip_disallowed(text: str) -> str:
    return _DISALLOWED_CHARS_RE.sub("", text)


def clean_name(raw: str) -> str:
    return strip_disallowed(raw.strip()[:MAX_NAME_LENGTH])


def fold_leet(text: str) -> str:
    return text.lower().translate(LEET_TABLE)


def normalize_name(raw: str) -> str:
    folded = fold_leet(clean_name(raw))
    return _WHITESPACE_RE.sub(" ", folded).strip()
