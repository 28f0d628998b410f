"""String similarity helpers shared by strategies and scoring."""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")
_SEPARATOR_RE = re.compile(r"[-_]")


def normalize_text(text: str) -> str:
    """Lowercase and collapse whitespace."""
    return _WHITESPACE_RE.sub(" ", text.lower()).strip()


def normalize_identifier(value: str) -> str:
    """Lowercase and drop ``-``/``_`` so ``submit-btn`` equals ``submit_btn``."""
    return _SEPARATOR_RE.sub("", value.lower())


def char_overlap_ratio(original: str, candidate: str) -> float:
    """Share of ``original``'s characters present anywhere in ``candidate``."""
    longest = max(len(original), len(candidate))
    if not longest:
        return 0.0
    common = sum(1 for ch in original if ch in candidate)
    return common / longest


def word_overlap_ratio(original: str, candidate: str) -> float:
    """Exact shared words over the longer word list."""
    original_words = original.split()
    candidate_words = candidate.split()
    longest = max(len(original_words), len(candidate_words))
    if not longest:
        return 0.0
    overlap = sum(1 for w in original_words if w in candidate_words)
    return overlap / longest


def class_overlap(stored: list[str] | None, found: list[str] | None) -> int:
    if not stored or not found:
        return 0
    return sum(1 for c in stored if c in found)


def split_words(text: str) -> list[str]:
    return [w for w in _WHITESPACE_RE.split(text) if w]
