"""Answer normalization for comparison."""

from __future__ import annotations

import re


def normalize_text(text: str) -> str:
    """Normalize text for comparison: strip, collapse whitespace, lowercase."""
    text = text.strip()
    text = re.sub(r"\s+", " ", text)
    return text.lower()


def normalize_answer(answer: str) -> str:
    """Normalize a submitted or expected answer: strip and casefold only."""
    return answer.strip().casefold()


def answers_match(submitted: str, correct: str) -> bool:
    """Case-insensitive, whitespace-trimmed equality."""
    return normalize_answer(submitted) == normalize_answer(correct)
