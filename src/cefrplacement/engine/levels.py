"""CEFR proficiency scale and ordering helpers."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ProficiencyLevel(str, Enum):
    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"

    def __str__(self) -> str:
        return self.value


LEVEL_ORDER: tuple[ProficiencyLevel, ...] = tuple(ProficiencyLevel)

LOWEST = LEVEL_ORDER[0]
HIGHEST = LEVEL_ORDER[-1]
BASELINE = ProficiencyLevel.B1


def parse_level(value: str | ProficiencyLevel) -> ProficiencyLevel:
    """Parse a level symbol such as ``"b2"`` or ``" C1 "``.

    Raises ValueError for anything outside the six bands.
    """
    if isinstance(value, ProficiencyLevel):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid proficiency level: {value!r}")
    try:
        return ProficiencyLevel(value.strip().upper())
    except ValueError:
        raise ValueError(f"Invalid proficiency level: {value!r}") from None


def index_of(level: str | ProficiencyLevel) -> int:
    return LEVEL_ORDER.index(parse_level(level))


def level_at_index(index: int) -> ProficiencyLevel:
    """Return the level at ``index``, clamped to the valid range."""
    index = max(0, min(index, len(LEVEL_ORDER) - 1))
    return LEVEL_ORDER[index]


def distance(a: str | ProficiencyLevel, b: str | ProficiencyLevel) -> int:
    return abs(index_of(a) - index_of(b))


def step(level: str | ProficiencyLevel, delta: int) -> ProficiencyLevel:
    """Move ``delta`` bands along the scale. Saturates at A1 and C2."""
    return level_at_index(index_of(level) + delta)


def is_extreme(level: str | ProficiencyLevel) -> bool:
    return parse_level(level) in (LOWEST, HIGHEST)


def should_upgrade(current: Optional[str], recommended: str | ProficiencyLevel) -> bool:
    """True when ``recommended`` is strictly above ``current``.

    A learner with no recorded level is treated as A1.
    """
    return index_of(recommended) > index_of(current or LOWEST)
