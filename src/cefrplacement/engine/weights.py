"""Per-level point values for correct and incorrect answers.

Mistakes on easy material cost the most. At C1/C2 a wrong answer still earns
a small positive amount so attempting the hardest items is never punished.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from cefrplacement.engine.levels import BASELINE, ProficiencyLevel


@dataclass(frozen=True)
class LevelWeights:
    correct: float
    incorrect: float

    def points(self, is_correct: bool) -> float:
        return self.correct if is_correct else self.incorrect


LEVEL_WEIGHTS: dict[ProficiencyLevel, LevelWeights] = {
    ProficiencyLevel.A1: LevelWeights(correct=1.0, incorrect=-2.5),
    ProficiencyLevel.A2: LevelWeights(correct=2.0, incorrect=-2.0),
    ProficiencyLevel.B1: LevelWeights(correct=3.0, incorrect=-1.5),
    ProficiencyLevel.B2: LevelWeights(correct=4.0, incorrect=-1.0),
    ProficiencyLevel.C1: LevelWeights(correct=6.0, incorrect=0.5),
    ProficiencyLevel.C2: LevelWeights(correct=8.0, incorrect=0.5),
}


def weights_for(level: Optional[str | ProficiencyLevel]) -> LevelWeights:
    """Look up the weights for ``level``; unknown levels score like B1."""
    if isinstance(level, str):
        try:
            level = ProficiencyLevel(level.strip().upper())
        except ValueError:
            level = BASELINE
    return LEVEL_WEIGHTS.get(level, LEVEL_WEIGHTS[BASELINE])
