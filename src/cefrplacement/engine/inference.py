"""Turns a per-level score breakdown into a recommended CEFR level."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from cefrplacement.engine.levels import LOWEST, ProficiencyLevel
from cefrplacement.engine.scoring import LevelTally


@dataclass(frozen=True)
class LevelThreshold:
    level: ProficiencyLevel
    min_accuracy: float
    needs_positive_points: bool
    base_confidence: float
    max_confidence: float

    def qualifies(self, tally: LevelTally) -> bool:
        if tally.accuracy < self.min_accuracy:
            return False
        return tally.points > 0 or not self.needs_positive_points

    def confidence(self, accuracy: float) -> float:
        return min(self.max_confidence, self.base_confidence + accuracy * 25)


# Scanned top-down; the first level that qualifies wins.
LEVEL_THRESHOLDS: tuple[LevelThreshold, ...] = (
    LevelThreshold(ProficiencyLevel.C2, 0.6, True, 70, 95),
    LevelThreshold(ProficiencyLevel.C1, 0.7, True, 65, 90),
    LevelThreshold(ProficiencyLevel.B2, 0.75, True, 60, 85),
    LevelThreshold(ProficiencyLevel.B1, 0.7, True, 55, 80),
    LevelThreshold(ProficiencyLevel.A2, 0.6, False, 50, 75),
)

FOUNDATION_MIN_ACCURACY = 0.5
FOUNDATION_PENALTY = 30
FOUNDATION_FLOOR = 20


@dataclass(frozen=True)
class LevelEstimate:
    level: ProficiencyLevel
    confidence: float


class LevelInferencer:
    def infer(self, breakdown: Mapping[ProficiencyLevel, LevelTally]) -> LevelEstimate:
        level = LOWEST
        confidence = 0.0

        for threshold in LEVEL_THRESHOLDS:
            tally = breakdown.get(threshold.level)
            if tally is None or tally.total == 0:
                continue
            if threshold.qualifies(tally):
                level = threshold.level
                confidence = threshold.confidence(tally.accuracy)
                break

        # Failing the easiest material overrides any apparent strength above it.
        foundation = breakdown.get(LOWEST)
        if foundation is not None and foundation.total > 0:
            if foundation.accuracy < FOUNDATION_MIN_ACCURACY:
                level = LOWEST
                confidence = max(FOUNDATION_FLOOR, confidence - FOUNDATION_PENALTY)

        return LevelEstimate(level=level, confidence=confidence)
