"""Weighted scoring of placement answers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Protocol

from cefrplacement.engine.levels import BASELINE, ProficiencyLevel
from cefrplacement.engine.normalizer import answers_match
from cefrplacement.engine.weights import weights_for


class Leveled(Protocol):
    level: ProficiencyLevel


@dataclass
class LevelTally:
    correct: int = 0
    total: int = 0
    points: float = 0.0

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 0.0
        return self.correct / self.total

    def to_dict(self) -> dict:
        return {"correct": self.correct, "total": self.total, "points": self.points}


@dataclass
class ScoreSheet:
    """Running totals kept by the caller and updated by WeightedScorer."""
    weighted_score: float = 0.0
    total_possible_score: float = 0.0
    breakdown: dict[ProficiencyLevel, LevelTally] = field(default_factory=dict)

    def tally(self, level: ProficiencyLevel) -> LevelTally:
        if level not in self.breakdown:
            self.breakdown[level] = LevelTally()
        return self.breakdown[level]

    @property
    def questions_scored(self) -> int:
        return sum(t.total for t in self.breakdown.values())

    @property
    def percentage(self) -> float:
        return overall_percentage(self.weighted_score, self.total_possible_score)

    def breakdown_dict(self) -> dict[str, dict]:
        return {level.value: tally.to_dict() for level, tally in self.breakdown.items()}


def overall_percentage(weighted_score: float, total_possible_score: float) -> float:
    """Weighted score as a share of the attainable maximum, floored at 0."""
    if total_possible_score <= 0:
        return 0.0
    return max(0.0, weighted_score / total_possible_score * 100)


class WeightedScorer:
    """Awards level-dependent points and accumulates them into a ScoreSheet.

    The ceiling grows by the *correct* weight of every question scored,
    whatever the outcome, so a run that spends its time at low levels has a
    lower maximum than one that stays high.
    """

    def record_answer(self, question: Leveled, is_correct: bool, sheet: ScoreSheet) -> float:
        level = question.level or BASELINE
        weights = weights_for(level)
        points = weights.points(is_correct)

        sheet.weighted_score += points
        sheet.total_possible_score += weights.correct

        tally = sheet.tally(level)
        tally.total += 1
        if is_correct:
            tally.correct += 1
        tally.points += points
        return points

    def score_answers(
        self,
        answers: Mapping[str, str],
        questions: Iterable,
        sheet: Optional[ScoreSheet] = None,
    ) -> ScoreSheet:
        """Score a finished set of questions against submitted answers.

        Questions with no submitted answer count as incorrect.
        """
        sheet = sheet if sheet is not None else ScoreSheet()
        for question in questions:
            submitted = answers.get(question.id)
            is_correct = submitted is not None and answers_match(submitted, question.correct_answer)
            self.record_answer(question, is_correct, sheet)
        return sheet
