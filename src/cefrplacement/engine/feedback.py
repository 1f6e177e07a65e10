"""Result narration: summary text, next steps, grammar insights, XP."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

from cefrplacement.engine.levels import ProficiencyLevel

BASE_XP = 150

XP_MULTIPLIERS: dict[ProficiencyLevel, float] = {
    ProficiencyLevel.A1: 1.0,
    ProficiencyLevel.A2: 1.2,
    ProficiencyLevel.B1: 1.5,
    ProficiencyLevel.B2: 1.8,
    ProficiencyLevel.C1: 2.2,
    ProficiencyLevel.C2: 2.5,
}

# Accuracy cut-offs for per-category insights
MISTAKE_PATTERN_BELOW = 0.5
IMPROVEMENT_BELOW = 0.7
WEAK_BELOW = 0.6
STRONG_FROM = 0.8


@dataclass
class CategoryTally:
    correct: int = 0
    total: int = 0
    accuracy: float = 0.0

    def record(self, is_correct: bool) -> None:
        self.total += 1
        if is_correct:
            self.correct += 1
        self.accuracy = self.correct / self.total

    def to_dict(self) -> dict:
        return {"correct": self.correct, "total": self.total, "accuracy": self.accuracy}


@dataclass
class GrammarInsight:
    category: str
    question_count: int
    correct_count: int
    mistake_patterns: list[str] = field(default_factory=list)
    improvement_areas: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "questionCount": self.question_count,
            "correctCount": self.correct_count,
            "mistakePatterns": self.mistake_patterns,
            "improvementAreas": self.improvement_areas,
        }


def xp_for(level: ProficiencyLevel, score: float) -> int:
    multiplier = XP_MULTIPLIERS.get(level, 1.0)
    return round(BASE_XP * multiplier + (score / 100) * 100)


def grammar_insights(performance: Mapping[str, CategoryTally]) -> list[GrammarInsight]:
    insights = []
    for category, tally in performance.items():
        insight = GrammarInsight(
            category=category,
            question_count=tally.total,
            correct_count=tally.correct,
        )
        if tally.accuracy < MISTAKE_PATTERN_BELOW:
            insight.mistake_patterns.append(f"Low accuracy in {category}")
        if tally.accuracy < IMPROVEMENT_BELOW:
            insight.improvement_areas.append(f"Practice more {category} exercises")
        insights.append(insight)
    return insights


def weak_categories(performance: Mapping[str, CategoryTally]) -> list[str]:
    return [c for c, t in performance.items() if t.total and t.accuracy < WEAK_BELOW]


def strong_categories(performance: Mapping[str, CategoryTally]) -> list[str]:
    return [c for c, t in performance.items() if t.total and t.accuracy >= STRONG_FROM]


def summary_message(weighted_score: float, total_possible_score: float, confidence: float) -> str:
    return (
        f"Adaptive assessment complete! Weighted score: "
        f"{round(weighted_score)}/{round(total_possible_score)} points "
        f"({round(confidence)}% confidence)"
    )


def next_steps(
    level: ProficiencyLevel,
    confidence: float,
    progression: Sequence[ProficiencyLevel],
    topics_covered: int,
) -> list[str]:
    return [
        f"Your adaptive level: {level} ({round(confidence)}% confidence)",
        f"Questions adapted from {' → '.join(str(p) for p in progression)}",
        f"Grammar variety: {topics_covered} unique topics covered",
        "Weighted scoring applied: easier mistakes penalized more heavily",
    ]
