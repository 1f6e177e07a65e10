"""Adaptive difficulty: decides which CEFR band to present next.

Two policies run after every answer, in this order:

1. Forced rotation. Once three questions have been answered at a non-extreme
   level, the level must change. The last three answers at that level vote:
   two or more correct moves one band up, otherwise one band down.
2. Streaks. Two correct answers in a row move one band up, two wrong answers
   in a row move one band down. Moves past A1 or C2 saturate.

Any actual change resets both streak counters and the per-level counter and
appends the new level to the progression log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from cefrplacement.engine.levels import BASELINE, ProficiencyLevel, is_extreme, step

logger = logging.getLogger(__name__)


class Policy(str, Enum):
    FORCED_ROTATION = "forced_rotation"
    STREAK = "streak"


@dataclass
class AdaptiveTrack:
    """Mutable difficulty state for one assessment attempt."""
    current_level: ProficiencyLevel = BASELINE
    consecutive_correct: int = 0
    consecutive_wrong: int = 0
    questions_at_level: int = 0
    level_outcomes: list[bool] = field(default_factory=list)  # answers at current level
    progression: list[ProficiencyLevel] = field(default_factory=list)

    def __post_init__(self):
        if not self.progression:
            self.progression.append(self.current_level)

    @classmethod
    def starting_at(cls, level: ProficiencyLevel = BASELINE) -> "AdaptiveTrack":
        return cls(current_level=level)


@dataclass(frozen=True)
class LevelChange:
    """Outcome of one difficulty decision."""
    previous_level: ProficiencyLevel
    new_level: ProficiencyLevel
    policy: Optional[Policy] = None
    reason: str = ""

    @property
    def changed(self) -> bool:
        return self.new_level != self.previous_level


class DifficultyAdapter:
    ROTATION_BUDGET = 3
    ROTATION_WINDOW = 3
    ROTATION_MAJORITY = 2
    STREAK_THRESHOLD = 2

    def record_outcome(self, track: AdaptiveTrack, is_correct: bool) -> None:
        """Update streaks and per-level counters for one answer."""
        if is_correct:
            track.consecutive_correct += 1
            track.consecutive_wrong = 0
        else:
            track.consecutive_wrong += 1
            track.consecutive_correct = 0
        track.questions_at_level += 1
        track.level_outcomes.append(is_correct)

    def decide(self, track: AdaptiveTrack) -> LevelChange:
        """Pick the next level without mutating ``track``."""
        current = track.current_level

        if track.questions_at_level >= self.ROTATION_BUDGET and not is_extreme(current):
            window = track.level_outcomes[-self.ROTATION_WINDOW:]
            correct = sum(1 for outcome in window if outcome)
            delta = 1 if correct >= self.ROTATION_MAJORITY else -1
            return LevelChange(
                previous_level=current,
                new_level=step(current, delta),
                policy=Policy.FORCED_ROTATION,
                reason=(
                    f"{track.questions_at_level} questions at {current}, "
                    f"{correct}/{len(window)} recent correct"
                ),
            )

        if track.consecutive_correct >= self.STREAK_THRESHOLD:
            target = step(current, 1)
            reason = f"{track.consecutive_correct} consecutive correct"
        elif track.consecutive_wrong >= self.STREAK_THRESHOLD:
            target = step(current, -1)
            reason = f"{track.consecutive_wrong} consecutive wrong"
        else:
            return LevelChange(previous_level=current, new_level=current, reason="no trigger")

        if target == current:
            return LevelChange(
                previous_level=current,
                new_level=current,
                reason=f"{reason}, already at {current}",
            )
        return LevelChange(
            previous_level=current, new_level=target, policy=Policy.STREAK, reason=reason,
        )

    def apply(self, track: AdaptiveTrack, change: LevelChange) -> bool:
        """Apply ``change`` to ``track``. Returns True if the level moved."""
        if not change.changed:
            return False

        track.current_level = change.new_level
        track.consecutive_correct = 0
        track.consecutive_wrong = 0
        track.questions_at_level = 0
        track.level_outcomes.clear()
        track.progression.append(change.new_level)

        logger.debug(
            "Difficulty %s -> %s (%s: %s)",
            change.previous_level, change.new_level,
            change.policy.value if change.policy else "-", change.reason,
        )
        return True

    def process_answer(self, track: AdaptiveTrack, is_correct: bool) -> LevelChange:
        """Record an answer, then decide and apply the next level."""
        self.record_outcome(track, is_correct)
        change = self.decide(track)
        self.apply(track, change)
        return change
