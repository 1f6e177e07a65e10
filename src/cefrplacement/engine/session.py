"""Placement session state machine: start → submit → advance → complete."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from cefrplacement.config.settings import AssessmentConfig
from cefrplacement.engine import feedback
from cefrplacement.engine.difficulty import AdaptiveTrack, DifficultyAdapter, LevelChange
from cefrplacement.engine.errors import (
    AssessmentError,
    InvalidAnswerSubmission,
    SessionNotActive,
)
from cefrplacement.engine.feedback import CategoryTally
from cefrplacement.engine.inference import LevelInferencer
from cefrplacement.engine.levels import ProficiencyLevel
from cefrplacement.engine.normalizer import answers_match
from cefrplacement.engine.question_pool import (
    Question,
    select_questions,
    take_nearest,
    validate_questions,
)
from cefrplacement.engine.scoring import ScoreSheet, WeightedScorer

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class AnswerEvent:
    question_id: str
    level: ProficiencyLevel
    grammar_category: str
    grammar_topic: str
    submitted_answer: str
    is_correct: bool
    points: float
    level_after: ProficiencyLevel

    def to_dict(self) -> dict:
        return {
            "questionId": self.question_id,
            "level": self.level.value,
            "grammarCategory": self.grammar_category,
            "grammarTopic": self.grammar_topic,
            "submittedAnswer": self.submitted_answer,
            "isCorrect": self.is_correct,
            "points": self.points,
            "levelAfter": self.level_after.value,
        }


@dataclass
class SessionState:
    max_questions: int
    queue: list[Question]
    track: AdaptiveTrack
    sheet: ScoreSheet = field(default_factory=ScoreSheet)
    current_question: Optional[Question] = None
    awaiting_answer: bool = False
    questions_asked: int = 0
    grammar_performance: dict[str, CategoryTally] = field(default_factory=dict)
    history: list[AnswerEvent] = field(default_factory=list)
    used_topics: list[str] = field(default_factory=list)

    @property
    def current_level(self) -> ProficiencyLevel:
        return self.track.current_level

    @property
    def consecutive_correct(self) -> int:
        return self.track.consecutive_correct

    @property
    def consecutive_wrong(self) -> int:
        return self.track.consecutive_wrong

    @property
    def questions_at_current_level(self) -> int:
        return self.track.questions_at_level

    @property
    def level_progression(self) -> list[ProficiencyLevel]:
        return self.track.progression

    @property
    def weighted_score(self) -> float:
        return self.sheet.weighted_score

    @property
    def is_exhausted(self) -> bool:
        return self.questions_asked >= self.max_questions or not self.queue


@dataclass
class AssessmentResult:
    score: float
    weighted_score: float
    total_possible_score: float
    recommended_level: ProficiencyLevel
    confidence: float
    questions_answered: int
    level_breakdown: dict[str, dict]
    grammar_breakdown: dict[str, dict]
    level_progression: list[ProficiencyLevel]
    xp_earned: int = 0
    message: str = ""
    next_steps: list[str] = field(default_factory=list)
    grammar_insights: list[feedback.GrammarInsight] = field(default_factory=list)
    weak_categories: list[str] = field(default_factory=list)
    strong_categories: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "weightedScore": self.weighted_score,
            "totalPossibleScore": self.total_possible_score,
            "recommendedLevel": self.recommended_level.value,
            "confidence": self.confidence,
            "questionsAnswered": self.questions_answered,
            "levelBreakdown": self.level_breakdown,
            "grammarBreakdown": self.grammar_breakdown,
            "levelProgression": [level.value for level in self.level_progression],
            "xpEarned": self.xp_earned,
            "detailedFeedback": {"message": self.message, "nextSteps": self.next_steps},
            "grammarInsights": [i.to_dict() for i in self.grammar_insights],
            "weakCategories": self.weak_categories,
            "strongCategories": self.strong_categories,
        }


class AssessmentSession:
    """Owns one placement attempt from question selection to final result.

    All operations are synchronous. Callers serialize access per session and
    must not share a session between attempts.
    """

    def __init__(
        self,
        config: Optional[AssessmentConfig] = None,
        rng: Optional[random.Random] = None,
        scorer: Optional[WeightedScorer] = None,
        adapter: Optional[DifficultyAdapter] = None,
        inferencer: Optional[LevelInferencer] = None,
    ):
        self.config = config or AssessmentConfig()
        self.rng = rng or random.Random(self.config.get_seed())
        self.scorer = scorer or WeightedScorer()
        self.adapter = adapter or DifficultyAdapter()
        self.inferencer = inferencer or LevelInferencer()
        self.phase = SessionPhase.NOT_STARTED
        self.state: Optional[SessionState] = None
        self.result: Optional[AssessmentResult] = None

    @property
    def current_question(self) -> Optional[Question]:
        if self.state is None:
            return None
        return self.state.current_question

    def _require_active(self) -> SessionState:
        if self.phase != SessionPhase.IN_PROGRESS or self.state is None:
            raise SessionNotActive(f"Session is {self.phase.value}, not in progress")
        return self.state

    def start(self, question_pool: Iterable) -> Question:
        """Select the question queue and begin the attempt.

        ``question_pool`` may hold Question objects or raw records; malformed
        records are skipped. Raises InsufficientQuestionPool when fewer than
        ``max_questions`` distinct topics remain.
        """
        if self.phase != SessionPhase.NOT_STARTED:
            raise AssessmentError("Session already started; call reset() first")

        start_level = self.config.start_level
        pool = validate_questions(question_pool)
        selected = select_questions(
            pool, self.config.max_questions, start_level, rng=self.rng,
        )

        state = SessionState(
            max_questions=self.config.max_questions,
            queue=selected,
            track=AdaptiveTrack.starting_at(start_level),
            used_topics=[q.grammar_topic for q in selected],
        )
        state.current_question = take_nearest(state.queue, start_level)
        state.awaiting_answer = True

        self.state = state
        self.result = None
        self.phase = SessionPhase.IN_PROGRESS
        logger.info(
            "Assessment started: %d questions from %d candidates, level %s",
            len(selected), len(pool), start_level,
        )
        return state.current_question

    def submit_answer(self, selected_answer: Optional[str]) -> AnswerEvent:
        state = self._require_active()
        question = state.current_question
        if question is None or not state.awaiting_answer:
            raise SessionNotActive("No pending question; call advance() first")
        if not isinstance(selected_answer, str):
            raise InvalidAnswerSubmission(
                f"Answer must be text, got {type(selected_answer).__name__}"
            )
        if not selected_answer.strip():
            raise InvalidAnswerSubmission("Answer must not be empty")

        is_correct = answers_match(selected_answer, question.correct_answer)
        points = self.scorer.record_answer(question, is_correct, state.sheet)

        category = question.grammar_category
        state.grammar_performance.setdefault(category, CategoryTally()).record(is_correct)

        change: LevelChange = self.adapter.process_answer(state.track, is_correct)
        state.questions_asked += 1
        state.awaiting_answer = False

        event = AnswerEvent(
            question_id=question.id,
            level=question.level,
            grammar_category=category,
            grammar_topic=question.grammar_topic,
            submitted_answer=selected_answer,
            is_correct=is_correct,
            points=points,
            level_after=change.new_level,
        )
        state.history.append(event)
        logger.debug(
            "Answer %d/%d on %s: %s (%+.1f), level now %s",
            state.questions_asked, state.max_questions, question.id,
            "correct" if is_correct else "wrong", points, state.current_level,
        )
        return event

    def _should_stop_early(self, state: SessionState) -> bool:
        cfg = self.config
        if not cfg.early_stop or state.questions_asked < cfg.early_stop_min_questions:
            return False
        gap = abs(state.consecutive_correct - state.consecutive_wrong)
        return gap >= cfg.early_stop_margin

    def advance(self) -> Optional[Question]:
        """Move to the next question, or complete when the budget is spent.

        The next question is the first queued one nearest the current level.
        An unanswered current question is dropped. Returns None once the
        session has completed; the outcome is then available as ``result``.
        """
        state = self._require_active()

        if state.is_exhausted or self._should_stop_early(state):
            self.complete()
            return None

        state.current_question = take_nearest(state.queue, state.current_level)
        state.awaiting_answer = True
        return state.current_question

    def complete(self) -> AssessmentResult:
        state = self._require_active()
        sheet = state.sheet

        estimate = self.inferencer.infer(sheet.breakdown)
        score = sheet.percentage
        progression = list(state.level_progression)

        result = AssessmentResult(
            score=score,
            weighted_score=sheet.weighted_score,
            total_possible_score=sheet.total_possible_score,
            recommended_level=estimate.level,
            confidence=estimate.confidence,
            questions_answered=state.questions_asked,
            level_breakdown=sheet.breakdown_dict(),
            grammar_breakdown={c: t.to_dict() for c, t in state.grammar_performance.items()},
            level_progression=progression,
            xp_earned=feedback.xp_for(estimate.level, score),
            message=feedback.summary_message(
                sheet.weighted_score, sheet.total_possible_score, estimate.confidence,
            ),
            next_steps=feedback.next_steps(
                estimate.level,
                estimate.confidence,
                progression,
                len({e.grammar_topic for e in state.history}),
            ),
            grammar_insights=feedback.grammar_insights(state.grammar_performance),
            weak_categories=feedback.weak_categories(state.grammar_performance),
            strong_categories=feedback.strong_categories(state.grammar_performance),
        )

        state.current_question = None
        state.awaiting_answer = False
        self.result = result
        self.phase = SessionPhase.COMPLETED
        logger.info(
            "Assessment complete: %s (%.0f%% confidence) after %d questions",
            result.recommended_level, result.confidence, result.questions_answered,
        )
        return result

    def reset(self) -> None:
        """Discard all attempt state and return to NOT_STARTED."""
        self.state = None
        self.result = None
        self.phase = SessionPhase.NOT_STARTED
