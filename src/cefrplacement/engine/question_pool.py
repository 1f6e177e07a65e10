"""Question records, validation, and per-topic selection."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from cefrplacement.engine.errors import InsufficientQuestionPool, MalformedQuestionData
from cefrplacement.engine.levels import ProficiencyLevel, distance, parse_level
from cefrplacement.engine.normalizer import answers_match, normalize_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Question:
    id: str
    prompt: str
    correct_answer: str
    level: ProficiencyLevel
    grammar_category: str
    grammar_topic: str
    options: Optional[tuple[str, ...]] = None  # None for free-text items
    explanation: str = ""

    @property
    def topic_key(self) -> str:
        return normalize_text(self.grammar_topic)

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        """Build a validated Question from a raw record.

        Accepts ``options`` as a list or a semicolon-separated string.
        Raises MalformedQuestionData when anything needed to grade or place
        the question is missing.
        """
        qid = str(data.get("id") or "").strip()
        if not qid:
            raise MalformedQuestionData("<unknown>", "missing id")

        prompt = _text(qid, "prompt", data.get("prompt") or data.get("question"))
        if not prompt:
            raise MalformedQuestionData(qid, "missing prompt text")

        correct = _text(qid, "correct answer", data.get("correct_answer"))
        if not correct:
            raise MalformedQuestionData(qid, "missing correct answer")

        raw_level = data.get("level")
        try:
            level = parse_level(raw_level)
        except ValueError:
            raise MalformedQuestionData(qid, f"unknown level {raw_level!r}") from None

        category = _text(qid, "grammar category", data.get("grammar_category"))
        topic = _text(qid, "grammar topic", data.get("grammar_topic"))
        if not category:
            raise MalformedQuestionData(qid, "missing grammar category")
        if not topic:
            raise MalformedQuestionData(qid, "missing grammar topic")

        options = _parse_options(qid, data.get("options"))
        if options is not None and not any(answers_match(o, correct) for o in options):
            raise MalformedQuestionData(qid, "correct answer is not one of the options")

        return cls(
            id=qid,
            prompt=prompt,
            correct_answer=correct,
            level=level,
            grammar_category=category,
            grammar_topic=topic,
            options=options,
            explanation=_text(qid, "explanation", data.get("explanation")),
        )


def _text(qid: str, name: str, value) -> str:
    """Stringify a scalar field; YAML may hand back ints, floats or bools."""
    if value is None:
        return ""
    if not isinstance(value, (str, int, float)):
        raise MalformedQuestionData(qid, f"{name} must be text, got {type(value).__name__}")
    return str(value).strip()


def _parse_options(qid: str, raw) -> Optional[tuple[str, ...]]:
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = raw.split(";")
    elif not isinstance(raw, (list, tuple)):
        raise MalformedQuestionData(qid, "options must be a list or a ';'-separated string")
    options = tuple(str(o).strip() for o in raw if str(o).strip())
    return options or None


def validate_questions(records: Iterable) -> list[Question]:
    """Keep well-formed questions, skipping and logging malformed ones."""
    valid: list[Question] = []
    for record in records:
        if isinstance(record, Question):
            valid.append(record)
            continue
        try:
            valid.append(Question.from_dict(record))
        except MalformedQuestionData as e:
            logger.warning("Skipping question: %s", e)
    return valid


def count_topics(questions: Iterable[Question]) -> int:
    return len({q.topic_key for q in questions})


def select_questions(
    pool: Sequence[Question],
    count: int,
    target_level: ProficiencyLevel,
    rng: Optional[random.Random] = None,
) -> list[Question]:
    """Pick ``count`` questions, one per distinct grammar topic.

    Within a topic the question closest to ``target_level`` wins, ties broken
    by ``rng``. Topics whose best question sits nearer the target are
    preferred. The final order is shuffled.
    """
    rng = rng or random.Random()

    by_topic: dict[str, list[Question]] = {}
    for question in pool:
        by_topic.setdefault(question.topic_key, []).append(question)

    if len(pool) < count or len(by_topic) < count:
        raise InsufficientQuestionPool(required=count, available=len(by_topic))

    candidates: list[tuple[int, float, Question]] = []
    for topic in sorted(by_topic):
        questions = sorted(by_topic[topic], key=lambda q: q.id)
        best = min(distance(q.level, target_level) for q in questions)
        nearest = [q for q in questions if distance(q.level, target_level) == best]
        candidates.append((best, rng.random(), rng.choice(nearest)))

    candidates.sort(key=lambda c: (c[0], c[1]))
    selected = [question for _, _, question in candidates[:count]]
    rng.shuffle(selected)
    return selected


def take_nearest(queue: list[Question], level: ProficiencyLevel) -> Optional[Question]:
    """Remove and return the first queued question closest to ``level``."""
    if not queue:
        return None
    best = min(range(len(queue)), key=lambda i: (distance(queue[i].level, level), i))
    return queue.pop(best)


@dataclass
class QuestionBank:
    """In-memory question supplier for one bank."""
    bank_id: str
    questions: list[Question] = field(default_factory=list)

    @classmethod
    def from_records(cls, bank_id: str, records: Iterable) -> "QuestionBank":
        return cls(bank_id=bank_id, questions=validate_questions(records))

    @property
    def topic_count(self) -> int:
        return count_topics(self.questions)

    def fetch(
        self,
        target_level: ProficiencyLevel,
        exclude_ids: Iterable[str] = (),
        limit: Optional[int] = None,
    ) -> list[Question]:
        """Return questions not in ``exclude_ids``, nearest level first."""
        excluded = set(exclude_ids)
        available = [q for q in self.questions if q.id not in excluded]
        available.sort(key=lambda q: (distance(q.level, target_level), q.id))
        if limit is not None:
            available = available[:limit]
        return available
