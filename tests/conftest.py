"""Shared fixtures for cefrplacement tests."""

from __future__ import annotations

import pytest
import yaml

from cefrplacement.engine.levels import LEVEL_ORDER
from cefrplacement.engine.question_pool import Question


def make_question(
    qid: str,
    level: str = "B1",
    topic: str | None = None,
    category: str = "Verb tenses",
    answer: str = "right",
    options: tuple[str, ...] | None = ("right", "wrong", "other"),
) -> Question:
    return Question.from_dict({
        "id": qid,
        "prompt": f"Prompt for {qid}",
        "correct_answer": answer,
        "level": level,
        "grammar_category": category,
        "grammar_topic": topic or f"topic {qid}",
        "options": list(options) if options else None,
    })


@pytest.fixture
def question_factory():
    return make_question


@pytest.fixture
def rotated_pool():
    """Fifteen questions with distinct topics, levels rotating A1..C2."""
    return [
        make_question(
            f"q{i:02d}",
            level=LEVEL_ORDER[i % len(LEVEL_ORDER)].value,
            category=("Verb tenses", "Articles", "Conditionals")[i % 3],
        )
        for i in range(15)
    ]


@pytest.fixture
def large_pool():
    """Thirty questions over twenty topics, several levels per topic."""
    pool = []
    for i in range(30):
        pool.append(make_question(
            f"L{i:02d}",
            level=LEVEL_ORDER[i % len(LEVEL_ORDER)].value,
            topic=f"topic {i % 20}",
        ))
    return pool


@pytest.fixture
def sample_bank_dir(tmp_path):
    """Create a minimal bank directory with one malformed entry."""
    bank_dir = tmp_path / "banks" / "test_bank"
    bank_dir.mkdir(parents=True)

    with open(bank_dir / "bank.yaml", "w") as f:
        yaml.dump({
            "bank": {
                "id": "test_bank",
                "title": "Test Bank",
                "description": "A test bank",
                "version": "1.0.0",
            }
        }, f)

    questions = []
    for i in range(16):
        level = LEVEL_ORDER[i % len(LEVEL_ORDER)].value
        questions.append({
            "Id": f"t{i:02d}",
            "Level": level,
            "Category": "Verb tenses" if i % 2 else "Articles",
            "Topic": f"Topic {i}",
            "Question": f"Question {i}?",
            "AnswerChoices": "right;wrong;other",
            "CorrectAnswer": "right",
            "Explanation": "Because.",
        })
    questions.append({
        "Id": "broken",
        "Level": "B1",
        "Category": "Verb tenses",
        "Topic": "Broken topic",
        "Question": "No answer here?",
        "AnswerChoices": "a;b",
    })
    with open(bank_dir / "questions.yaml", "w") as f:
        yaml.dump(questions, f)

    return bank_dir
