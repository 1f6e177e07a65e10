"""YAML question bank parser."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from cefrplacement.engine.question_pool import QuestionBank


@dataclass
class BankMeta:
    id: str
    title: str
    description: str
    version: str
    path: Path


# questions.yaml uses the same CamelCase keys authors already know from
# lesson files; map them onto Question.from_dict field names.
_FIELD_MAP = {
    "Id": "id",
    "Level": "level",
    "Category": "grammar_category",
    "Topic": "grammar_topic",
    "Question": "prompt",
    "AnswerChoices": "options",
    "CorrectAnswer": "correct_answer",
    "Explanation": "explanation",
}


def _to_record(raw: dict) -> dict:
    return {_FIELD_MAP.get(key, key): value for key, value in raw.items()}


def load_bank_meta(bank_dir: Path) -> BankMeta:
    """Load bank.yaml from a bank directory."""
    with open(bank_dir / "bank.yaml") as f:
        data = yaml.safe_load(f)

    b = data["bank"]
    return BankMeta(
        id=b["id"],
        title=b["title"],
        description=b.get("description", ""),
        version=str(b.get("version", "1.0.0")),
        path=bank_dir,
    )


def load_bank(bank_dir: Path) -> QuestionBank:
    """Load questions.yaml from a bank directory. Malformed entries are skipped."""
    meta = load_bank_meta(bank_dir)
    with open(bank_dir / "questions.yaml") as f:
        raw_questions = yaml.safe_load(f) or []

    return QuestionBank.from_records(
        meta.id, [_to_record(raw) for raw in raw_questions if isinstance(raw, dict)]
    )
