"""SQLite-backed storage for finished placement attempts."""

from __future__ import annotations

import json
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from cefrplacement.engine.levels import should_upgrade
from cefrplacement.engine.session import AnswerEvent, AssessmentResult


@dataclass
class StoredResult:
    attempt_id: str
    learner_id: str
    level: str
    confidence: float
    score: float
    weighted_score: float
    questions_answered: int
    progression: list[str]
    result: dict
    completed_at: str


class ResultStore:
    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or (Path.home() / ".cefrplacement" / "results.db")
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS results (
                    attempt_id TEXT PRIMARY KEY,
                    learner_id TEXT NOT NULL,
                    level TEXT NOT NULL,
                    confidence REAL NOT NULL,
                    score REAL NOT NULL,
                    weighted_score REAL NOT NULL,
                    questions_answered INTEGER NOT NULL,
                    progression TEXT NOT NULL,
                    result_json TEXT NOT NULL,
                    completed_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS answers (
                    attempt_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    question_id TEXT NOT NULL,
                    level TEXT NOT NULL,
                    grammar_category TEXT NOT NULL,
                    grammar_topic TEXT NOT NULL,
                    submitted_answer TEXT NOT NULL,
                    is_correct INTEGER NOT NULL,
                    points REAL NOT NULL,
                    PRIMARY KEY (attempt_id, position)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS profiles (
                    learner_id TEXT PRIMARY KEY,
                    level TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    def _conn(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def save_result(
        self,
        learner_id: str,
        result: AssessmentResult,
        history: Sequence[AnswerEvent] = (),
        attempt_id: Optional[str] = None,
    ) -> str:
        """Store a finished attempt and its answers. Returns the attempt id.

        The learner's profile level is raised to the recommended level, never
        lowered.
        """
        attempt_id = attempt_id or uuid.uuid4().hex
        now = datetime.now().isoformat()
        data = result.to_dict()
        level = result.recommended_level.value

        with self._conn() as conn:
            conn.execute(
                """INSERT INTO results
                   (attempt_id, learner_id, level, confidence, score, weighted_score,
                    questions_answered, progression, result_json, completed_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    attempt_id, learner_id, level, result.confidence, result.score,
                    result.weighted_score, result.questions_answered,
                    json.dumps(data["levelProgression"]), json.dumps(data), now,
                ),
            )
            conn.executemany(
                """INSERT INTO answers
                   (attempt_id, position, question_id, level, grammar_category,
                    grammar_topic, submitted_answer, is_correct, points)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    (
                        attempt_id, i, e.question_id, e.level.value, e.grammar_category,
                        e.grammar_topic, e.submitted_answer, int(e.is_correct), e.points,
                    )
                    for i, e in enumerate(history)
                ],
            )

            row = conn.execute(
                "SELECT level FROM profiles WHERE learner_id = ?", (learner_id,)
            ).fetchone()
            if row is None or should_upgrade(row[0], level):
                conn.execute(
                    "INSERT OR REPLACE INTO profiles (learner_id, level, updated_at) VALUES (?, ?, ?)",
                    (learner_id, level, now),
                )
        return attempt_id

    def _row_to_result(self, row) -> StoredResult:
        return StoredResult(
            attempt_id=row[0], learner_id=row[1], level=row[2], confidence=row[3],
            score=row[4], weighted_score=row[5], questions_answered=row[6],
            progression=json.loads(row[7]), result=json.loads(row[8]),
            completed_at=row[9],
        )

    def get_result(self, attempt_id: str) -> Optional[StoredResult]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT * FROM results WHERE attempt_id = ?", (attempt_id,)
            ).fetchone()
        if not row:
            return None
        return self._row_to_result(row)

    def list_results(self, learner_id: str) -> list[StoredResult]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT * FROM results WHERE learner_id = ? ORDER BY completed_at",
                (learner_id,),
            ).fetchall()
        return [self._row_to_result(r) for r in rows]

    def latest_result(self, learner_id: str) -> Optional[StoredResult]:
        results = self.list_results(learner_id)
        return results[-1] if results else None

    def get_answers(self, attempt_id: str) -> list[dict]:
        with self._conn() as conn:
            rows = conn.execute(
                """SELECT question_id, level, grammar_category, grammar_topic,
                          submitted_answer, is_correct, points
                   FROM answers WHERE attempt_id = ? ORDER BY position""",
                (attempt_id,),
            ).fetchall()
        return [
            {
                "questionId": r[0], "level": r[1], "grammarCategory": r[2],
                "grammarTopic": r[3], "submittedAnswer": r[4],
                "isCorrect": bool(r[5]), "points": r[6],
            }
            for r in rows
        ]

    def get_profile_level(self, learner_id: str) -> Optional[str]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT level FROM profiles WHERE learner_id = ?", (learner_id,)
            ).fetchone()
        return row[0] if row else None

    def reset_learner(self, learner_id: str) -> None:
        with self._conn() as conn:
            attempt_ids = [
                r[0] for r in conn.execute(
                    "SELECT attempt_id FROM results WHERE learner_id = ?", (learner_id,)
                ).fetchall()
            ]
            conn.executemany(
                "DELETE FROM answers WHERE attempt_id = ?", [(a,) for a in attempt_ids]
            )
            conn.execute("DELETE FROM results WHERE learner_id = ?", (learner_id,))
            conn.execute("DELETE FROM profiles WHERE learner_id = ?", (learner_id,))
