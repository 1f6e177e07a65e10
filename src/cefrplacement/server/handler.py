"""Server handler: dispatches JSON-lines requests to placement sessions."""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from cefrplacement.banks.registry import BankRegistry
from cefrplacement.config.settings import Settings
from cefrplacement.engine.question_pool import Question
from cefrplacement.engine.session import AssessmentResult, AssessmentSession, SessionPhase
from cefrplacement.state.results import ResultStore

from .protocol import Notification

logger = logging.getLogger(__name__)


def _question_to_dict(question: Optional[Question]) -> dict:
    """Serialize a Question for the front end. The answer key stays server-side."""
    if question is None:
        return {}
    return {
        "id": question.id,
        "prompt": question.prompt,
        "options": list(question.options) if question.options else None,
        "level": question.level.value,
        "grammarCategory": question.grammar_category,
        "grammarTopic": question.grammar_topic,
    }


@dataclass
class _Attempt:
    session: AssessmentSession
    learner_id: str
    bank_id: str
    attempt_id: Optional[str] = None


class ServerHandler:
    """Routes incoming requests to assessment sessions and returns result dicts."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        write_notification: Optional[Callable[[Notification], None]] = None,
    ):
        self.settings = settings or Settings.load()
        self._write_notification = write_notification or (lambda n: None)

        self.registry = BankRegistry(extra_dirs=self.settings.bank_dirs)
        self.results = ResultStore(db_path=self.settings.data_dir / "results.db")
        self._attempts: dict[str, _Attempt] = {}

    async def dispatch(self, msg: dict) -> dict:
        """Route a request message to the appropriate handler method."""
        method = msg.get("method", "")
        params = msg.get("params") or {}

        handler_map = {
            "listBanks": self._list_banks,
            "startAssessment": self._start_assessment,
            "getQuestion": self._get_question,
            "submitAnswer": self._submit_answer,
            "advance": self._advance,
            "complete": self._complete,
            "reset": self._reset,
            "getResult": self._get_result,
            "listResults": self._list_results,
        }

        handler = handler_map.get(method)
        if handler is None:
            raise ValueError(f"Unknown method: {method}")

        return await handler(params)

    def _attempt(self, params: dict) -> _Attempt:
        session_id = params.get("sessionId")
        attempt = self._attempts.get(session_id)
        if attempt is None:
            raise ValueError(f"Unknown session: {session_id}")
        return attempt

    def _progress(self, session: AssessmentSession) -> dict:
        state = session.state
        if state is None:
            return {"phase": session.phase.value}
        return {
            "phase": session.phase.value,
            "currentLevel": state.current_level.value,
            "questionsAsked": state.questions_asked,
            "maxQuestions": state.max_questions,
            "weightedScore": state.weighted_score,
            "levelProgression": [level.value for level in state.level_progression],
        }

    def _finish(self, session_id: str, attempt: _Attempt, result: AssessmentResult) -> dict:
        """Persist a finished attempt and forget its session."""
        attempt.attempt_id = self.results.save_result(
            attempt.learner_id, result, attempt.session.state.history,
        )
        del self._attempts[session_id]
        logger.info("Session %s finished as attempt %s", session_id, attempt.attempt_id)
        return {
            "finished": True,
            "attemptId": attempt.attempt_id,
            "result": result.to_dict(),
        }

    async def _list_banks(self, params: dict) -> dict:
        banks = self.registry.list_banks()
        return {
            "banks": [
                {
                    "id": b.id,
                    "title": b.title,
                    "description": b.description,
                    "version": b.version,
                }
                for b in banks
            ]
        }

    async def _start_assessment(self, params: dict) -> dict:
        bank_id = params.get("bankId", "core_grammar")
        learner_id = params.get("learnerId", "anonymous")
        seed = params.get("seed", self.settings.assessment.get_seed())

        bank = self.registry.load(bank_id)
        session = AssessmentSession(
            config=self.settings.assessment, rng=random.Random(seed),
        )
        question = session.start(bank.questions)

        session_id = uuid.uuid4().hex
        self._attempts[session_id] = _Attempt(
            session=session, learner_id=learner_id, bank_id=bank_id,
        )
        logger.info("Session %s started for %s on %s", session_id, learner_id, bank_id)
        return {
            "sessionId": session_id,
            "question": _question_to_dict(question),
            **self._progress(session),
        }

    async def _get_question(self, params: dict) -> dict:
        session = self._attempt(params).session
        return {
            "question": _question_to_dict(session.current_question),
            **self._progress(session),
        }

    async def _submit_answer(self, params: dict) -> dict:
        attempt = self._attempt(params)
        session = attempt.session
        previous_level = session.state.current_level if session.state else None

        event = session.submit_answer(params.get("answer"))

        level_changed = event.level_after != previous_level
        if level_changed:
            self._write_notification(Notification("levelChanged", {
                "sessionId": params["sessionId"],
                "from": previous_level.value if previous_level else None,
                "to": event.level_after.value,
            }))
        return {
            "isCorrect": event.is_correct,
            "points": event.points,
            "levelChanged": level_changed,
            **self._progress(session),
        }

    async def _advance(self, params: dict) -> dict:
        attempt = self._attempt(params)
        session = attempt.session

        question = session.advance()
        if session.phase == SessionPhase.COMPLETED:
            return self._finish(params["sessionId"], attempt, session.result)
        return {
            "finished": False,
            "question": _question_to_dict(question),
            **self._progress(session),
        }

    async def _complete(self, params: dict) -> dict:
        attempt = self._attempt(params)
        result = attempt.session.complete()
        return self._finish(params["sessionId"], attempt, result)

    async def _reset(self, params: dict) -> dict:
        attempt = self._attempt(params)
        attempt.session.reset()
        del self._attempts[params["sessionId"]]
        return {"ok": True}

    async def _get_result(self, params: dict) -> dict:
        attempt_id = params["attemptId"]
        stored = self.results.get_result(attempt_id)
        if stored is None:
            raise ValueError(f"Unknown attempt: {attempt_id}")
        return {
            "attemptId": stored.attempt_id,
            "learnerId": stored.learner_id,
            "completedAt": stored.completed_at,
            "result": stored.result,
            "answers": self.results.get_answers(attempt_id),
        }

    async def _list_results(self, params: dict) -> dict:
        learner_id = params.get("learnerId", "anonymous")
        return {
            "profileLevel": self.results.get_profile_level(learner_id),
            "results": [
                {
                    "attemptId": r.attempt_id,
                    "level": r.level,
                    "confidence": r.confidence,
                    "score": r.score,
                    "questionsAnswered": r.questions_answered,
                    "completedAt": r.completed_at,
                }
                for r in self.results.list_results(learner_id)
            ],
        }
