"""Tests for the SQLite result store."""

import random

import pytest

from cefrplacement.engine.session import AssessmentSession, SessionPhase
from cefrplacement.state.results import ResultStore


@pytest.fixture
def store(tmp_path):
    return ResultStore(db_path=tmp_path / "results.db")


def finished_session(pool, outcomes):
    session = AssessmentSession(rng=random.Random(5))
    session.start(pool)
    for correct in outcomes:
        question = session.current_question
        session.submit_answer(question.correct_answer if correct else "wrong")
        session.advance()
        if session.phase == SessionPhase.COMPLETED:
            break
    return session


def test_save_and_get(store, rotated_pool):
    session = finished_session(rotated_pool, [True, False, True] * 5)
    attempt_id = store.save_result("learner-1", session.result, session.state.history)

    stored = store.get_result(attempt_id)
    assert stored.learner_id == "learner-1"
    assert stored.level == session.result.recommended_level.value
    assert stored.questions_answered == 15
    assert stored.progression[0] == "B1"
    assert stored.result["questionsAnswered"] == 15


def test_answers_kept_in_order(store, rotated_pool):
    session = finished_session(rotated_pool, [True, False, True] * 5)
    attempt_id = store.save_result("learner-1", session.result, session.state.history)

    answers = store.get_answers(attempt_id)
    assert [a["questionId"] for a in answers] == [e.question_id for e in session.state.history]
    assert answers[1]["isCorrect"] is False


def test_unknown_attempt(store):
    assert store.get_result("missing") is None


def test_profile_level_only_goes_up(store, rotated_pool):
    high = finished_session(rotated_pool, [True] * 15)
    low = finished_session(rotated_pool, [False] * 15)

    store.save_result("learner-2", high.result, high.state.history)
    assert store.get_profile_level("learner-2") == "C2"

    store.save_result("learner-2", low.result, low.state.history)
    assert store.get_profile_level("learner-2") == "C2"
    assert [r.level for r in store.list_results("learner-2")] == ["C2", "A1"]
    assert store.latest_result("learner-2").level == "A1"


def test_first_result_sets_profile_even_at_a1(store, rotated_pool):
    low = finished_session(rotated_pool, [False] * 15)
    store.save_result("learner-3", low.result, low.state.history)
    assert store.get_profile_level("learner-3") == "A1"


def test_reset_learner(store, rotated_pool):
    session = finished_session(rotated_pool, [True] * 15)
    attempt_id = store.save_result("learner-4", session.result, session.state.history)
    store.reset_learner("learner-4")
    assert store.list_results("learner-4") == []
    assert store.get_answers(attempt_id) == []
    assert store.get_profile_level("learner-4") is None
