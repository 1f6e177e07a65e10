"""Tests for the adaptive difficulty policies."""

import random

import pytest

from cefrplacement.engine.difficulty import AdaptiveTrack, DifficultyAdapter, Policy
from cefrplacement.engine.levels import LEVEL_ORDER, ProficiencyLevel, is_extreme

A1, A2, B1, B2, C1, C2 = LEVEL_ORDER


@pytest.fixture
def adapter():
    return DifficultyAdapter()


def run(adapter, track, outcomes):
    return [adapter.process_answer(track, o) for o in outcomes]


class TestStreakPolicy:
    def test_two_correct_moves_up(self, adapter):
        track = AdaptiveTrack()
        changes = run(adapter, track, [True, True])
        assert track.current_level is B2
        assert changes[-1].policy is Policy.STREAK
        assert track.progression == [B1, B2]

    def test_two_wrong_moves_down(self, adapter):
        track = AdaptiveTrack()
        run(adapter, track, [False, False])
        assert track.current_level is A2
        assert track.progression == [B1, A2]

    def test_single_answer_stays(self, adapter):
        track = AdaptiveTrack()
        change = adapter.process_answer(track, True)
        assert not change.changed
        assert track.current_level is B1
        assert track.progression == [B1]

    def test_change_resets_counters(self, adapter):
        track = AdaptiveTrack()
        run(adapter, track, [True, True])
        assert track.consecutive_correct == 0
        assert track.consecutive_wrong == 0
        assert track.questions_at_level == 0
        assert track.level_outcomes == []

    def test_saturates_at_top(self, adapter):
        track = AdaptiveTrack.starting_at(C2)
        change = run(adapter, track, [True, True])[-1]
        assert not change.changed
        assert track.current_level is C2
        assert track.progression == [C2]
        assert track.consecutive_correct == 2

    def test_saturates_at_bottom(self, adapter):
        track = AdaptiveTrack.starting_at(A1)
        run(adapter, track, [False, False, False])
        assert track.current_level is A1
        assert track.progression == [A1]


class TestForcedRotation:
    def test_majority_correct_moves_up(self, adapter):
        track = AdaptiveTrack()
        changes = run(adapter, track, [True, False, True])
        assert track.current_level is B2
        assert changes[-1].policy is Policy.FORCED_ROTATION

    def test_minority_correct_moves_down(self, adapter):
        track = AdaptiveTrack()
        changes = run(adapter, track, [False, True, False])
        assert track.current_level is A2
        assert changes[-1].policy is Policy.FORCED_ROTATION

    def test_rotation_checked_before_streak(self, adapter):
        # Streak says up, the window at this level says down.
        track = AdaptiveTrack(
            current_level=B1,
            consecutive_correct=2,
            questions_at_level=3,
            level_outcomes=[False, False, True],
        )
        change = adapter.decide(track)
        assert change.policy is Policy.FORCED_ROTATION
        assert change.new_level is A2

    def test_rotation_and_streak_agreeing(self, adapter):
        track = AdaptiveTrack()
        changes = run(adapter, track, [True, False, False])
        assert changes[-1].policy is Policy.FORCED_ROTATION
        assert track.current_level is A2

    @pytest.mark.parametrize("level", [A2, B1, B2, C1])
    def test_third_question_at_level_always_moves(self, adapter, level):
        track = AdaptiveTrack.starting_at(level)
        changes = run(adapter, track, [True, False, True])
        assert not changes[0].changed and not changes[1].changed
        assert changes[2].changed

    def test_extremes_never_forced(self, adapter):
        for level in (A1, C2):
            track = AdaptiveTrack.starting_at(level)
            run(adapter, track, [True, False, True, False, True])
            assert track.current_level is level
            assert track.questions_at_level == 5

    def test_revisiting_levels_is_allowed(self, adapter):
        track = AdaptiveTrack()
        run(adapter, track, [True, True, False, False])
        assert track.progression == [B1, B2, B1]


class TestInvariants:
    def test_random_walk(self, adapter):
        rng = random.Random(1234)
        track = AdaptiveTrack()
        for _ in range(500):
            adapter.process_answer(track, rng.random() < 0.6)
            assert not (track.consecutive_correct > 0 and track.consecutive_wrong > 0)
            assert track.progression[-1] is track.current_level
            if not is_extreme(track.current_level):
                assert track.questions_at_level < DifficultyAdapter.ROTATION_BUDGET
        assert set(track.progression) <= set(ProficiencyLevel)
