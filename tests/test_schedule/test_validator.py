"""Tests for the phase-limit validator."""

from __future__ import annotations

import logging

import pytest

from rehab_engine.models.enums import PhaseId, Section
from rehab_engine.models.plan import PrescribedExercise, RestDay, Session, WeeklyPlan
from rehab_engine.phases.catalog import PhaseContext
from rehab_engine.schedule.validator import TOO_HARD_NOTE, correct_prescription, validate_and_correct_plan


def _rx(exercise, **kwargs) -> PrescribedExercise:
    kwargs.setdefault("sets", 3)
    kwargs.setdefault("reps", 10)
    return PrescribedExercise(exercise=exercise, section=Section.MAIN, **kwargs)


class TestCorrectPrescription:
    def test_too_hard_scaled_to_easy_pace(self, make_exercise) -> None:
        rx = correct_prescription(
            _rx(make_exercise(difficulty_level=4)), PhaseContext.for_phase(PhaseId.CONTROL)
        )
        assert rx.sets == 1
        assert rx.easy_pace
        assert rx.note == TOO_HARD_NOTE
        assert rx.reps_or_time == "easy pace"

    def test_within_limit_untouched(self, make_exercise) -> None:
        original = _rx(make_exercise(difficulty_level=3))
        assert correct_prescription(original, PhaseContext.for_phase(PhaseId.CONTROL)) is original

    def test_no_max_difficulty_in_strength(self, make_exercise) -> None:
        original = _rx(make_exercise(difficulty_level=5), sets=5)
        assert correct_prescription(original, PhaseContext.for_phase(PhaseId.STRENGTH)) == original

    def test_deload_caps_sets(self, make_exercise) -> None:
        rx = correct_prescription(_rx(make_exercise(), sets=4), PhaseContext.for_phase(PhaseId.DELOAD))
        assert rx.sets == 2

    @pytest.mark.parametrize("tempo, expected", [("Normal", "slow"), ("fast", "slow"), ("3-1-3", "3-1-3")])
    def test_rehab_tempo(self, make_exercise, tempo: str, expected: str) -> None:
        rx = correct_prescription(_rx(make_exercise(), tempo=tempo), PhaseContext.for_phase(PhaseId.REHAB))
        assert rx.tempo == expected

    def test_rehab_caps_reps(self, make_exercise) -> None:
        phase = PhaseContext.for_phase(PhaseId.REHAB)
        assert correct_prescription(_rx(make_exercise(), reps=15), phase).reps == 10
        assert correct_prescription(_rx(make_exercise(), reps=12), phase).reps == 12
        timed = _rx(make_exercise(), reps=None, work_sec=40)
        assert correct_prescription(timed, phase).work_sec == 40


class TestValidatePlan:
    def test_corrects_sessions_only(self, make_exercise, plan_start, caplog: pytest.LogCaptureFixture) -> None:
        hard = _rx(make_exercise("hard", difficulty_level=4))
        easy = _rx(make_exercise("easy"))
        session = Session(day_number=1, date=plan_start, title="Training Monday", main=(hard, easy))
        rest = RestDay(2, plan_start)
        plan = WeeklyPlan(days=(session, rest), start_date=plan_start)

        with caplog.at_level(logging.INFO, logger="rehab_engine.schedule.validator"):
            fixed = validate_and_correct_plan(plan, PhaseContext.for_phase(PhaseId.CONTROL))

        assert fixed.days[1] is rest
        assert fixed.days[0].main[0].note == TOO_HARD_NOTE
        assert fixed.days[0].main[1] == easy
        assert plan.days[0].main[0].note is None
        assert "corrected 1 prescriptions" in caplog.text
