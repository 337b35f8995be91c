"""Tests for the weekly schedule builder."""

from __future__ import annotations

import random
from datetime import date, timedelta

import pytest

from rehab_engine.clinical.context import build_user_context
from rehab_engine.models.enums import FatigueState, PhaseId, Section
from rehab_engine.models.plan import RestDay, Session
from rehab_engine.models.user import UserProfile
from rehab_engine.phases.catalog import PhaseContext
from rehab_engine.selection.scoring import ScoringContext
from rehab_engine.selection.selector import filter_exercise_candidates, select_anchors
from rehab_engine.selection.weights import build_category_weights
from rehab_engine.schedule.weekly import (
    build_weekly_plan,
    derive_session_counts,
    is_training_day,
    session_title,
)


def _profile(**overrides) -> UserProfile:
    data = {
        "pain_locations": ["lumbar"],
        "pain_intensity": 4,
        "daily_impact": 3,
        "exercise_experience": "regular",
        "schedule_pattern": [1, 3, 5],
        "target_session_duration_min": 30,
    }
    data.update(overrides)
    return UserProfile.from_dict(data)


def _build(catalog, profile: UserProfile, start: date, seed: int = 42, **kwargs):
    ctx = build_user_context(profile)
    candidates = filter_exercise_candidates(catalog, ctx)
    scoring = ScoringContext(
        profile=profile,
        ctx=ctx,
        category_weights=build_category_weights(candidates, profile, ctx),
        phase=PhaseContext.for_phase(PhaseId.CONTROL),
    )
    anchors = select_anchors(candidates, scoring)
    return build_weekly_plan(candidates, scoring, anchors, start, random.Random(seed), **kwargs)


class TestSessionCounts:
    @pytest.mark.parametrize(
        "minutes, expected",
        [(15, (2, 2, 1)), (20, (2, 2, 1)), (30, (2, 4, 2)), (45, (3, 5, 2)), (60, (3, 6, 2))],
    )
    def test_by_target(self, minutes: int, expected: tuple[int, int, int]) -> None:
        profile = _profile()
        counts = derive_session_counts(profile, build_user_context(profile), minutes)
        assert (counts[Section.WARMUP], counts[Section.MAIN], counts[Section.COOLDOWN]) == expected

    def test_preferences_shift_split(self) -> None:
        profile = _profile(session_component_weights=["mobility"])
        counts = derive_session_counts(profile, build_user_context(profile), 30)
        assert counts == {Section.WARMUP: 3, Section.MAIN: 3, Section.COOLDOWN: 3}

        profile = _profile(session_component_weights=["conditioning", "strength"])
        counts = derive_session_counts(profile, build_user_context(profile), 30)
        assert counts == {Section.WARMUP: 2, Section.MAIN: 6, Section.COOLDOWN: 1}

    def test_main_never_below_two(self) -> None:
        profile = UserProfile.from_dict({
            "pain_locations": ["lumbar"],
            "pain_intensity": 8,
            "daily_impact": 7,
            "session_component_weights": ["mobility"],
        })
        counts = derive_session_counts(profile, build_user_context(profile), 15)
        assert counts[Section.MAIN] == 2
        assert counts[Section.WARMUP] == 4


class TestTrainingDay:
    def test_pattern_uses_sunday_zero(self, plan_start) -> None:
        profile = _profile(schedule_pattern=[0, 1])
        sunday = plan_start - timedelta(days=1)
        assert is_training_day(sunday, profile, 0)
        assert is_training_day(plan_start, profile, 0)
        assert not is_training_day(plan_start + timedelta(days=1), profile, 0)

    def test_forced_rest_and_streak(self, plan_start) -> None:
        profile = _profile(forced_rest_dates=[plan_start.isoformat()])
        assert not is_training_day(plan_start, profile, 0)
        assert not is_training_day(plan_start + timedelta(days=2), _profile(), 14)


class TestSessionTitle:
    def test_undulation_labels(self, plan_start, lumbar_ctx, regular_lumbar_profile) -> None:
        scoring = ScoringContext(regular_lumbar_profile, lumbar_ctx, {})
        assert session_title(plan_start, 1.0, scoring) == "Training Monday"
        assert session_title(plan_start, 1.15, scoring) == "Training Monday (hard)"
        assert session_title(plan_start, 0.85, scoring) == "Training Monday (light)"

    def test_override_label(self, plan_start, lumbar_ctx, regular_lumbar_profile) -> None:
        phase = PhaseContext.for_phase(PhaseId.REHAB, is_override=True)
        scoring = ScoringContext(regular_lumbar_profile, lumbar_ctx, {}, phase=phase)
        assert session_title(plan_start, 1.2, scoring) == "Training Monday (hard) (REHAB)"


class TestBuildWeeklyPlan:
    def test_seven_days_on_schedule(self, catalog, plan_start) -> None:
        plan = _build(catalog, _profile(), plan_start)
        assert len(plan.days) == 7
        assert [d.day_number for d in plan.days] == list(range(1, 8))
        assert [d.date for d in plan.days] == [plan_start + timedelta(days=i) for i in range(7)]
        assert [d.day_number for d in plan.sessions] == [1, 3, 5]
        assert all(d.reason == "scheduled" for d in plan.days if isinstance(d, RestDay))
        assert plan.phase_id is PhaseId.CONTROL
        assert plan.start_date == plan_start

    def test_titles_follow_wave(self, catalog, plan_start) -> None:
        titles = [s.title for s in _build(catalog, _profile(), plan_start).sessions]
        assert titles == ["Training Monday", "Training Wednesday (hard)", "Training Friday (light)"]

    def test_sessions_fit_budget(self, catalog, plan_start) -> None:
        for session in _build(catalog, _profile(), plan_start).sessions:
            ids = [rx.exercise.id for rx in session.exercises]
            assert len(ids) == len(set(ids))
            assert len(session.main) >= 2
            assert 0 < session.estimated_duration_sec <= 30 * 60 + 30
            assert all(rx.exercise.difficulty_level <= 2 for rx in session.warmup + session.cooldown)
            assert all(rx.exercise.category_id != "breathing" for rx in session.main)

    def test_same_seed_same_plan(self, catalog, plan_start) -> None:
        assert _build(catalog, _profile(), plan_start, seed=9) == _build(catalog, _profile(), plan_start, seed=9)

    def test_forced_rest_day(self, catalog, plan_start) -> None:
        wednesday = plan_start + timedelta(days=2)
        plan = _build(catalog, _profile(forced_rest_dates=[wednesday.isoformat()]), plan_start)
        assert isinstance(plan.days[2], RestDay)
        assert plan.days[2].reason == "forced_rest"
        assert plan.training_days == 2

    def test_streak_limit_forces_rest(self, catalog, plan_start) -> None:
        plan = _build(catalog, _profile(schedule_pattern=list(range(7))), plan_start, prior_streak=13)
        assert isinstance(plan.days[0], Session)
        assert isinstance(plan.days[1], RestDay)
        assert plan.days[1].reason == "streak_limit"
        assert all(isinstance(d, Session) for d in plan.days[2:])

    def test_fatigue_state_follows_previous_day(self, catalog, plan_start) -> None:
        daily = _build(catalog, _profile(schedule_pattern=list(range(7))), plan_start).sessions
        assert daily[0].fatigue_state is FatigueState.FRESH
        assert all(s.fatigue_state is FatigueState.FATIGUED for s in daily[1:])

        spaced = _build(catalog, _profile(), plan_start).sessions
        assert all(s.fatigue_state is FatigueState.FRESH for s in spaced)
