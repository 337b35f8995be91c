"""Weekly schedule builder.

Lays out 7 calendar days from a start date. Scheduled days become training
sessions filled section by section from the candidate pool, fitted to the
time budget and wave-ordered; everything else is a rest day.
"""

from __future__ import annotations

import logging
import random
from dataclasses import replace
from datetime import date, timedelta
from typing import Sequence

from rehab_engine.catalog.categories import is_breathing
from rehab_engine.models.enums import (
    MAX_TRAINING_STREAK,
    MIN_MAIN_EXERCISES,
    UNDULATION_WAVE,
    FatigueState,
    PhaseId,
    Section,
)
from rehab_engine.models.exercise import ExerciseRecord
from rehab_engine.models.plan import DayEntry, PrescribedExercise, RestDay, Session, WeeklyPlan
from rehab_engine.models.user import ClinicalContext, UserProfile
from rehab_engine.prescription.duration import PaceSettings
from rehab_engine.prescription.prescriber import prescribe
from rehab_engine.schedule.budget import (
    SessionDraft,
    apply_intensity_wave,
    enforce_hard_limit,
    expand_session,
)
from rehab_engine.selection.scoring import ScoringContext
from rehab_engine.selection.selector import Anchors, pick_exercise_for_section
from rehab_engine.selection.state import SelectionState

logger = logging.getLogger(__name__)

ACCESSORY_MAX_DIFFICULTY = 2
PLAN_DAYS = 7
HARD_DAY_UNDULATION = 1.1
LIGHT_DAY_UNDULATION = 0.9


def derive_session_counts(
    profile: UserProfile, ctx: ClinicalContext, target_minutes: int
) -> dict[Section, int]:
    """Exercises per section for a session of ``target_minutes``.

    Args:
        profile: Component-weight preferences shift the split.
        ctx: Severe presentations get a longer warmup and a shorter main block.
        target_minutes: Session target.

    Returns:
        Mapping section -> count; main is never below 2.
    """
    if target_minutes <= 20:
        warmup, main, cooldown = 2, 2, 1
    elif target_minutes <= 35:
        warmup, main, cooldown = 2, 4, 2
    elif target_minutes <= 50:
        warmup, main, cooldown = 3, 5, 2
    else:
        warmup, main, cooldown = 3, 6, 2

    prefs = profile.component_weights
    if "mobility" in prefs:
        warmup += 1
        cooldown += 1
        main -= 1
    if "strength" in prefs:
        main += 1
    if "conditioning" in prefs:
        main += 1
        cooldown = max(1, cooldown - 1)
    if ctx.is_severe:
        warmup += 1
        main -= 1

    return {
        Section.WARMUP: warmup,
        Section.MAIN: max(MIN_MAIN_EXERCISES, main),
        Section.COOLDOWN: cooldown,
    }


def is_training_day(day: date, profile: UserProfile, streak: int) -> bool:
    """Scheduled weekday (0 = Sunday), not forced rest, streak below the cap."""
    return (
        day.isoweekday() % 7 in profile.schedule_pattern
        and day not in profile.forced_rest_dates
        and streak < MAX_TRAINING_STREAK
    )


def session_title(day: date, undulation: float, scoring: ScoringContext) -> str:
    title = f"Training {day.strftime('%A')}"
    if undulation > HARD_DAY_UNDULATION:
        title += " (hard)"
    elif undulation < LIGHT_DAY_UNDULATION:
        title += " (light)"
    if scoring.phase is not None and scoring.phase.is_override:
        title += f" ({scoring.phase.phase_id.value.upper()})"
    return title


def _accessory_filter(exercise: ExerciseRecord) -> bool:
    return exercise.difficulty_level <= ACCESSORY_MAX_DIFFICULTY


def _main_expansion_filter(exercise: ExerciseRecord) -> bool:
    return not is_breathing(exercise.category_id)


def build_session(
    day_number: int,
    day: date,
    candidates: Sequence[ExerciseRecord],
    scoring: ScoringContext,
    state: SelectionState,
    rng: random.Random,
    pace: PaceSettings,
    fatigue_state: FatigueState,
    undulation: float,
    volume_modifier: float = 1.0,
) -> Session:
    """Fill, fit and order one training day."""
    profile, ctx = scoring.profile, scoring.ctx
    target = profile.target_minutes
    counts = derive_session_counts(profile, ctx, target)
    state.start_session()

    def prescribe_pick(section: Section, extra_filter) -> PrescribedExercise | None:
        pick = pick_exercise_for_section(section, candidates, scoring, state, rng, extra_filter)
        if pick is None:
            return None
        rx = prescribe(
            pick.exercise,
            section,
            profile,
            ctx,
            phase=scoring.phase,
            fatigue_state=fatigue_state,
            volume_modifier=volume_modifier,
            target_minutes=target,
            undulation=undulation,
        )
        return replace(rx, alternatives=pick.alternatives)

    draft = SessionDraft()
    for section in Section:
        extra = None if section is Section.MAIN else _accessory_filter
        for _ in range(counts[section]):
            rx = prescribe_pick(section, extra)
            if rx is not None:
                draft.section(section).append(rx)

    expand_session(draft, target, pace, lambda: prescribe_pick(Section.MAIN, _main_expansion_filter))
    enforce_hard_limit(draft, target, pace)
    apply_intensity_wave(draft)
    estimate = draft.estimate(pace)

    logger.debug(
        "Day %d (%s): %d/%d/%d exercises, undulation=%.2f, %s, ~%d s",
        day_number, day.isoformat(), len(draft.warmup), len(draft.main), len(draft.cooldown),
        undulation, fatigue_state.value, estimate,
    )
    return Session(
        day_number=day_number,
        date=day,
        title=session_title(day, undulation, scoring),
        warmup=tuple(draft.warmup),
        main=tuple(draft.main),
        cooldown=tuple(draft.cooldown),
        target_minutes=target,
        undulation=undulation,
        fatigue_state=fatigue_state,
        estimated_duration_sec=estimate,
    )


def build_weekly_plan(
    candidates: Sequence[ExerciseRecord],
    scoring: ScoringContext,
    anchors: Anchors,
    start_date: date,
    rng: random.Random,
    pace: PaceSettings | None = None,
    volume_modifier: float = 1.0,
    affinity: dict[str, float] | None = None,
    last_seen_days: dict[str, int] | None = None,
    prior_streak: int = 0,
) -> WeeklyPlan:
    """Build the 7-day plan starting at ``start_date``.

    The first day's fatigue state follows the fatigue profile; after a
    training day the next day is prescribed as fatigued, after a rest day
    as fresh. Weekly usage counters persist across days so anchors recur
    and everything else rotates.

    Args:
        candidates: Filtered candidate pool.
        scoring: Shared scoring inputs (profile, context, weights, phase).
        anchors: Movement families to repeat through the week.
        start_date: First calendar day of the plan.
        rng: Random source for the weighted draws.
        pace: Duration estimator settings; defaults from the profile.
        volume_modifier: RPE trend times pain modifier.
        affinity: Exercise id -> like/dislike score.
        last_seen_days: Exercise id -> days since last performed.
        prior_streak: Consecutive training days before ``start_date``.

    Returns:
        WeeklyPlan with exactly 7 day entries.
    """
    profile = scoring.profile
    pace = pace or PaceSettings.for_profile(profile)
    state = SelectionState(
        anchor_families=anchors.families,
        anchor_target_exposure=anchors.target_exposure,
        affinity=dict(affinity or {}),
        last_seen_days=dict(last_seen_days or {}),
    )

    fatigued = scoring.fatigue is not None and scoring.fatigue.is_fatigued
    streak = prior_streak
    days: list[DayEntry] = []
    for offset in range(PLAN_DAYS):
        day = start_date + timedelta(days=offset)
        day_number = offset + 1
        if not is_training_day(day, profile, streak):
            reason = "forced_rest" if day in profile.forced_rest_dates else "scheduled"
            if streak >= MAX_TRAINING_STREAK:
                reason = "streak_limit"
            days.append(RestDay(day_number, day, reason))
            streak = 0
            fatigued = False
            continue

        fatigue_state = FatigueState.FATIGUED if fatigued else FatigueState.FRESH
        days.append(
            build_session(
                day_number,
                day,
                candidates,
                scoring,
                state,
                rng,
                pace,
                fatigue_state,
                UNDULATION_WAVE[offset % len(UNDULATION_WAVE)],
                volume_modifier,
            )
        )
        streak += 1
        fatigued = True

    phase = scoring.phase
    plan = WeeklyPlan(
        days=tuple(days),
        phase_id=phase.phase_id if phase is not None else PhaseId.CONTROL,
        is_override=phase is not None and phase.is_override,
        anchor_families=tuple(sorted(anchors.families)),
        start_date=start_date,
    )
    logger.info(
        "Built weekly plan from %s: %d sessions, phase=%s, anchors=%s",
        start_date.isoformat(), plan.training_days, plan.phase_id.value, list(plan.anchor_families),
    )
    return plan
