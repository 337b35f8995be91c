"""Prescription engine: sets, reps/time, rest and tempo for one exercise slot.

Volume is scaled by a per-user load factor and the day's undulation
coefficient (daily undulating periodization). Deload phases reduce set
counts and skip the load and undulation scaling altogether.

Reference:
    Rhea et al. (2002). A comparison of linear and daily undulating
    periodized programs with equated volume and intensity for strength.
"""

from __future__ import annotations

import math

from rehab_engine.catalog.categories import is_breathing
from rehab_engine.models.enums import (
    DEFAULT_TARGET_MINUTES,
    GLOBAL_MAX_REPS,
    INTERVAL_TARGET_SECONDS,
    LOAD_FACTOR_MAX,
    LOAD_FACTOR_MIN,
    MAX_SETS_UNILATERAL,
    ROM_CONSTRAINT_BELOW_DEG,
    UNILATERAL_TRANSITION_SEC,
    ConditioningStyle,
    ExperienceTier,
    FatigueState,
    Section,
)
from rehab_engine.models.exercise import ExerciseRecord
from rehab_engine.models.plan import PrescribedExercise, RomConstraint
from rehab_engine.models.user import ClinicalContext, UserProfile
from rehab_engine.phases.catalog import PhaseConfig, PhaseContext, PhasePrescription

# Load factor multipliers
EXPERIENCE_BASE_FACTOR = {ExperienceTier.NONE: 0.70, ExperienceTier.ADVANCED: 1.10}
SEVERE_FACTOR = 0.85
HIGH_FREQUENCY_SESSIONS = 5
HIGH_FREQUENCY_FACTOR = 0.90
LOW_FREQUENCY_SESSIONS = 2
LOW_FREQUENCY_FACTOR = 1.15
FATIGUED_FACTOR = 0.8

PHASE_REST_FACTOR_MIN = 0.5
PHASE_REST_FACTOR_MAX = 2.0

DELOAD_SET_RATIO = 0.6
MIN_MAIN_SETS = 2
WARMUP_SETS = 2
COOLDOWN_SETS = 1

INTERVAL_MIN_SETS = 3
INTERVAL_MAX_SETS = 20
STEADY_MINUTES = {ExperienceTier.REGULAR: 15, ExperienceTier.ADVANCED: 20}
STEADY_DEFAULT_MINUTES = 10
STEADY_SHORT_SESSION_MINUTES = 20
STEADY_REST_SEC = 60
AMRAP_SETS = 3
AMRAP_ESTIMATE_REPS = 10
AMRAP_REST_SEC = 90
BREATHING_SECONDS = {ExperienceTier.REGULAR: 120, ExperienceTier.ADVANCED: 180}
BREATHING_MIN_SECONDS = 90
SECONDS_PER_REP_ESTIMATE = 4
FIXED_DURATION_MIN_SEC = 15
TIMED_RANGE_FALLBACK_REPS = 10

_NO_PHASE_PRESCRIPTION = PhasePrescription()


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def load_factor(
    profile: UserProfile,
    ctx: ClinicalContext,
    fatigue_state: FatigueState = FatigueState.FRESH,
    volume_modifier: float = 1.0,
) -> float:
    """Per-user volume multiplier, clamped to [0.45, 1.35].

    Args:
        profile: User profile (experience tier and weekly frequency).
        ctx: Clinical context; severe presentations are scaled down.
        fatigue_state: Readiness of the day being prescribed.
        volume_modifier: RPE trend modifier times pain modifier.

    Returns:
        The clamped load factor.
    """
    factor = EXPERIENCE_BASE_FACTOR.get(profile.experience, 1.0)
    if ctx.is_severe:
        factor *= SEVERE_FACTOR
    if profile.sessions_per_week >= HIGH_FREQUENCY_SESSIONS:
        factor *= HIGH_FREQUENCY_FACTOR
    elif profile.sessions_per_week <= LOW_FREQUENCY_SESSIONS:
        factor *= LOW_FREQUENCY_FACTOR
    if fatigue_state is FatigueState.FATIGUED:
        factor *= FATIGUED_FACTOR
    factor *= volume_modifier
    return max(LOAD_FACTOR_MIN, min(LOAD_FACTOR_MAX, factor))


def is_timed_range(range_str: str) -> bool:
    return "s" in str(range_str or "").lower()


def parse_range(range_str: str | int | None) -> tuple[int, int]:
    """Parse "min-max" (or a single value) into an integer pair.

    A trailing "s" marking a timed range is ignored.
    """
    if isinstance(range_str, int):
        return range_str, range_str
    text = str(range_str or "").lower().replace("s", "").strip()
    if not text:
        return 1, 1
    parts = [p.strip() for p in text.split("-", 1)]
    low = int(parts[0])
    high = int(parts[1]) if len(parts) > 1 else low
    return low, high


def resolve_value_from_range(range_str: str | int | None, experience: ExperienceTier) -> int:
    """Advanced users get the top of the range, regular the midpoint, others the bottom."""
    low, high = parse_range(range_str)
    if low == high:
        return low
    if experience is ExperienceTier.ADVANCED:
        return high
    if experience is ExperienceTier.REGULAR:
        return round_half_up((low + high) / 2)
    return low


def phase_rest_factor(config: PhaseConfig | None, section: Section = Section.MAIN) -> float:
    """Phase rest multiplier; warmup and cooldown never get longer rests."""
    raw = config.prescription.rest_factor if config is not None else 1.0
    factor = max(PHASE_REST_FACTOR_MIN, min(PHASE_REST_FACTOR_MAX, raw))
    if section in (Section.WARMUP, Section.COOLDOWN):
        factor = min(factor, 1.0)
    return factor


def rom_constraint_for(exercise: ExerciseRecord, phase: PhaseContext | None) -> RomConstraint | None:
    if phase is None or phase.rom is None or not exercise.knee_flexion_applies:
        return None
    knee = phase.rom.knee_flexion
    if knee is None or knee.current_limit >= ROM_CONSTRAINT_BELOW_DEG:
        return None
    return RomConstraint("knee", knee.current_limit)


def _base_sets(section: Section, prescription: PhasePrescription, experience: ExperienceTier,
               is_deload: bool, undulation: float) -> int:
    if section is Section.WARMUP:
        sets = WARMUP_SETS
    elif section is Section.COOLDOWN:
        sets = COOLDOWN_SETS
    else:
        sets = resolve_value_from_range(prescription.sets, experience)
        if not is_deload:
            sets = max(MIN_MAIN_SETS, round_half_up(sets * undulation))
    if is_deload:
        sets = max(1, math.floor(sets * DELOAD_SET_RATIO))
    return sets


def prescribe(
    exercise: ExerciseRecord,
    section: Section,
    profile: UserProfile,
    ctx: ClinicalContext,
    phase: PhaseContext | None = None,
    fatigue_state: FatigueState = FatigueState.FRESH,
    volume_modifier: float = 1.0,
    target_minutes: int = DEFAULT_TARGET_MINUTES,
    undulation: float = 1.0,
) -> PrescribedExercise:
    """Prescribe one exercise for a session section.

    Conditioning styles (interval, steady state, AMRAP) use their own
    fixed protocols. Everything else resolves sets from the phase range and
    reps or seconds from the phase reps range, scaled by the load factor
    and the day's undulation outside deload.

    Args:
        exercise: Exercise picked by the selector.
        section: Section the exercise is placed in.
        profile: User profile.
        ctx: Clinical context.
        phase: Effective phase; None falls back to neutral defaults.
        fatigue_state: Readiness of the day.
        volume_modifier: RPE trend times pain modifier.
        target_minutes: Session target, used by steady-state work.
        undulation: Daily undulation coefficient.

    Returns:
        The prescription. Rest excludes the user's own rest-time factor,
        which the duration estimator applies.
    """
    experience = profile.experience
    config = phase.config if phase is not None else None
    prescription = config.prescription if config is not None else _NO_PHASE_PRESCRIPTION
    is_deload = phase is not None and phase.is_deload
    factor = load_factor(profile, ctx, fatigue_state, volume_modifier)
    rom = rom_constraint_for(exercise, phase)
    tempo = exercise.default_tempo
    timing = exercise.timing

    sets = _base_sets(section, prescription, experience, is_deload, undulation)

    style = exercise.conditioning_style
    if style is ConditioningStyle.INTERVAL and exercise.interval is not None:
        spec = exercise.interval
        interval_sets = round_half_up(INTERVAL_TARGET_SECONDS * factor * undulation / spec.cycle_sec)
        return PrescribedExercise(
            exercise=exercise,
            section=section,
            sets=max(INTERVAL_MIN_SETS, min(INTERVAL_MAX_SETS, interval_sets)),
            work_sec=int(spec.work_sec),
            rest_after_sec=timing.rest_sec,
            rest_between_sets_sec=int(spec.rest_sec),
            transition_sec=timing.transition_sec,
            tempo=tempo,
            rom_constraint=rom,
        )

    if style is ConditioningStyle.STEADY_STATE:
        minutes = STEADY_MINUTES.get(experience, STEADY_DEFAULT_MINUTES)
        if target_minutes <= STEADY_SHORT_SESSION_MINUTES:
            minutes = STEADY_DEFAULT_MINUTES
        minutes = round_half_up(minutes * undulation)
        return PrescribedExercise(
            exercise=exercise,
            section=section,
            sets=1,
            work_sec=minutes * 60,
            rest_after_sec=STEADY_REST_SEC,
            transition_sec=5,
            tempo="moderate",
            rom_constraint=rom,
        )

    if style is ConditioningStyle.AMRAP:
        return PrescribedExercise(
            exercise=exercise,
            section=section,
            sets=AMRAP_SETS,
            reps=AMRAP_ESTIMATE_REPS,
            is_max_reps=True,
            rest_after_sec=AMRAP_REST_SEC,
            transition_sec=timing.transition_sec,
            tempo="dynamic",
            rom_constraint=rom,
        )

    reps: int | None = None
    work_sec: int | None = None
    max_duration = exercise.max_recommended_duration
    if is_breathing(exercise.category_id):
        sets = 1
        work_sec = BREATHING_SECONDS.get(experience, BREATHING_MIN_SECONDS)
        if max_duration > 0:
            work_sec = min(work_sec, max_duration)
        work_sec = max(BREATHING_MIN_SECONDS, work_sec)
    elif max_duration > 0:
        if is_timed_range(prescription.reps):
            work_sec = resolve_value_from_range(prescription.reps, experience)
            if not is_deload:
                work_sec = round_half_up(work_sec * undulation)
        else:
            seconds = resolve_value_from_range(prescription.reps, experience) * SECONDS_PER_REP_ESTIMATE
            if not is_deload:
                seconds = round_half_up(seconds * undulation)
            seconds = max(FIXED_DURATION_MIN_SEC, min(max_duration, seconds))
            work_sec = math.ceil(seconds / 5) * 5
    elif is_timed_range(prescription.reps):
        reps = TIMED_RANGE_FALLBACK_REPS
    else:
        reps = resolve_value_from_range(prescription.reps, experience)
        reps = min(reps, exercise.max_recommended_reps or GLOBAL_MAX_REPS)
        if not is_deload:
            reps = max(1, round_half_up(reps * factor * undulation))

    rest = round_half_up(timing.rest_sec * phase_rest_factor(config, section))
    if exercise.is_unilateral:
        sets = min(sets, MAX_SETS_UNILATERAL)
        rest = max(rest, UNILATERAL_TRANSITION_SEC)

    return PrescribedExercise(
        exercise=exercise,
        section=section,
        sets=sets,
        reps=reps,
        work_sec=work_sec,
        rest_after_sec=rest,
        transition_sec=timing.transition_sec,
        tempo=tempo,
        rom_constraint=rom,
    )
