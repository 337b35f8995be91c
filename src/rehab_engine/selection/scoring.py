"""Exercise scoring.

score = category weight × section fit × pain-relief fit × pain-safety penalty
× goal multiplier × variety penalty × affinity × freshness × phase fit
× profile modifiers × fatigue modifiers.

Every factor is a small pure function so each can be tested on its own.
"""

from __future__ import annotations

from dataclasses import dataclass

from rehab_engine.catalog.categories import (
    is_breathing,
    is_conditioning,
    is_mobility,
    is_relaxation,
)
from rehab_engine.models.enums import (
    KNEE_FLEXION_CKC_MODERATE,
    LoadLevel,
    PainStatus,
    Section,
)
from rehab_engine.models.exercise import ExerciseRecord
from rehab_engine.models.readiness import FatigueProfile
from rehab_engine.models.user import ClinicalContext, UserProfile
from rehab_engine.phases.catalog import PhaseContext
from rehab_engine.selection.state import SelectionState

KNEE_ISSUE_DIAGNOSES = frozenset({"chondromalacia", "knee_oa"})
NECK_SHOULDER_LOCATIONS = frozenset({"cervical", "neck", "shoulder"})

SAME_FAMILY_SESSION_PENALTY = 0.1
ANCHOR_OVEREXPOSURE_SLOPE = 1.2
NON_ANCHOR_WEEKLY_SLOPE = 1.5
PHASE_KEYWORD_BONUS = 1.3


@dataclass(frozen=True)
class ScoringContext:
    """Per-plan inputs shared by every score call."""

    profile: UserProfile
    ctx: ClinicalContext
    category_weights: dict[str, float]
    phase: PhaseContext | None = None
    fatigue: FatigueProfile | None = None
    pain_status: PainStatus | None = None

    @property
    def is_fatigue_mode(self) -> bool:
        return self.fatigue is not None and (
            self.fatigue.is_fatigued or self.fatigue.is_monotony_spike
        )


def section_fit(section: Section, category: str) -> float:
    if section is Section.WARMUP:
        if is_breathing(category):
            return 1.35
        if is_mobility(category):
            return 1.30
        if is_conditioning(category):
            return 0.50
        return 0.95
    if section is Section.COOLDOWN:
        if is_breathing(category):
            return 1.30
        if is_mobility(category):
            return 1.25
        if is_conditioning(category):
            return 0.40
        return 0.85
    if is_breathing(category):
        return 0.0
    if is_mobility(category):
        return 0.85
    return 1.15


def pain_relief_fit(exercise: ExerciseRecord, section: Section, pain_zones: frozenset[str]) -> float:
    if not pain_zones:
        return 1.0
    matches = sum(1 for z in exercise.pain_relief_zones if z in pain_zones)
    if matches <= 0:
        return 1.0
    if section in (Section.WARMUP, Section.COOLDOWN):
        return 1.0 + min(1.0, matches * 0.55)
    return 1.0 + min(0.4, matches * 0.15)


def pain_safety_penalty(exercise: ExerciseRecord, profile: UserProfile, ctx: ClinicalContext) -> float:
    """Soft discount for load that conflicts with the user's pain sites."""
    pain = set(profile.pain_locations)
    diagnoses = set(profile.medical_diagnosis)
    penalty = 1.0

    if "knee" in pain and exercise.knee_load_level is LoadLevel.HIGH:
        penalty *= 0.10

    has_knee_issue = bool(pain & {"knee", "knee_anterior"} or diagnoses & KNEE_ISSUE_DIAGNOSES)
    if has_knee_issue and exercise.knee_flexion_applies and not ctx.is_severe:
        if exercise.knee_flexion_max_deg is None:
            penalty *= 0.75
        elif exercise.knee_flexion_max_deg > KNEE_FLEXION_CKC_MODERATE:
            penalty *= 0.65
        else:
            penalty *= 1.10

    if (
        "disc_herniation" in diagnoses
        and profile.is_radiating_pain
        and exercise.spine_motion_profile == "lumbar_rotation_loaded"
    ):
        penalty *= 0.6

    if pain & NECK_SHOULDER_LOCATIONS and exercise.overhead_required and not ctx.is_severe:
        if exercise.shoulder_load_level is None:
            penalty *= 0.75
        elif exercise.shoulder_load_level is LoadLevel.HIGH:
            penalty *= 0.7
        elif exercise.shoulder_load_level is LoadLevel.LOW:
            penalty *= 1.1
    return penalty


def goal_multiplier(
    exercise: ExerciseRecord, profile: UserProfile, pain_status: PainStatus | None
) -> float:
    if profile.primary_goal != "pain_relief":
        return 1.0
    m = 1.0
    if pain_status in (None, PainStatus.GREEN) and exercise.intended_pain_response == "acceptable":
        m *= 1.1
    if is_mobility(exercise.category_id) or is_relaxation(exercise.category_id):
        m *= 1.25
    return m


def variety_penalty(exercise: ExerciseRecord, state: SelectionState, section: Section) -> float:
    family = exercise.family_key
    if state.is_anchor(exercise):
        usage = state.weekly_family_usage[family]
        target = state.anchor_target_exposure
        if usage < target:
            p = 1.0
        else:
            p = 1.0 / (1.0 + (usage - target + 1) * ANCHOR_OVEREXPOSURE_SLOPE)
    else:
        p = 1.0 / (1.0 + state.weekly_usage[exercise.id] * NON_ANCHOR_WEEKLY_SLOPE)

    if state.session_family_usage[family] > 0:
        return p * SAME_FAMILY_SESSION_PENALTY
    slope = 0.9 if section is Section.MAIN else 0.6
    return p / (1.0 + state.session_category_usage[exercise.category_id] * slope)


def affinity_multiplier(score: float) -> float:
    """Like/dislike score in [-100, 100] mapped linearly onto [0, 2]."""
    clamped = max(-100.0, min(100.0, float(score or 0.0)))
    return 1.0 + clamped / 100.0


def freshness_multiplier(days_since_seen: int | None) -> float:
    if days_since_seen is None:
        return 1.0
    if days_since_seen <= 2:
        return 0.1
    if days_since_seen <= 5:
        return 0.5
    if days_since_seen >= 14:
        return 1.2
    return 1.0


def phase_fit(exercise: ExerciseRecord, phase: PhaseContext | None) -> float:
    """Phase-specific preference. 0 means forbidden in this phase."""
    if phase is None:
        return 1.0
    config = phase.config
    diff = exercise.difficulty_level
    intensity = exercise.metabolic_intensity

    forbidden = config.forbidden
    if forbidden.max_difficulty and diff > forbidden.max_difficulty:
        return 0.0
    if forbidden.min_difficulty and diff < forbidden.min_difficulty:
        return 0.0
    if forbidden.block_high_impact and exercise.impact_level is LoadLevel.HIGH:
        return 0.0

    bias = config.bias
    m = bias.difficulty_multiplier(diff)
    if bias.metabolic_penalty and intensity > 2:
        m /= bias.metabolic_penalty * (intensity - 1)
    if bias.metabolic_bonus and intensity >= 3:
        m *= bias.metabolic_bonus
    category = exercise.category_id.lower()
    if any(kw in category for kw in bias.category_keywords):
        m *= PHASE_KEYWORD_BONUS

    if phase.spiral_bias > 0 and diff >= 3:
        m *= 1.0 + phase.spiral_bias
    if phase.is_soft_progression:
        if diff >= 4:
            m *= 0.5
        if diff <= 2:
            m *= 1.2
    return m


def profile_modifier(exercise: ExerciseRecord, profile: UserProfile, phase: PhaseContext | None) -> float:
    gentle = phase is not None and phase.is_rehab_or_control
    m = 1.0
    if "running" in profile.hobby and exercise.is_unilateral:
        m *= 1.1 if gentle else 1.2
    if "disc_herniation" in profile.medical_diagnosis and exercise.primary_plane == "rotation":
        m *= 0.5 if gentle else 0.7
    return m


def fatigue_modifier(exercise: ExerciseRecord, section: Section) -> float:
    m = 1.0
    if is_breathing(exercise.category_id) or is_mobility(exercise.category_id):
        m *= 1.25
    if section is Section.MAIN and exercise.difficulty_level == 3:
        m *= 0.75
    if exercise.metabolic_intensity == 3:
        m *= 0.80
    return m


def score_exercise(
    exercise: ExerciseRecord,
    section: Section,
    scoring: ScoringContext,
    state: SelectionState,
) -> float:
    """Selection score for *exercise* in *section*; 0 means never pick.

    Args:
        exercise: Candidate exercise.
        section: Section being filled.
        scoring: Per-plan scoring inputs.
        state: Current selection bookkeeping.

    Returns:
        Non-negative score proportional to the pick probability.
    """
    if exercise.id in state.used_ids:
        return 0.0

    score = scoring.category_weights.get(exercise.category_id, 1.0)
    score *= section_fit(section, exercise.category_id)
    score *= pain_relief_fit(exercise, section, scoring.ctx.pain_zones)
    score *= pain_safety_penalty(exercise, scoring.profile, scoring.ctx)
    score *= goal_multiplier(exercise, scoring.profile, scoring.pain_status)
    score *= variety_penalty(exercise, state, section)
    score *= affinity_multiplier(state.affinity.get(exercise.id, 0.0))
    score *= freshness_multiplier(state.last_seen_days.get(exercise.id))

    fit = phase_fit(exercise, scoring.phase)
    if fit == 0:
        return 0.0
    score *= fit
    score *= profile_modifier(exercise, scoring.profile, scoring.phase)

    if scoring.is_fatigue_mode:
        score *= fatigue_modifier(exercise, section)
    return max(0.0, score)
