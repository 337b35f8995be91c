"""Pacing engine: physiological base rest and transition timing per exercise.

The engine sets the base rest an exercise needs; the user's own rest-time
factor and the phase rest multiplier are applied later by the prescription
and duration estimators.
"""

from __future__ import annotations

from rehab_engine.models.enums import (
    BILATERAL_TRANSITION_SEC,
    UNILATERAL_TRANSITION_SEC,
    ConditioningStyle,
    ExperienceTier,
)
from rehab_engine.models.exercise import ExerciseRecord, Timing

# Ordered (keywords, rest seconds); the first matching row wins.
# Strength work (difficulty >= 4) is checked between conditioning and core.
_NEURAL_REST = (("nerve", "flossing", "neuro"), 35)
_MOBILITY_REST = (("mobility", "stretch", "flow", "flexor"), 20)
_CONDITIONING_REST = (("conditioning", "cardio", "burn"), 20)
_STRENGTH_KEYWORDS = ("strength", "squat", "deadlift", "push", "pull")
STRENGTH_REST_SEC = 60
STRENGTH_DIFFICULTY = 4
_STABILITY_REST = (("core_stability", "anti_", "plank"), 45)
_BREATHING_REST = (("breathing", "relax"), 15)
DEFAULT_REST_SEC = 30

STEADY_STATE_REST_SEC = 60
AMRAP_REST_SEC = 90
HIGH_METABOLIC_INTENSITY = 4
HIGH_METABOLIC_EXTRA_REST_SEC = 15

# Side-switch time when the caller knows the user's experience
UNILATERAL_TRANSITION_BY_EXPERIENCE = {
    ExperienceTier.NONE: 15,
    ExperienceTier.OCCASIONAL: 15,
    ExperienceTier.REGULAR: UNILATERAL_TRANSITION_SEC,
    ExperienceTier.ADVANCED: 8,
}


def base_rest_seconds(category_id: str, difficulty_level: int) -> int:
    """Category-table base rest, before conditioning-style overrides."""
    cat = str(category_id or "").lower()
    for keywords, rest in (_NEURAL_REST, _MOBILITY_REST, _CONDITIONING_REST):
        if any(k in cat for k in keywords):
            return rest
    if difficulty_level >= STRENGTH_DIFFICULTY or any(k in cat for k in _STRENGTH_KEYWORDS):
        return STRENGTH_REST_SEC
    for keywords, rest in (_STABILITY_REST, _BREATHING_REST):
        if any(k in cat for k in keywords):
            return rest
    return DEFAULT_REST_SEC


def transition_seconds(is_unilateral: bool, experience: ExperienceTier | None = None) -> int:
    """Time to switch sides (unilateral) or get into position (bilateral)."""
    if not is_unilateral:
        return BILATERAL_TRANSITION_SEC
    if experience is None:
        return UNILATERAL_TRANSITION_SEC
    return UNILATERAL_TRANSITION_BY_EXPERIENCE[experience]


def calculate_timing(exercise: ExerciseRecord, experience: ExperienceTier | None = None) -> Timing:
    """Compute base rest/transition for an exercise.

    Args:
        exercise: Normalized exercise record.
        experience: Optional experience tier; when given, unilateral
            transitions are adjusted (beginners 15 s, advanced 8 s).

    Returns:
        Timing with ``rest_sec`` and ``transition_sec``.
    """
    style = exercise.conditioning_style
    if style is ConditioningStyle.INTERVAL and exercise.interval is not None:
        rest = int(round(exercise.interval.rest_sec))
    elif style is ConditioningStyle.STEADY_STATE:
        rest = STEADY_STATE_REST_SEC
    elif style is ConditioningStyle.AMRAP:
        rest = AMRAP_REST_SEC
    else:
        rest = base_rest_seconds(exercise.category_id, exercise.difficulty_level)
        if exercise.metabolic_intensity >= HIGH_METABOLIC_INTENSITY:
            rest += HIGH_METABOLIC_EXTRA_REST_SEC

    return Timing(
        rest_sec=rest,
        transition_sec=transition_seconds(exercise.is_unilateral, experience),
    )
