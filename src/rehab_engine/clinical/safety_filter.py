"""Clinical safety filter: runs the admissibility gates for one exercise."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from rehab_engine.clinical.gates import DEFAULT_GATES, ClinicalGate
from rehab_engine.models.enums import ConditioningStyle, LoadLevel, RejectionReason
from rehab_engine.models.exercise import ExerciseRecord
from rehab_engine.models.user import ClinicalContext

logger = logging.getLogger(__name__)

# strict level -> (difficulty block threshold, metabolic block threshold)
FATIGUE_GATE_LIMITS = {
    0: (4, 4),
    1: (5, 4),
    2: (5, 5),
}


@dataclass(frozen=True)
class Availability:
    allowed: bool
    reason: RejectionReason | None = None


ALLOWED = Availability(allowed=True)


def check_exercise_availability(
    exercise: ExerciseRecord,
    ctx: ClinicalContext,
    ignore_difficulty: bool = False,
    ignore_equipment: bool = False,
    strict_severity: bool = True,
    gates: Sequence[ClinicalGate] = DEFAULT_GATES,
) -> Availability:
    """Decide whether an exercise is clinically admissible for the user.

    Gates run in order and the first violation wins. A gate that raises
    rejects the exercise with ``RULE_ERROR``: an exercise we could not
    verify is never treated as safe.

    Args:
        exercise: Normalized exercise record.
        ctx: Per-request clinical context.
        ignore_difficulty: Skip the experience difficulty cap.
        ignore_equipment: Skip the equipment check.
        strict_severity: Apply the extra protections for severe users.
        gates: Gate sequence; defaults to the full clinical set.

    Returns:
        Availability with ``allowed`` and, when rejected, the reason.
    """
    skipped = {
        "ignore_difficulty": ignore_difficulty,
        "ignore_equipment": ignore_equipment,
    }
    for gate in gates:
        if gate.skip_option and skipped.get(gate.skip_option):
            continue
        if gate.strict_only and not strict_severity:
            continue
        try:
            violated = gate.violates(exercise, ctx)
        except Exception:
            logger.exception("Gate %s failed for exercise %s", gate.gate_id, exercise.id)
            return Availability(False, RejectionReason.RULE_ERROR)
        if violated:
            return Availability(False, gate.reason)
    return ALLOWED


def is_exercise_safe_for_fatigue(exercise: ExerciseRecord, strict_level: int = 0) -> bool:
    """Gate applied while the user is fatigued or in a monotony spike.

    Level 0 is the strictest; levels 1 and 2 progressively relax the
    difficulty and metabolic limits when the pool would otherwise be too small.
    """
    if exercise.impact_level is LoadLevel.HIGH:
        return False
    if exercise.spine_load_level is LoadLevel.HIGH or exercise.knee_load_level is LoadLevel.HIGH:
        return False
    if exercise.conditioning_style is ConditioningStyle.INTERVAL:
        return False
    max_difficulty, max_metabolic = FATIGUE_GATE_LIMITS.get(strict_level, FATIGUE_GATE_LIMITS[2])
    if exercise.difficulty_level >= max_difficulty:
        return False
    return exercise.metabolic_intensity < max_metabolic
