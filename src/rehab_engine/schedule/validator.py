"""Final pass over a built plan enforcing the active phase's hard limits."""

from __future__ import annotations

import logging
from dataclasses import replace

from rehab_engine.models.enums import PhaseId
from rehab_engine.models.plan import PrescribedExercise, Session, WeeklyPlan
from rehab_engine.phases.catalog import PhaseContext

logger = logging.getLogger(__name__)

TOO_HARD_NOTE = "Auto-scaled: too hard for current phase"
DELOAD_MAX_SETS = 2
REHAB_MAX_REPS = 12
REHAB_RESET_REPS = 10
REHAB_SLOWED_TEMPOS = frozenset({"normal", "fast"})


def correct_prescription(rx: PrescribedExercise, phase: PhaseContext) -> PrescribedExercise:
    max_difficulty = phase.config.forbidden.max_difficulty
    if max_difficulty and rx.exercise.difficulty_level > max_difficulty:
        rx = replace(rx, sets=1, easy_pace=True, note=TOO_HARD_NOTE)
    if phase.phase_id is PhaseId.DELOAD and rx.sets > DELOAD_MAX_SETS:
        rx = replace(rx, sets=DELOAD_MAX_SETS)
    if phase.phase_id is PhaseId.REHAB:
        if rx.work_sec is None and rx.reps is not None and rx.reps > REHAB_MAX_REPS:
            rx = replace(rx, reps=REHAB_RESET_REPS)
        if rx.tempo.lower() in REHAB_SLOWED_TEMPOS:
            rx = replace(rx, tempo="slow")
    return rx


def validate_and_correct_plan(plan: WeeklyPlan, phase: PhaseContext) -> WeeklyPlan:
    """Return a copy of ``plan`` with every prescription inside the phase limits.

    Exercises above the phase's max difficulty are reduced to one easy-pace
    set with a note; deload caps sets at 2; rehab caps rep counts and slows
    normal or fast tempos.
    """
    corrected = 0
    days = []
    for day in plan.days:
        if not isinstance(day, Session):
            days.append(day)
            continue
        sections = {}
        for name in ("warmup", "main", "cooldown"):
            original = getattr(day, name)
            fixed = tuple(correct_prescription(rx, phase) for rx in original)
            corrected += sum(1 for a, b in zip(original, fixed) if a != b)
            sections[name] = fixed
        days.append(replace(day, **sections))

    if corrected:
        logger.info("Validator corrected %d prescriptions for phase %s", corrected, phase.phase_id.value)
    return replace(plan, days=tuple(days))
