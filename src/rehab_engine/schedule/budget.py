"""Session time budget solver.

Fits a drafted session to the user's target duration: ``expand_session``
adds volume while the estimate is short of 95% of target, and
``enforce_hard_limit`` trims until the estimate is within target + 30 s.
Both loops are bounded; when no legal adjustment is left the session is
accepted as it is.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Callable

from rehab_engine.catalog.categories import is_breathing, is_mobility
from rehab_engine.models.enums import (
    EXPAND_MAX_ITERATIONS,
    EXPAND_TARGET_RATIO,
    HARD_LIMIT_MAX_ITERATIONS,
    HARD_LIMIT_TOLERANCE_SEC,
    MAX_SETS_MOBILITY,
    MAX_SETS_SAFE,
    MAX_SETS_UNILATERAL,
    MIN_MAIN_EXERCISES,
    POSITION_ENERGY_RANK,
    SHRINK_STEP,
    ConditioningStyle,
    Section,
)
from rehab_engine.models.plan import PrescribedExercise
from rehab_engine.prescription.duration import MIN_TIMED_WORK_SEC, PaceSettings

logger = logging.getLogger(__name__)

DEFAULT_POSITION_RANK = 4


@dataclass
class SessionDraft:
    """Mutable per-section prescription lists while a day is being built."""

    warmup: list[PrescribedExercise] = field(default_factory=list)
    main: list[PrescribedExercise] = field(default_factory=list)
    cooldown: list[PrescribedExercise] = field(default_factory=list)

    def section(self, section: Section) -> list[PrescribedExercise]:
        return getattr(self, section.value)

    @property
    def exercises(self) -> list[PrescribedExercise]:
        return self.warmup + self.main + self.cooldown

    def estimate(self, pace: PaceSettings) -> int:
        return pace.session_seconds(self.exercises)


def max_sets_for(rx: PrescribedExercise) -> int:
    """Set cap used when expanding; 0 means the set count is fixed."""
    ex = rx.exercise
    if ex.conditioning_style is not ConditioningStyle.NONE or is_breathing(ex.category_id):
        return 0
    if is_mobility(ex.category_id):
        return MAX_SETS_MOBILITY
    if ex.is_unilateral:
        return MAX_SETS_UNILATERAL
    return MAX_SETS_SAFE


def expand_session(
    draft: SessionDraft,
    target_minutes: int,
    pace: PaceSettings,
    add_main_exercise: Callable[[], PrescribedExercise | None],
) -> int:
    """Grow the main block until the estimate reaches 95% of target.

    Each iteration raises the set count of the main exercise with the fewest
    sets (within its cap), or failing that appends a freshly picked main
    exercise via ``add_main_exercise``.

    Returns:
        Number of adjustments made.
    """
    target_sec = target_minutes * 60
    adjustments = 0
    for _ in range(EXPAND_MAX_ITERATIONS):
        if draft.estimate(pace) >= target_sec * EXPAND_TARGET_RATIO:
            break
        raisable = [
            (rx.sets, i) for i, rx in enumerate(draft.main) if rx.sets < max_sets_for(rx)
        ]
        if raisable:
            _, index = min(raisable)
            rx = draft.main[index]
            draft.main[index] = replace(rx, sets=rx.sets + 1)
            adjustments += 1
            continue
        added = add_main_exercise()
        if added is None:
            break
        draft.main.append(added)
        adjustments += 1
    return adjustments


def _reduce_sets(exercises: list[PrescribedExercise], pace: PaceSettings) -> bool:
    """Drop one set from the most expensive exercise that has more than one."""
    reducible = [
        (pace.exercise_seconds(rx), i) for i, rx in enumerate(exercises) if rx.sets > 1
    ]
    if not reducible:
        return False
    _, index = max(reducible, key=lambda item: item[0])
    exercises[index] = replace(exercises[index], sets=exercises[index].sets - 1)
    return True


def _trim_main(draft: SessionDraft, pace: PaceSettings) -> bool:
    main = draft.main
    order = sorted(range(len(main)), key=lambda i: pace.exercise_seconds(main[i]), reverse=True)
    accessory_sec = pace.block_seconds(draft.warmup) + pace.block_seconds(draft.cooldown)
    for index in order:
        rx = main[index]
        if rx.sets > 1:
            main[index] = replace(rx, sets=rx.sets - 1)
            return True
        remaining = main[:index] + main[index + 1:]
        if len(remaining) >= MIN_MAIN_EXERCISES and pace.block_seconds(remaining) >= accessory_sec:
            del main[index]
            return True
    return False


def _shrink_quantity(rx: PrescribedExercise) -> PrescribedExercise:
    if rx.work_sec is not None:
        return replace(rx, work_sec=max(MIN_TIMED_WORK_SEC, math.floor(rx.work_sec * SHRINK_STEP)))
    if rx.reps is not None and not rx.is_max_reps:
        return replace(rx, reps=max(1, math.floor(rx.reps * SHRINK_STEP)))
    return rx


def _shrink_all(draft: SessionDraft) -> bool:
    changed = False
    for section in Section:
        items = draft.section(section)
        for i, rx in enumerate(items):
            shrunk = _shrink_quantity(rx)
            if shrunk != rx:
                items[i] = shrunk
                changed = True
    return changed


def enforce_hard_limit(draft: SessionDraft, target_minutes: int, pace: PaceSettings) -> bool:
    """Trim the draft until its estimate is within target + 30 s.

    Order of actions per pass: main sets or main removal (most expensive
    first), cooldown sets, warmup sets, then a 10% shrink of every
    exercise's reps or seconds.

    Returns:
        True if the draft fits the ceiling.
    """
    ceiling = target_minutes * 60 + HARD_LIMIT_TOLERANCE_SEC
    for _ in range(HARD_LIMIT_MAX_ITERATIONS):
        if draft.estimate(pace) <= ceiling:
            return True
        if _trim_main(draft, pace):
            continue
        if _reduce_sets(draft.cooldown, pace) or _reduce_sets(draft.warmup, pace):
            continue
        if _shrink_all(draft):
            continue
        break

    estimate = draft.estimate(pace)
    if estimate <= ceiling:
        return True
    logger.warning(
        "Session still over time after trimming (%d s > %d s); accepting", estimate, ceiling
    )
    return False


def _position_rank(rx: PrescribedExercise) -> int:
    return POSITION_ENERGY_RANK.get(rx.exercise.position, DEFAULT_POSITION_RANK)


def apply_intensity_wave(draft: SessionDraft) -> None:
    """Reorder each section so intensity rises into the main block and falls after it."""
    draft.warmup.sort(key=lambda rx: (_position_rank(rx), rx.exercise.difficulty_level))
    draft.main.sort(
        key=lambda rx: (rx.exercise.difficulty_level, rx.exercise.metabolic_intensity),
        reverse=True,
    )
    draft.cooldown.sort(key=lambda rx: (-_position_rank(rx), rx.exercise.difficulty_level))
