"""Session duration estimator.

Work time comes from reps × seconds-per-rep (personal pace when known) or
from the prescribed seconds. Unilateral work is counted per side with a
fixed side-switch transition.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from rehab_engine.models.enums import (
    DEFAULT_SECONDS_PER_REP,
    SESSION_BASE_SECONDS,
    UNILATERAL_TRANSITION_SEC,
)
from rehab_engine.models.plan import PrescribedExercise, Session
from rehab_engine.models.user import UserProfile

MIN_SECONDS_PER_REP = 2
MAX_SECONDS_PER_REP = 12
MIN_TIMED_WORK_SEC = 5


def seconds_per_rep(
    exercise_id: str,
    pace_map: Mapping[str, float] | None = None,
    user_seconds_per_rep: float | None = None,
) -> float:
    """Personal pace for the exercise, else the user's global pace clamped to 2-12 s."""
    if pace_map and pace_map.get(exercise_id):
        return float(pace_map[exercise_id])
    spr = user_seconds_per_rep or DEFAULT_SECONDS_PER_REP
    return max(MIN_SECONDS_PER_REP, min(MAX_SECONDS_PER_REP, spr))


def rest_after_seconds(rx: PrescribedExercise, rest_time_factor: float = 1.0) -> int:
    return round(rx.rest_after_sec * rest_time_factor)


def estimate_exercise_seconds(
    rx: PrescribedExercise,
    pace_map: Mapping[str, float] | None = None,
    user_seconds_per_rep: float | None = None,
    rest_time_factor: float = 1.0,
) -> int:
    """Estimated seconds for all sets of one prescription, excluding rest after it.

    Args:
        rx: The prescription.
        pace_map: Exercise id -> observed seconds per rep.
        user_seconds_per_rep: The user's global pace setting.
        rest_time_factor: The user's rest multiplier.

    Returns:
        Work + transitions + rest between sets, in seconds.
    """
    if rx.is_unilateral:
        sets = math.ceil(rx.sets / 2)
        sides = 2
        transition = UNILATERAL_TRANSITION_SEC
    else:
        sets = rx.sets
        sides = 1
        transition = rx.transition_sec

    if rx.work_sec is not None:
        single_side = max(MIN_TIMED_WORK_SEC, rx.work_sec)
    else:
        single_side = (rx.reps or 10) * seconds_per_rep(rx.exercise.id, pace_map, user_seconds_per_rep)

    base_rest = rx.rest_between_sets_sec if rx.rest_between_sets_sec is not None else rx.rest_after_sec
    rest = round(base_rest * rest_time_factor)
    if rx.is_unilateral:
        rest = max(rest, UNILATERAL_TRANSITION_SEC)

    total_work = sets * single_side * sides
    total_transition = sets * transition
    total_rest = (sets - 1) * rest if sets > 1 else 0
    return int(round(total_work + total_transition + total_rest))


def estimate_prescriptions_seconds(
    exercises: Sequence[PrescribedExercise],
    pace_map: Mapping[str, float] | None = None,
    user_seconds_per_rep: float | None = None,
    rest_time_factor: float = 1.0,
) -> int:
    """Seconds for an ordered run of exercises, with rest between (not after) them."""
    total = 0
    for i, rx in enumerate(exercises):
        total += estimate_exercise_seconds(rx, pace_map, user_seconds_per_rep, rest_time_factor)
        if i < len(exercises) - 1:
            total += rest_after_seconds(rx, rest_time_factor)
    return total


def estimate_session_seconds(
    session: Session,
    pace_map: Mapping[str, float] | None = None,
    user_seconds_per_rep: float | None = None,
    rest_time_factor: float = 1.0,
) -> int:
    """Whole-session estimate: 5 s setup plus every section in order."""
    return SESSION_BASE_SECONDS + estimate_prescriptions_seconds(
        session.exercises, pace_map, user_seconds_per_rep, rest_time_factor
    )


@dataclass(frozen=True)
class PaceSettings:
    """The user-level inputs every estimate needs, bundled for the solvers."""

    pace_map: Mapping[str, float] = field(default_factory=dict)
    user_seconds_per_rep: float | None = None
    rest_time_factor: float = 1.0

    @classmethod
    def for_profile(cls, profile: UserProfile, pace_map: Mapping[str, float] | None = None) -> PaceSettings:
        return cls(dict(pace_map or {}), profile.seconds_per_rep, profile.rest_time_factor)

    def exercise_seconds(self, rx: PrescribedExercise) -> int:
        return estimate_exercise_seconds(rx, self.pace_map, self.user_seconds_per_rep, self.rest_time_factor)

    def block_seconds(self, exercises: Sequence[PrescribedExercise]) -> int:
        return estimate_prescriptions_seconds(
            exercises, self.pace_map, self.user_seconds_per_rep, self.rest_time_factor
        )

    def session_seconds(self, exercises: Sequence[PrescribedExercise]) -> int:
        return SESSION_BASE_SECONDS + self.block_seconds(exercises)
