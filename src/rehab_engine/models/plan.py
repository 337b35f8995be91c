"""Plan models: prescribed exercises, sessions, rest days and the weekly plan."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from rehab_engine.models.enums import ConditioningStyle, FatigueState, PhaseId, Section
from rehab_engine.models.exercise import ExerciseRecord


@dataclass(frozen=True)
class RomConstraint:
    """Range-of-motion cap attached to a prescription."""

    joint: str
    limit_degrees: int


@dataclass(frozen=True)
class PrescribedExercise:
    """An exercise with its quantities and timing for one session slot.

    Exactly one of ``reps`` / ``work_sec`` drives the work time, except for
    AMRAP sets (``is_max_reps``) which are estimated from ``reps``.
    """

    exercise: ExerciseRecord
    section: Section
    sets: int
    reps: int | None = None
    work_sec: int | None = None
    is_max_reps: bool = False
    rest_after_sec: int = 30
    rest_between_sets_sec: int | None = None
    transition_sec: int = 5
    tempo: str = ""
    rom_constraint: RomConstraint | None = None
    alternatives: tuple[ExerciseRecord, ...] = field(default_factory=tuple)
    easy_pace: bool = False
    note: str | None = None

    @property
    def is_unilateral(self) -> bool:
        return self.exercise.is_unilateral

    @property
    def is_timed(self) -> bool:
        return self.work_sec is not None

    @property
    def reps_or_time(self) -> str:
        """Human-readable quantity, e.g. ``"12/side"``, ``"45 s"``, ``"15 min"``."""
        if self.easy_pace:
            return "easy pace"
        if self.is_max_reps:
            return "MAX"
        if self.work_sec is not None:
            if self.exercise.conditioning_style is ConditioningStyle.STEADY_STATE:
                return f"{self.work_sec // 60} min"
            return f"{self.work_sec} s"
        suffix = "/side" if self.is_unilateral else ""
        return f"{self.reps}{suffix}"


@dataclass(frozen=True)
class Session:
    """One training day: ordered warmup / main / cooldown blocks."""

    day_number: int
    date: date
    title: str
    warmup: tuple[PrescribedExercise, ...] = field(default_factory=tuple)
    main: tuple[PrescribedExercise, ...] = field(default_factory=tuple)
    cooldown: tuple[PrescribedExercise, ...] = field(default_factory=tuple)
    target_minutes: int = 30
    undulation: float = 1.0
    fatigue_state: FatigueState = FatigueState.FRESH
    estimated_duration_sec: int = 0

    is_rest = False

    def section(self, section: Section) -> tuple[PrescribedExercise, ...]:
        return getattr(self, section.value)

    @property
    def exercises(self) -> tuple[PrescribedExercise, ...]:
        return self.warmup + self.main + self.cooldown

    @property
    def estimated_duration_min(self) -> int:
        return round(self.estimated_duration_sec / 60)


@dataclass(frozen=True)
class RestDay:
    day_number: int
    date: date
    reason: str = "scheduled"

    is_rest = True


DayEntry = Session | RestDay


@dataclass(frozen=True)
class WeeklyPlan:
    """Output of the weekly schedule builder: always 7 day entries."""

    days: tuple[DayEntry, ...] = field(default_factory=tuple)
    phase_id: PhaseId = PhaseId.CONTROL
    is_override: bool = False
    anchor_families: tuple[str, ...] = field(default_factory=tuple)
    start_date: date | None = None

    @property
    def sessions(self) -> tuple[Session, ...]:
        return tuple(d for d in self.days if isinstance(d, Session))

    @property
    def training_days(self) -> int:
        return len(self.sessions)
