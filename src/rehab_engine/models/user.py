"""User intake profile and the per-request clinical context derived from it."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping

from rehab_engine.models.enums import (
    DEFAULT_SCHEDULE_PATTERN,
    DEFAULT_TARGET_MINUTES,
    ExperienceTier,
    PainStatus,
    TolerancePattern,
)


def normalize_string_list(value: Any) -> tuple[str, ...]:
    """Accept a list or comma-separated string; trim and drop blanks."""
    if not value:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
    else:
        return ()
    return tuple(str(item).strip() for item in items if str(item).strip())


def normalize_lower_set(value: Any) -> frozenset[str]:
    return frozenset(item.lower() for item in normalize_string_list(value))


def _to_float(value: Any, fallback: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return fallback


@dataclass(frozen=True)
class UserProfile:
    """Immutable snapshot of the user's intake questionnaire and settings."""

    pain_locations: tuple[str, ...] = field(default_factory=tuple)
    pain_intensity: float = 0.0  # NPRS 0-10
    daily_impact: float = 0.0  # 0-10
    pain_character: tuple[str, ...] = field(default_factory=tuple)
    trigger_movements: tuple[str, ...] = field(default_factory=tuple)
    relief_movements: tuple[str, ...] = field(default_factory=tuple)
    experience: ExperienceTier = ExperienceTier.NONE
    equipment_available: tuple[str, ...] = field(default_factory=tuple)
    physical_restrictions: tuple[str, ...] = field(default_factory=tuple)
    medical_diagnosis: tuple[str, ...] = field(default_factory=tuple)
    focus_locations: tuple[str, ...] = field(default_factory=tuple)
    work_type: str = ""
    hobby: str = ""
    component_weights: tuple[str, ...] = field(default_factory=tuple)
    primary_goal: str = ""
    schedule_pattern: tuple[int, ...] = DEFAULT_SCHEDULE_PATTERN  # 0 = Sunday
    target_minutes: int = DEFAULT_TARGET_MINUTES
    forced_rest_dates: frozenset[date] = field(default_factory=frozenset)
    seconds_per_rep: float | None = None
    rest_time_factor: float = 1.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UserProfile:
        """Build a profile from an intake mapping (wizard field names)."""
        pattern = data.get("schedule_pattern") or DEFAULT_SCHEDULE_PATTERN
        target = int(round(_to_float(data.get("target_session_duration_min"), DEFAULT_TARGET_MINUTES)))
        forced = frozenset(
            date.fromisoformat(d) for d in normalize_string_list(data.get("forced_rest_dates"))
        )
        spr = data.get("seconds_per_rep")
        return cls(
            pain_locations=tuple(s.lower() for s in normalize_string_list(data.get("pain_locations"))),
            pain_intensity=_to_float(data.get("pain_intensity"), 0.0),
            daily_impact=_to_float(data.get("daily_impact"), 0.0),
            pain_character=tuple(s.lower() for s in normalize_string_list(data.get("pain_character"))),
            trigger_movements=normalize_string_list(data.get("trigger_movements")),
            relief_movements=normalize_string_list(data.get("relief_movements")),
            experience=ExperienceTier.parse(data.get("exercise_experience")),
            equipment_available=normalize_string_list(data.get("equipment_available")),
            physical_restrictions=tuple(sorted(normalize_lower_set(data.get("physical_restrictions")))),
            medical_diagnosis=tuple(sorted(normalize_lower_set(data.get("medical_diagnosis")))),
            focus_locations=tuple(sorted(normalize_lower_set(data.get("focus_locations")))),
            work_type=str(data.get("work_type") or "").lower(),
            hobby=str(data.get("hobby") or "").lower(),
            component_weights=tuple(sorted(normalize_lower_set(data.get("session_component_weights")))),
            primary_goal=str(data.get("primary_goal") or "").lower(),
            schedule_pattern=tuple(int(d) for d in pattern),
            target_minutes=max(10, min(90, target)),
            forced_rest_dates=forced,
            seconds_per_rep=None if spr is None else _to_float(spr, 0.0) or None,
            rest_time_factor=_to_float(data.get("rest_time_factor"), 1.0),
        )

    @property
    def sessions_per_week(self) -> int:
        return len(self.schedule_pattern)

    @property
    def is_sharp_pain(self) -> bool:
        return any(c in self.pain_character for c in ("sharp", "burning", "radiating"))

    @property
    def is_radiating_pain(self) -> bool:
        return any(c in self.pain_character for c in ("radiating", "burning"))


@dataclass(frozen=True)
class ClinicalContext:
    """Per-request clinical view of the user; never persisted."""

    tolerance_pattern: TolerancePattern
    severity_score: float
    is_severe: bool
    difficulty_cap: int
    pain_filters: frozenset[str]
    pain_zones: frozenset[str]
    equipment: frozenset[str]
    restrictions: frozenset[str]
    diagnoses: frozenset[str]
    blocked_ids: frozenset[str] = field(default_factory=frozenset)
    pain_status: PainStatus | None = None

    @property
    def has_knee_pain(self) -> bool:
        return bool(self.pain_filters & {"knee", "knee_anterior"})

    @property
    def has_neck_or_shoulder_pain(self) -> bool:
        return bool(self.pain_filters & {"cervical", "neck", "shoulder"})
