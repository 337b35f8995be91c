"""Canonical exercise record produced by the catalog normalizer."""

from __future__ import annotations

from dataclasses import dataclass, field

from rehab_engine.models.enums import ConditioningStyle, LoadLevel


@dataclass(frozen=True)
class IntervalSpec:
    """Work/rest cycle for interval-style conditioning, in seconds."""

    work_sec: float
    rest_sec: float

    @property
    def cycle_sec(self) -> float:
        return self.work_sec + self.rest_sec


@dataclass(frozen=True)
class Timing:
    """Base rest and transition timing from the pacing engine."""

    rest_sec: int = 30
    transition_sec: int = 5


@dataclass(frozen=True)
class ExerciseRecord:
    """Immutable, validated exercise.

    Built only through ``normalize_exercise_row``; fields carry normalized
    (lowercased, clamped) values so downstream code never re-parses.
    """

    id: str
    name: str
    category_id: str
    position: str
    impact_level: LoadLevel
    is_foot_loading: bool
    difficulty_level: int = 1  # 1-5
    primary_plane: str = "multi"
    is_unilateral: bool = False
    equipment: tuple[str, ...] = field(default_factory=tuple)
    knee_load_level: LoadLevel = LoadLevel.LOW
    spine_load_level: LoadLevel = LoadLevel.LOW
    metabolic_intensity: int = 1  # 1-5
    pain_relief_zones: tuple[str, ...] = field(default_factory=tuple)
    tolerance_tags: tuple[str, ...] = field(default_factory=tuple)
    conditioning_style: ConditioningStyle = ConditioningStyle.NONE
    interval: IntervalSpec | None = None
    max_recommended_reps: int = 0
    max_recommended_duration: int = 0  # seconds, 0 = rep-based
    timing: Timing = field(default_factory=Timing)

    # Joint-specific safety attributes
    knee_flexion_max_deg: int | None = None
    knee_flexion_applies: bool = False
    spine_motion_profile: str = "neutral"
    overhead_required: bool = False
    shoulder_load_level: LoadLevel | None = LoadLevel.LOW
    intended_pain_response: str = "painfree"
    default_tempo: str = ""

    @property
    def family_key(self) -> str:
        """Movement family: category + plane + position + laterality."""
        laterality = "uni" if self.is_unilateral else "bi"
        return f"{self.category_id}|{self.primary_plane or 'multi'}|{self.position or 'standing'}|{laterality}"
