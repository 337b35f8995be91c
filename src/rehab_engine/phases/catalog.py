"""Phase catalog: goal blueprints and per-phase generator configuration.

Each phase config carries its selection bias (difficulty multipliers,
metabolic penalty/bonus, favoured category keywords), its prescription
ranges, its progression window and its forbidden difficulty/impact envelope.

Reference:
    Rhea et al. (2002). A comparison of linear and daily undulating
    periodized programs with equated volume and intensity for strength.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from rehab_engine.exceptions import PhaseConfigurationError
from rehab_engine.models.enums import ExperienceTier, PhaseId
from rehab_engine.models.phase_state import RomProfile

C, M, CAP, S, MET, D = (
    PhaseId.CONTROL,
    PhaseId.MOBILITY,
    PhaseId.CAPACITY,
    PhaseId.STRENGTH,
    PhaseId.METABOLIC,
    PhaseId.DELOAD,
)

DEFAULT_BLUEPRINT = "default"


@dataclass(frozen=True)
class Blueprint:
    id: str
    sequence: tuple[PhaseId, ...]


BLUEPRINTS: Mapping[str, Blueprint] = MappingProxyType({
    "pain_relief": Blueprint("pain_relief", (C, M, C, CAP)),
    "fat_loss": Blueprint("fat_loss", (C, MET, CAP, MET)),
    "strength": Blueprint("strength", (C, CAP, S, D)),
    # Alias: hypertrophy shares the strength periodization
    "hypertrophy": Blueprint("strength", (C, CAP, S, D)),
    "prevention": Blueprint("prevention", (M, C, CAP, D)),
    "mobility": Blueprint("mobility", (M, C, M, CAP)),
    DEFAULT_BLUEPRINT: Blueprint(DEFAULT_BLUEPRINT, (C, CAP, S, D)),
})


@dataclass(frozen=True)
class PhaseBias:
    difficulty: Mapping[int, float] = field(default_factory=dict)
    metabolic_penalty: float = 0.0
    metabolic_bonus: float = 0.0
    category_keywords: tuple[str, ...] = ()

    def difficulty_multiplier(self, level: int) -> float:
        return self.difficulty.get(level, 0.5)


@dataclass(frozen=True)
class PhasePrescription:
    """Range strings as "min-max"; a trailing "s" marks a timed range."""

    sets: str = "3"
    reps: str = "8-12"
    rest_factor: float = 1.0


@dataclass(frozen=True)
class PhaseProgression:
    target_sessions: tuple[int, int] = (12, 16)
    cap_weeks: int = 8


@dataclass(frozen=True)
class PhaseForbidden:
    max_difficulty: int | None = None
    min_difficulty: int | None = None
    block_high_impact: bool = False


@dataclass(frozen=True)
class PhaseConfig:
    phase_id: PhaseId
    bias: PhaseBias
    prescription: PhasePrescription
    progression: PhaseProgression
    forbidden: PhaseForbidden


def _difficulty(*values: float) -> Mapping[int, float]:
    return MappingProxyType({level: v for level, v in enumerate(values, start=1)})


PHASE_CONFIGS: Mapping[PhaseId, PhaseConfig] = MappingProxyType({
    PhaseId.CONTROL: PhaseConfig(
        PhaseId.CONTROL,
        PhaseBias(
            _difficulty(1.5, 1.2, 0.8, 0.1, 0.0),
            metabolic_penalty=2.0,
            category_keywords=("control", "activation", "patellofemoralcontrol"),
        ),
        PhasePrescription("2-4", "8-12", 1.0),
        PhaseProgression((12, 16), 8),
        PhaseForbidden(max_difficulty=3, block_high_impact=True),
    ),
    PhaseId.MOBILITY: PhaseConfig(
        PhaseId.MOBILITY,
        PhaseBias(
            _difficulty(1.5, 1.2, 0.5, 0.0, 0.0),
            category_keywords=("mobility", "stretch", "flow", "thoracic", "hip"),
        ),
        PhasePrescription("2-3", "10-15", 0.5),
        PhaseProgression((12, 16), 8),
        PhaseForbidden(max_difficulty=3, block_high_impact=True),
    ),
    PhaseId.CAPACITY: PhaseConfig(
        PhaseId.CAPACITY,
        PhaseBias(_difficulty(0.8, 1.2, 1.5, 0.8, 0.2), metabolic_penalty=0.5),
        PhasePrescription("3-5", "10-15", 1.0),
        PhaseProgression((20, 24), 10),
        PhaseForbidden(max_difficulty=5),
    ),
    PhaseId.STRENGTH: PhaseConfig(
        PhaseId.STRENGTH,
        PhaseBias(_difficulty(0.1, 0.5, 1.2, 1.5, 1.5), metabolic_penalty=1.5),
        PhasePrescription("3-6", "3-6", 1.5),
        PhaseProgression((10, 12), 6),
        PhaseForbidden(min_difficulty=2),
    ),
    PhaseId.METABOLIC: PhaseConfig(
        PhaseId.METABOLIC,
        PhaseBias(_difficulty(0.5, 1.5, 1.2, 0.5, 0.1), metabolic_bonus=2.0),
        PhasePrescription("3-4", "15-25", 0.5),
        PhaseProgression((12, 16), 8),
        PhaseForbidden(max_difficulty=4),
    ),
    PhaseId.DELOAD: PhaseConfig(
        PhaseId.DELOAD,
        PhaseBias(_difficulty(1.2, 1.2, 0.8, 0.1, 0.0)),
        PhasePrescription("2", "8-10", 1.0),
        PhaseProgression((3, 5), 2),
        PhaseForbidden(max_difficulty=3),
    ),
    PhaseId.REHAB: PhaseConfig(
        PhaseId.REHAB,
        PhaseBias(
            _difficulty(2.0, 1.0, 0.0, 0.0, 0.0),
            metabolic_penalty=3.0,
            category_keywords=("isometric", "stability", "activation", "nerve", "patellofemoralcontrol"),
        ),
        PhasePrescription("3-5", "30-45s", 1.2),
        PhaseProgression((999, 999), 999),
        PhaseForbidden(max_difficulty=2, block_high_impact=True),
    ),
})


def get_phase_config(phase_id: PhaseId | str) -> PhaseConfig:
    """Look up a phase config.

    Raises:
        PhaseConfigurationError: unknown phase id.
    """
    try:
        return PHASE_CONFIGS[PhaseId(phase_id)]
    except (KeyError, ValueError):
        raise PhaseConfigurationError(f"Unknown phase id: {phase_id!r}") from None


def get_blueprint(blueprint_id: str) -> Blueprint:
    """Look up a blueprint by exact id.

    Raises:
        PhaseConfigurationError: unknown blueprint id.
    """
    try:
        return BLUEPRINTS[blueprint_id]
    except KeyError:
        raise PhaseConfigurationError(f"Unknown blueprint id: {blueprint_id!r}") from None


def resolve_blueprint(primary_goal: str | None) -> Blueprint:
    """Map a free-form goal to its blueprint, falling back to ``default``."""
    key = str(primary_goal or "").strip().lower()
    return BLUEPRINTS.get(key, BLUEPRINTS[DEFAULT_BLUEPRINT])


def pick_target_sessions(phase_id: PhaseId, experience: ExperienceTier) -> int:
    """Sessions needed to complete a phase for this experience tier.

    Beginners stay longer in the adaptive phases (control, capacity) and
    shorter in the intensive ones (strength, metabolic); advanced users the
    reverse. Everyone else gets the midpoint.
    """
    low, high = get_phase_config(phase_id).progression.target_sessions
    target = math.floor((low + high) / 2 + 0.5)
    is_advanced = experience is ExperienceTier.ADVANCED
    if phase_id in (PhaseId.CONTROL, PhaseId.CAPACITY):
        if experience.is_beginner:
            target = high
        elif is_advanced:
            target = low
    elif phase_id in (PhaseId.STRENGTH, PhaseId.METABOLIC):
        if experience.is_beginner:
            target = low
        elif is_advanced:
            target = high
    return target


@dataclass(frozen=True)
class PhaseContext:
    """What the generator needs to know about the effective phase."""

    phase_id: PhaseId
    config: PhaseConfig
    is_override: bool = False
    spiral_bias: float = 0.0
    is_soft_progression: bool = False
    rom: RomProfile | None = None

    @classmethod
    def for_phase(cls, phase_id: PhaseId, **kwargs) -> PhaseContext:
        return cls(phase_id=phase_id, config=get_phase_config(phase_id), **kwargs)

    @property
    def is_deload(self) -> bool:
        return self.phase_id is PhaseId.DELOAD

    @property
    def is_rehab_or_control(self) -> bool:
        return self.phase_id in (PhaseId.CONTROL, PhaseId.REHAB)
