"""Phase progression state.

The active phase is a tagged union: either the blueprint's ``BasePhase`` or
a transient safety ``OverridePhase``. The base phase is kept (frozen) while
an override runs so the program resumes where it left off.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from rehab_engine.models.enums import (
    ROM_KNEE_MAX_DEG,
    ROM_KNEE_START_DEG,
    ROM_KNEE_STEP_DEG,
    ROM_REQUIRED_CLEAN_SESSIONS,
    PhaseId,
)


@dataclass(frozen=True)
class BasePhase:
    phase_id: PhaseId
    sessions_completed: int
    target_sessions: int
    start_date: date
    cap_weeks: int = 8
    last_session_date: date | None = None
    is_soft_progression: bool = False

    is_override = False


@dataclass(frozen=True)
class OverridePhase:
    mode: PhaseId  # DELOAD or REHAB
    reason: str
    triggered_at: date
    sessions_completed: int = 0
    target_sessions: int = 999

    is_override = True

    @property
    def phase_id(self) -> PhaseId:
        return self.mode


ActivePhase = BasePhase | OverridePhase


@dataclass(frozen=True)
class KneeRom:
    current_limit: int = ROM_KNEE_START_DEG
    max_limit: int = ROM_KNEE_MAX_DEG
    step: int = ROM_KNEE_STEP_DEG
    consecutive_clean_sessions: int = 0
    required_clean_sessions: int = ROM_REQUIRED_CLEAN_SESSIONS


@dataclass(frozen=True)
class RomProfile:
    knee_flexion: KneeRom | None = None


@dataclass(frozen=True)
class PhaseTransition:
    date: date
    from_phase: str
    to_phase: str
    reason: str
    cycle: int = 1
    sessions: int = 0
    target: int = 0


@dataclass(frozen=True)
class PhaseState:
    blueprint_id: str
    sequence: tuple[PhaseId, ...]
    base: BasePhase
    phase_index: int = 0
    cycle: int = 1
    override: OverridePhase | None = None
    spiral_bias: float = 0.0
    rom: RomProfile = field(default_factory=RomProfile)
    history: tuple[PhaseTransition, ...] = field(default_factory=tuple)

    @property
    def active(self) -> ActivePhase:
        """The currently effective phase (override takes precedence)."""
        return self.override if self.override is not None else self.base

    @property
    def active_phase_id(self) -> PhaseId:
        return self.active.phase_id

    @property
    def is_override(self) -> bool:
        return self.override is not None
