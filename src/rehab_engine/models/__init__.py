"""Data models for the plan engine."""

from rehab_engine.models.enums import (
    ConditioningStyle,
    ExperienceTier,
    FatigueState,
    LoadLevel,
    PainStatus,
    PhaseId,
    RejectionReason,
    RpeTrendLabel,
    Section,
    TolerancePattern,
)
from rehab_engine.models.exercise import ExerciseRecord, IntervalSpec, Timing
from rehab_engine.models.phase_state import (
    BasePhase,
    OverridePhase,
    PhaseState,
    PhaseTransition,
    RomProfile,
)
from rehab_engine.models.plan import PrescribedExercise, RestDay, Session, WeeklyPlan
from rehab_engine.models.readiness import FatigueProfile, PainResponse, RpeTrend
from rehab_engine.models.session import SessionFeedback, SessionLogEntry, SessionRecord
from rehab_engine.models.user import ClinicalContext, UserProfile

__all__ = [
    "BasePhase",
    "ClinicalContext",
    "ConditioningStyle",
    "ExerciseRecord",
    "ExperienceTier",
    "FatigueProfile",
    "FatigueState",
    "IntervalSpec",
    "LoadLevel",
    "OverridePhase",
    "PainResponse",
    "PainStatus",
    "PhaseId",
    "PhaseState",
    "PhaseTransition",
    "PrescribedExercise",
    "RejectionReason",
    "RestDay",
    "RomProfile",
    "RpeTrend",
    "RpeTrendLabel",
    "Section",
    "Session",
    "SessionFeedback",
    "SessionLogEntry",
    "SessionRecord",
    "Timing",
    "TolerancePattern",
    "UserProfile",
    "WeeklyPlan",
]
