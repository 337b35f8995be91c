"""Clinical admissibility gates.

Each gate encapsulates one family of contraindications and reports a fixed
``RejectionReason``. Gates are pure: they read the exercise and the clinical
context and never mutate either. The safety filter runs them in order and
stops at the first violation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from rehab_engine.models.enums import (
    EQUIPMENT_IGNORABLE,
    KNEE_FLEXION_CKC_MODERATE,
    KNEE_FLEXION_CKC_SEVERE,
    KNEE_FLEXION_OKC,
    KNEE_LOAD_EXCLUDED_DIAGNOSES,
    KNOWN_POSITIONS,
    SEVERE_DIFFICULTY_CAP,
    SPINE_LOAD_EXCLUDED_DIAGNOSES,
    THERAPEUTIC_CATEGORIES,
    LoadLevel,
    RejectionReason,
    TolerancePattern,
)
from rehab_engine.models.exercise import ExerciseRecord
from rehab_engine.models.user import ClinicalContext

KNEELING_POSITIONS = frozenset({"kneeling", "quadruped", "half_kneeling"})
ROTATIONAL_PLANES = frozenset({"rotation", "transverse"})
FOOT_INJURY_POSITIONS = frozenset({"standing", "lunge", "squat", "half_kneeling"})
KNEE_LOAD_RESTRICTED_DIAGNOSES = frozenset({"chondromalacia", "runners_knee"})
KNEE_PAIN_FILTERS = frozenset({"knee", "knee_anterior", "patella"})
CONTROLLED_OVERHEAD_PLANES = frozenset({"sagittal", "multi"})
HIGH_IMPACT_MIN_DIFFICULTY = 3
SEVERE_MAX_METABOLIC = 4
_FAST_TEMPO_MARKERS = ("fast", "dynamic", "dynamicznie", "explosive")


class ClinicalGate(ABC):
    """Base class for a single admissibility check.

    Subclasses must define:
        gate_id: unique identifier (e.g. "physical_restriction")
        reason: RejectionReason reported when the gate trips
        violates(): the gate's decision logic

    ``skip_option`` names the ``check_exercise_availability`` keyword that
    disables the gate; ``strict_only`` gates run only under strict severity.
    """

    gate_id: str
    reason: RejectionReason
    skip_option: str | None = None
    strict_only: bool = False

    @abstractmethod
    def violates(self, exercise: ExerciseRecord, ctx: ClinicalContext) -> bool:
        """Return True if *exercise* must be rejected for this user."""
        ...


# ---------------------------------------------------------------------------
# Helpers (exposed for direct testing)
# ---------------------------------------------------------------------------


def check_equipment(exercise: ExerciseRecord, owned: frozenset[str] | set[str]) -> bool:
    """Return True if the user owns everything the exercise needs.

    Bodyweight/"none" synonyms are dropped; a list made only of them needs
    nothing. Remaining items are matched case-insensitively by containment
    in either direction, so "hantle" satisfies "Hantle 2kg" and vice versa.
    """
    required = [e.strip().lower() for e in exercise.equipment]
    required = [r for r in required if r not in EQUIPMENT_IGNORABLE]
    if not required:
        return True
    owned_items = [o.strip().lower() for o in owned if o and o.strip()]
    if not owned_items:
        return False
    return all(any(req in own or own in req for own in owned_items) for req in required)


def violates_high_impact_context(exercise: ExerciseRecord) -> bool:
    """High impact is admissible only as a hard, standing, foot-loading drill."""
    if exercise.impact_level is not LoadLevel.HIGH:
        return False
    return not (
        exercise.difficulty_level >= HIGH_IMPACT_MIN_DIFFICULTY
        and exercise.is_foot_loading
        and exercise.position == "standing"
    )


def knee_flexion_limit(exercise: ExerciseRecord, ctx: ClinicalContext) -> int:
    """Closed-chain (foot-loading) work gets the tighter limit."""
    if exercise.is_foot_loading:
        return KNEE_FLEXION_CKC_SEVERE if ctx.is_severe else KNEE_FLEXION_CKC_MODERATE
    return KNEE_FLEXION_OKC


def is_controlled_tempo(tempo: str) -> bool:
    text = (tempo or "").lower()
    return bool(text) and not any(m in text for m in _FAST_TEMPO_MARKERS)


# ---------------------------------------------------------------------------
# Gates, in evaluation order
# ---------------------------------------------------------------------------


class BlacklistGate(ClinicalGate):
    gate_id = "blacklist"
    reason = RejectionReason.BLACKLISTED

    def violates(self, exercise: ExerciseRecord, ctx: ClinicalContext) -> bool:
        return exercise.id in ctx.blocked_ids


class EquipmentGate(ClinicalGate):
    gate_id = "equipment"
    reason = RejectionReason.MISSING_EQUIPMENT
    skip_option = "ignore_equipment"

    def violates(self, exercise: ExerciseRecord, ctx: ClinicalContext) -> bool:
        return not check_equipment(exercise, ctx.equipment)


class DifficultyCapGate(ClinicalGate):
    gate_id = "difficulty_cap"
    reason = RejectionReason.TOO_HARD
    skip_option = "ignore_difficulty"

    def violates(self, exercise: ExerciseRecord, ctx: ClinicalContext) -> bool:
        return bool(ctx.difficulty_cap) and exercise.difficulty_level > ctx.difficulty_cap


class PhysicalRestrictionGate(ClinicalGate):
    """User-declared restrictions (no kneeling, foot injury, ...)."""

    gate_id = "physical_restriction"
    reason = RejectionReason.PHYSICAL_RESTRICTION

    def violates(self, exercise: ExerciseRecord, ctx: ClinicalContext) -> bool:
        restrictions = ctx.restrictions
        pos = exercise.position
        plane = exercise.primary_plane or "multi"

        if "no_kneeling" in restrictions and pos in KNEELING_POSITIONS:
            return True
        if "no_twisting" in restrictions and plane in ROTATIONAL_PLANES:
            return True
        if "no_floor_sitting" in restrictions and pos == "sitting":
            return True
        if pos in KNOWN_POSITIONS and f"no_{pos}" in restrictions:
            return True

        if exercise.impact_level is LoadLevel.HIGH:
            if "no_high_impact" in restrictions:
                return True
            if violates_high_impact_context(exercise):
                return True

        if "foot_injury" in restrictions:
            if exercise.is_foot_loading:
                return True
            if exercise.impact_level in (LoadLevel.MEDIUM, LoadLevel.HIGH):
                return True
            if pos in FOOT_INJURY_POSITIONS:
                return True

        if exercise.knee_load_level is LoadLevel.HIGH:
            if ctx.has_knee_pain:
                return True
            if ctx.diagnoses & KNEE_LOAD_RESTRICTED_DIAGNOSES:
                return True
            if "no_deep_squat" in restrictions:
                return True
        return False


class DiagnosisGate(ClinicalGate):
    """Hard contraindications derived from medical diagnoses and pain sites."""

    gate_id = "diagnosis"
    reason = RejectionReason.DIAGNOSIS_CONTRAINDICATION

    def violates(self, exercise: ExerciseRecord, ctx: ClinicalContext) -> bool:
        diagnoses = ctx.diagnoses
        knee_diagnosis = bool(diagnoses & KNEE_LOAD_EXCLUDED_DIAGNOSES)

        if exercise.knee_load_level is LoadLevel.HIGH and knee_diagnosis:
            return True
        if exercise.spine_load_level is LoadLevel.HIGH and diagnoses & SPINE_LOAD_EXCLUDED_DIAGNOSES:
            return True
        if exercise.impact_level is LoadLevel.HIGH and "disc_herniation" in diagnoses:
            return True

        if (knee_diagnosis or ctx.pain_filters & KNEE_PAIN_FILTERS) and exercise.knee_flexion_applies:
            if exercise.knee_flexion_max_deg is None:
                return True
            if exercise.knee_flexion_max_deg > knee_flexion_limit(exercise, ctx):
                return True

        if ctx.has_neck_or_shoulder_pain and ctx.is_severe and exercise.overhead_required:
            return not self._is_safe_overhead(exercise)
        return False

    @staticmethod
    def _is_safe_overhead(exercise: ExerciseRecord) -> bool:
        if exercise.shoulder_load_level is LoadLevel.HIGH:
            return False
        return (
            exercise.category_id.lower() in ("scapular_stability", "scapularstability")
            and exercise.difficulty_level <= SEVERE_DIFFICULTY_CAP
            and exercise.primary_plane in CONTROLLED_OVERHEAD_PLANES
        )


class TolerancePatternGate(ClinicalGate):
    """Directional intolerance: block loaded flexion or extension."""

    gate_id = "tolerance_pattern"
    reason = RejectionReason.BIOMECHANICS_MISMATCH

    def violates(self, exercise: ExerciseRecord, ctx: ClinicalContext) -> bool:
        plane = exercise.primary_plane or "multi"
        tags = exercise.tolerance_tags
        if ctx.tolerance_pattern is TolerancePattern.FLEXION_INTOLERANT:
            if plane == "flexion" and "ok_for_flexion_intolerant" not in tags:
                return True
            return exercise.spine_motion_profile == "lumbar_flexion_loaded"
        if ctx.tolerance_pattern is TolerancePattern.EXTENSION_INTOLERANT:
            if plane == "extension" and "ok_for_extension_intolerant" not in tags:
                return True
            return exercise.spine_motion_profile == "lumbar_extension_loaded"
        return False


class SeverityGate(ClinicalGate):
    """Extra protection for users whose severity score marks them as severe."""

    gate_id = "severity"
    reason = RejectionReason.SEVERITY_FILTER
    strict_only = True

    def violates(self, exercise: ExerciseRecord, ctx: ClinicalContext) -> bool:
        if not ctx.is_severe:
            return False
        if exercise.spine_load_level is LoadLevel.HIGH:
            return True
        if ctx.has_knee_pain and exercise.knee_load_level is LoadLevel.HIGH:
            return True
        if not set(exercise.pain_relief_zones) & ctx.pain_zones:
            return True

        therapeutic_level_three = (
            exercise.difficulty_level == SEVERE_DIFFICULTY_CAP + 1
            and exercise.category_id.lower() in THERAPEUTIC_CATEGORIES
            and is_controlled_tempo(exercise.default_tempo)
        )
        if exercise.difficulty_level > SEVERE_DIFFICULTY_CAP and not therapeutic_level_three:
            return True
        return exercise.metabolic_intensity >= SEVERE_MAX_METABOLIC


DEFAULT_GATES: tuple[ClinicalGate, ...] = (
    BlacklistGate(),
    EquipmentGate(),
    DifficultyCapGate(),
    PhysicalRestrictionGate(),
    DiagnosisGate(),
    TolerancePatternGate(),
    SeverityGate(),
)
