"""Build the per-request clinical context from the user's intake profile."""

from __future__ import annotations

from typing import Iterable

from rehab_engine.clinical.taxonomy import derive_pain_filters, derive_pain_zone_set
from rehab_engine.models.enums import (
    DEFAULT_DIFFICULTY_CAP,
    DIFFICULTY_CAP_BY_EXPERIENCE,
    SEVERE_DIFFICULTY_CAP,
    SEVERE_THRESHOLD,
    SEVERITY_SHARP_MULTIPLIER,
    SHARP_DIFFICULTY_CAP,
    SHARP_MODERATE_THRESHOLD,
    TolerancePattern,
)
from rehab_engine.models.user import ClinicalContext, UserProfile


def detect_tolerance_pattern(
    triggers: Iterable[str], reliefs: Iterable[str]
) -> TolerancePattern:
    """Classify directional spine tolerance (McKenzie directional preference)."""
    triggers = set(triggers)
    reliefs = set(reliefs)
    if "bending_forward" in triggers or "bending_backward" in reliefs:
        return TolerancePattern.FLEXION_INTOLERANT
    if "bending_backward" in triggers or "bending_forward" in reliefs:
        return TolerancePattern.EXTENSION_INTOLERANT
    return TolerancePattern.NEUTRAL


def calculate_severity(profile: UserProfile) -> float:
    """Severity = mean(pain NPRS, daily impact), ×1.2 for sharp-type pain."""
    score = (profile.pain_intensity + profile.daily_impact) / 2
    if profile.is_sharp_pain:
        score *= SEVERITY_SHARP_MULTIPLIER
    return score


def build_user_context(
    profile: UserProfile, blocked_ids: Iterable[str] = ()
) -> ClinicalContext:
    """Derive the clinical context used by every safety gate.

    Args:
        profile: Normalized intake profile.
        blocked_ids: Exercise ids the user has blacklisted.

    Returns:
        A fresh ClinicalContext; nothing here is cached between requests.
    """
    severity = calculate_severity(profile)
    is_severe = severity >= SEVERE_THRESHOLD

    cap = DIFFICULTY_CAP_BY_EXPERIENCE.get(profile.experience, DEFAULT_DIFFICULTY_CAP)
    if is_severe:
        cap = min(cap, SEVERE_DIFFICULTY_CAP)
    elif profile.is_sharp_pain and severity >= SHARP_MODERATE_THRESHOLD:
        cap = min(cap, SHARP_DIFFICULTY_CAP)

    return ClinicalContext(
        tolerance_pattern=detect_tolerance_pattern(
            profile.trigger_movements, profile.relief_movements
        ),
        severity_score=severity,
        is_severe=is_severe,
        difficulty_cap=cap,
        pain_filters=derive_pain_filters(profile.pain_locations),
        pain_zones=derive_pain_zone_set(profile.pain_locations),
        equipment=frozenset(e.strip().lower() for e in profile.equipment_available if e.strip()),
        restrictions=frozenset(profile.physical_restrictions),
        diagnoses=frozenset(profile.medical_diagnosis),
        blocked_ids=frozenset(str(b) for b in blocked_ids),
    )
