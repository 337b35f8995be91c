"""Traffic-light pain response classifier.

Reference:
    Silbernagel et al. (2007). Continued sports activity, using a
    pain-monitoring model, during rehabilitation in patients with Achilles
    tendinopathy. Am J Sports Med 35(6).
"""

from __future__ import annotations

import logging
from typing import Iterable

from rehab_engine.exceptions import FeedbackValidationError
from rehab_engine.feedback.contract import validate_pain_monitoring
from rehab_engine.models.enums import (
    PAIN_DELTA_AMBER_MAX,
    PAIN_DELTA_GREEN_MAX,
    PAIN_DURING_AMBER_MAX,
    PAIN_DURING_GREEN_MAX,
    PAIN_MODIFIERS,
    RED_REQUIRES_CONSECUTIVE_SESSIONS,
    PainStatus,
)
from rehab_engine.models.readiness import PainResponse
from rehab_engine.models.session import SessionRecord

logger = logging.getLogger(__name__)

LEGACY_WINDOW = 3
# Legacy ternary symptom rating -> approximate NPRS during the session
LEGACY_SYMPTOM_TO_NPRS = {-1: 7, 0: 3, 1: 1}


def classify_pain(
    during_max: float,
    delta_24h: float = 0.0,
    neuro_red_flags: bool = False,
    night_pain: bool = False,
    stiffness_increased: bool = False,
) -> tuple[PainStatus, str]:
    """Classify structured NPRS values into green / amber / red.

    Boundaries are inclusive on the lower status: NPRS 5 is still green and
    NPRS 7 still amber.
    """
    if during_max > PAIN_DURING_AMBER_MAX or delta_24h > PAIN_DELTA_AMBER_MAX or neuro_red_flags:
        return PainStatus.RED, "neuro_flags_detected" if neuro_red_flags else "high_pain_metrics"
    if (
        during_max > PAIN_DURING_GREEN_MAX
        or delta_24h > PAIN_DELTA_GREEN_MAX
        or night_pain
        or stiffness_increased
    ):
        return PainStatus.AMBER, "moderate_symptoms"
    return PainStatus.GREEN, "ok"


def _response(status: PainStatus, reason: str, **values) -> PainResponse:
    return PainResponse(status=status, modifier=PAIN_MODIFIERS[status], reason=reason, **values)


def analyze_pain_response(recent_sessions: Iterable[SessionRecord]) -> PainResponse:
    """Classify the pain response of the most recent session.

    Structured ``pain_monitoring`` feedback is classified directly. Older
    sessions with a ternary symptom rating go through the legacy path, where
    two or more symptom negatives among the last three sessions mean red.
    """
    recent = sorted(recent_sessions, key=lambda s: s.completed_at, reverse=True)
    if not recent:
        return PainResponse()

    feedback = recent[0].feedback
    raw = feedback.raw if feedback is not None else None
    try:
        is_structured = validate_pain_monitoring(raw)
    except FeedbackValidationError as exc:
        # Unverifiable pain data counts as amber
        logger.warning("Invalid pain-monitoring feedback: %s", exc)
        return _response(PainStatus.AMBER, "invalid_pain_monitoring")

    if is_structured:
        during_max = float(raw["during"]["max_nprs"])
        after = raw.get("after24h") or {}
        delta = float(after.get("delta_vs_baseline", 0) or 0)
        status, reason = classify_pain(
            during_max,
            delta,
            neuro_red_flags=after.get("neuro_red_flags") is True,
            night_pain=after.get("night_pain") is True,
            stiffness_increased=after.get("stiffness_increased") is True,
        )
        return _response(status, reason, during_max=during_max, delta_24h=delta)

    during = 0.0
    if feedback is not None and feedback.is_symptom:
        during = float(LEGACY_SYMPTOM_TO_NPRS.get(feedback.value, 0))
    negatives = sum(
        1
        for s in recent[:LEGACY_WINDOW]
        if s.feedback is not None and s.feedback.type == "symptom" and s.feedback.value == -1
    )

    if during >= PAIN_DURING_AMBER_MAX or negatives >= RED_REQUIRES_CONSECUTIVE_SESSIONS:
        reason = "high_pain_intensity_legacy" if during >= PAIN_DURING_AMBER_MAX else "persistent_symptoms_legacy"
        status = PainStatus.RED
    elif during > PAIN_DURING_GREEN_MAX or negatives == 1:
        status, reason = PainStatus.AMBER, "moderate_pain_warning_legacy"
    else:
        status, reason = PainStatus.GREEN, "ok"
    return _response(status, reason, during_max=during, consecutive_symptom_negatives=negatives)
