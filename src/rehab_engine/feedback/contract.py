"""Structured pain-monitoring feedback contract (schema version 1).

Payload shape::

    {
        "type": "pain_monitoring",
        "schema_version": 1,
        "during": {"max_nprs": 0-10, "locations": [...]},
        "after24h": {                        # optional until patched
            "max_nprs": 0-10,
            "delta_vs_baseline": -10..10,
            "stiffness_increased": bool, "swelling": bool,
            "night_pain": bool, "neuro_red_flags": bool,
        },
        "note": "<= 200 chars",
    }
"""

from __future__ import annotations

from typing import Any, Mapping

from rehab_engine.exceptions import FeedbackValidationError
from rehab_engine.models.enums import PAIN_MONITORING_SCHEMA_VERSION, PAIN_NOTE_MAX_CHARS

PAIN_MONITORING_TYPE = "pain_monitoring"
SAFETY_FLAGS = ("stiffness_increased", "swelling", "night_pain", "neuro_red_flags")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_nprs(value: Any, field_name: str) -> None:
    if not _is_number(value) or not 0 <= value <= 10:
        raise FeedbackValidationError(f"Invalid {field_name} (0-10)")


def validate_pain_monitoring(feedback: Mapping[str, Any] | None) -> bool:
    """Validate a feedback payload against the pain-monitoring schema.

    Returns:
        True if the payload is a valid pain-monitoring record, False if it
        is some other (legacy) feedback type that this contract does not cover.

    Raises:
        FeedbackValidationError: the payload claims to be pain monitoring
            but deviates from the schema in any way.
    """
    if not feedback or feedback.get("type") != PAIN_MONITORING_TYPE:
        return False

    if feedback.get("schema_version") != PAIN_MONITORING_SCHEMA_VERSION:
        raise FeedbackValidationError("Unsupported schema version")

    during = feedback.get("during")
    if not isinstance(during, Mapping):
        raise FeedbackValidationError('Missing "during" section')
    _check_nprs(during.get("max_nprs"), "during.max_nprs")
    locations = during.get("locations")
    if locations is not None and not isinstance(locations, (list, tuple)):
        raise FeedbackValidationError("Invalid during.locations (list expected)")

    after = feedback.get("after24h")
    if after:
        if not isinstance(after, Mapping):
            raise FeedbackValidationError('Invalid "after24h" section')
        _check_nprs(after.get("max_nprs"), "after24h.max_nprs")
        delta = after.get("delta_vs_baseline")
        if not _is_number(delta) or not -10 <= delta <= 10:
            raise FeedbackValidationError("Invalid after24h.delta_vs_baseline (-10 to 10)")
        for flag in SAFETY_FLAGS:
            if flag in after and not isinstance(after[flag], bool):
                raise FeedbackValidationError(f"Invalid type for {flag}")

    note = feedback.get("note")
    if note is not None and len(str(note)) > PAIN_NOTE_MAX_CHARS:
        raise FeedbackValidationError(f"Note too long (max {PAIN_NOTE_MAX_CHARS} chars)")
    return True
