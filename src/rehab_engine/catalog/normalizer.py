"""Exercise catalog normalizer.

Turns raw catalog rows (mappings as they come from storage) into validated
``ExerciseRecord`` objects. Structural problems are never papered over with
defaults: the row is rejected with a ``CatalogError`` code.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Iterable, Mapping

from rehab_engine.exceptions import CatalogValidationError
from rehab_engine.models.enums import (
    KNEE_FLEXION_MAX_DEG,
    SPINE_MOTION_PROFILES,
    CatalogError,
    ConditioningStyle,
    LoadLevel,
)
from rehab_engine.models.exercise import ExerciseRecord, IntervalSpec
from rehab_engine.models.user import normalize_string_list
from rehab_engine.prescription.pacing import calculate_timing

logger = logging.getLogger(__name__)

_CONDITIONING_ALIASES = {"steady": ConditioningStyle.STEADY_STATE}


def _clamp_int(value: Any, low: int, high: int, fallback: int) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        number = fallback
    return max(low, min(high, number))


def _non_negative_int(value: Any) -> int:
    try:
        return max(0, int(float(value)))
    except (TypeError, ValueError):
        return 0


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_conditioning_style(value: Any) -> ConditioningStyle:
    text = str(value or "none").strip().lower()
    if text in _CONDITIONING_ALIASES:
        return _CONDITIONING_ALIASES[text]
    try:
        return ConditioningStyle(text)
    except ValueError:
        return ConditioningStyle.NONE


def _parse_interval(raw: Any, exercise_id: str) -> IntervalSpec:
    if not isinstance(raw, Mapping):
        raise CatalogValidationError(CatalogError.INVALID_INTERVAL_OBJECT, exercise_id)
    work, rest = raw.get("work"), raw.get("rest")
    if not _is_number(work) or work <= 0:
        raise CatalogValidationError(CatalogError.INVALID_INTERVAL_WORK, exercise_id)
    if not _is_number(rest) or rest < 0:
        raise CatalogValidationError(CatalogError.INVALID_INTERVAL_REST, exercise_id)
    return IntervalSpec(work_sec=float(work), rest_sec=float(rest))


def validate_exercise_row(row: Mapping[str, Any]) -> None:
    """Raise ``CatalogValidationError`` if *row* is structurally invalid."""
    exercise_id = str(row.get("id") or "").strip()
    if not exercise_id:
        raise CatalogValidationError(CatalogError.MISSING_ID)
    impact = LoadLevel.parse(row.get("impact_level"))
    if impact is None:
        raise CatalogValidationError(CatalogError.MISSING_IMPACT_LEVEL, exercise_id)
    position = str(row.get("position") or "").strip().lower()
    if not position:
        raise CatalogValidationError(CatalogError.MISSING_POSITION, exercise_id)
    foot_loading = row.get("is_foot_loading")
    if foot_loading is None:
        raise CatalogValidationError(CatalogError.MISSING_FOOT_LOADING, exercise_id)
    # High impact only makes sense on the feet, standing
    if impact is LoadLevel.HIGH and (not bool(foot_loading) or position != "standing"):
        raise CatalogValidationError(CatalogError.INCONSISTENT_IMPACT_PROFILE, exercise_id)
    if _parse_conditioning_style(row.get("conditioning_style")) is ConditioningStyle.INTERVAL:
        _parse_interval(row.get("recommended_interval_sec"), exercise_id)


def normalize_exercise_row(row: Mapping[str, Any]) -> ExerciseRecord:
    """Validate and normalize one raw catalog row.

    Raises:
        CatalogValidationError: the row is structurally invalid.
    """
    validate_exercise_row(row)

    exercise_id = str(row["id"]).strip()
    style = _parse_conditioning_style(row.get("conditioning_style"))
    interval = None
    if style is ConditioningStyle.INTERVAL:
        interval = _parse_interval(row.get("recommended_interval_sec"), exercise_id)

    is_foot_loading = bool(row.get("is_foot_loading"))
    raw_knee_load = LoadLevel.parse(row.get("knee_load_level"))

    knee_deg: int | None = None
    knee_applies = False
    raw_deg = row.get("knee_flexion_max_deg")
    if raw_deg is not None:
        try:
            parsed = int(float(raw_deg))
        except (TypeError, ValueError):
            parsed = -1
        if 0 <= parsed <= KNEE_FLEXION_MAX_DEG:
            knee_deg = parsed
            knee_applies = True
    elif (raw_knee_load not in (None, LoadLevel.NONE)) or is_foot_loading:
        knee_applies = True

    spine_profile = str(row.get("spine_motion_profile") or "neutral").lower()
    if spine_profile not in SPINE_MOTION_PROFILES:
        spine_profile = "neutral"

    record = ExerciseRecord(
        id=exercise_id,
        name=str(row.get("name") or exercise_id),
        category_id=str(row.get("category_id") or "uncategorized"),
        position=str(row["position"]).strip().lower(),
        impact_level=LoadLevel.parse(row.get("impact_level")),
        is_foot_loading=is_foot_loading,
        difficulty_level=_clamp_int(row.get("difficulty_level"), 1, 5, 1),
        primary_plane=str(row.get("primary_plane") or "multi").lower(),
        is_unilateral=bool(row.get("is_unilateral")),
        equipment=tuple(e.lower() for e in normalize_string_list(row.get("equipment"))),
        knee_load_level=raw_knee_load if raw_knee_load is not None else LoadLevel.LOW,
        spine_load_level=LoadLevel.parse(row.get("spine_load_level"), LoadLevel.LOW),
        metabolic_intensity=_clamp_int(row.get("metabolic_intensity"), 1, 5, 1),
        pain_relief_zones=tuple(z.lower() for z in normalize_string_list(row.get("pain_relief_zones"))),
        tolerance_tags=tuple(t.lower() for t in normalize_string_list(row.get("tolerance_tags"))),
        conditioning_style=style,
        interval=interval,
        max_recommended_reps=_non_negative_int(row.get("max_recommended_reps")),
        max_recommended_duration=_non_negative_int(row.get("max_recommended_duration")),
        knee_flexion_max_deg=knee_deg,
        knee_flexion_applies=knee_applies,
        spine_motion_profile=spine_profile,
        overhead_required=row.get("overhead_required") is True,
        shoulder_load_level=LoadLevel.parse(row.get("shoulder_load_level"), LoadLevel.LOW),
        intended_pain_response=str(row.get("intended_pain_response") or "painfree").lower(),
        default_tempo=str(row.get("default_tempo") or ""),
    )
    return dataclasses.replace(record, timing=calculate_timing(record))


def normalize_catalog(rows: Iterable[Mapping[str, Any]]) -> list[ExerciseRecord]:
    """Normalize a catalog, dropping (and logging) every rejected row."""
    records: list[ExerciseRecord] = []
    rejected = 0
    for row in rows:
        try:
            records.append(normalize_exercise_row(row))
        except CatalogValidationError as exc:
            rejected += 1
            logger.warning("Rejected catalog row %s: %s", exc.exercise_id, exc.code.value)
    if rejected:
        logger.info("Catalog normalized: %d accepted, %d rejected", len(records), rejected)
    return records
