"""Tests for catalog normalization, structural validation and category families."""

from __future__ import annotations

import logging

import pytest

from rehab_engine.catalog.categories import (
    is_breathing,
    is_conditioning,
    is_core,
    is_lower_limb,
    is_mobility,
    is_relaxation,
)
from rehab_engine.catalog.normalizer import (
    normalize_catalog,
    normalize_exercise_row,
    validate_exercise_row,
)
from rehab_engine.exceptions import CatalogValidationError
from rehab_engine.models.enums import CatalogError, ConditioningStyle, LoadLevel


def _valid_row(**overrides) -> dict:
    row = {"id": "bird_dog", "impact_level": "low", "position": "quadruped", "is_foot_loading": False}
    row.update(overrides)
    return row


class TestStructuralValidation:
    @pytest.mark.parametrize(
        "overrides, code",
        [
            ({"id": ""}, CatalogError.MISSING_ID),
            ({"impact_level": None}, CatalogError.MISSING_IMPACT_LEVEL),
            ({"impact_level": "extreme"}, CatalogError.MISSING_IMPACT_LEVEL),
            ({"position": "  "}, CatalogError.MISSING_POSITION),
            ({"is_foot_loading": None}, CatalogError.MISSING_FOOT_LOADING),
        ],
    )
    def test_missing_required_field(self, overrides: dict, code: CatalogError) -> None:
        with pytest.raises(CatalogValidationError) as excinfo:
            validate_exercise_row(_valid_row(**overrides))
        assert excinfo.value.code is code

    def test_high_impact_requires_standing_foot_loading(self) -> None:
        with pytest.raises(CatalogValidationError) as excinfo:
            validate_exercise_row(_valid_row(impact_level="high"))
        assert excinfo.value.code is CatalogError.INCONSISTENT_IMPACT_PROFILE
        assert excinfo.value.exercise_id == "bird_dog"

    def test_high_impact_standing_is_valid(self) -> None:
        validate_exercise_row(_valid_row(impact_level="HIGH", position="standing", is_foot_loading=True))

    def test_interval_without_object_rejected(self) -> None:
        with pytest.raises(CatalogValidationError) as excinfo:
            validate_exercise_row(_valid_row(conditioning_style="interval"))
        assert excinfo.value.code is CatalogError.INVALID_INTERVAL_OBJECT

    @pytest.mark.parametrize(
        "interval, code",
        [
            ({"work": 0, "rest": 10}, CatalogError.INVALID_INTERVAL_WORK),
            ({"work": "30", "rest": 10}, CatalogError.INVALID_INTERVAL_WORK),
            ({"work": 30, "rest": -1}, CatalogError.INVALID_INTERVAL_REST),
            ({"work": 30, "rest": True}, CatalogError.INVALID_INTERVAL_REST),
        ],
    )
    def test_interval_values_checked(self, interval: dict, code: CatalogError) -> None:
        row = _valid_row(conditioning_style="interval", recommended_interval_sec=interval)
        with pytest.raises(CatalogValidationError) as excinfo:
            validate_exercise_row(row)
        assert excinfo.value.code is code


class TestNormalizeRow:
    def test_defaults_and_lowercasing(self) -> None:
        ex = normalize_exercise_row(_valid_row(position="Quadruped", equipment="Mat, Band"))
        assert ex.name == "bird_dog"
        assert ex.category_id == "uncategorized"
        assert ex.position == "quadruped"
        assert ex.equipment == ("mat", "band")
        assert ex.difficulty_level == 1
        assert ex.spine_load_level is LoadLevel.LOW

    def test_difficulty_and_metabolic_clamped(self) -> None:
        ex = normalize_exercise_row(_valid_row(difficulty_level=9, metabolic_intensity=-2))
        assert ex.difficulty_level == 5
        assert ex.metabolic_intensity == 1

    def test_steady_alias(self) -> None:
        ex = normalize_exercise_row(_valid_row(conditioning_style="steady"))
        assert ex.conditioning_style is ConditioningStyle.STEADY_STATE

    def test_unknown_conditioning_style_is_none(self) -> None:
        ex = normalize_exercise_row(_valid_row(conditioning_style="tabata"))
        assert ex.conditioning_style is ConditioningStyle.NONE

    def test_interval_spec_parsed(self) -> None:
        ex = normalize_exercise_row(
            _valid_row(conditioning_style="interval", recommended_interval_sec={"work": 40, "rest": 20})
        )
        assert ex.interval is not None
        assert ex.interval.cycle_sec == 60
        assert ex.timing.rest_sec == 20

    def test_knee_flexion_degrees_apply(self) -> None:
        ex = normalize_exercise_row(_valid_row(knee_flexion_max_deg="90"))
        assert ex.knee_flexion_max_deg == 90
        assert ex.knee_flexion_applies is True

    def test_out_of_range_knee_degrees_ignored(self) -> None:
        ex = normalize_exercise_row(_valid_row(knee_flexion_max_deg=200))
        assert ex.knee_flexion_max_deg is None
        assert ex.knee_flexion_applies is False

    def test_foot_loading_implies_knee_flexion(self) -> None:
        ex = normalize_exercise_row(_valid_row(position="standing", is_foot_loading=True))
        assert ex.knee_flexion_max_deg is None
        assert ex.knee_flexion_applies is True

    def test_knee_load_none_does_not_apply(self) -> None:
        ex = normalize_exercise_row(_valid_row(knee_load_level="none"))
        assert ex.knee_flexion_applies is False

    def test_unknown_spine_profile_is_neutral(self) -> None:
        ex = normalize_exercise_row(_valid_row(spine_motion_profile="wobbly"))
        assert ex.spine_motion_profile == "neutral"

    def test_overhead_requires_literal_true(self) -> None:
        assert normalize_exercise_row(_valid_row(overhead_required="yes")).overhead_required is False
        assert normalize_exercise_row(_valid_row(overhead_required=True)).overhead_required is True

    def test_family_key(self) -> None:
        ex = normalize_exercise_row(
            _valid_row(category_id="core_stability", primary_plane="Sagittal", is_unilateral=True)
        )
        assert ex.family_key == "core_stability|sagittal|quadruped|uni"


class TestNormalizeCatalog:
    def test_fixture_catalog_fully_accepted(self, catalog_rows: list[dict]) -> None:
        assert len(normalize_catalog(catalog_rows)) == len(catalog_rows)

    def test_invalid_rows_dropped_and_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        rows = [_valid_row(), _valid_row(id="bad", position=None), _valid_row(id="dead_bug")]
        with caplog.at_level(logging.WARNING, logger="rehab_engine.catalog.normalizer"):
            records = normalize_catalog(rows)
        assert [r.id for r in records] == ["bird_dog", "dead_bug"]
        assert "missing_position" in caplog.text


class TestCategoryFamilies:
    def test_breathing_and_relaxation(self) -> None:
        assert is_breathing("breathing_control")
        assert is_relaxation("muscle_relaxation")
        assert not is_breathing("core_stability")

    def test_mobility(self) -> None:
        assert is_mobility("hip_flexor_stretch")
        assert is_mobility("spine_mobility")

    def test_conditioning(self) -> None:
        assert is_conditioning("cardio_conditioning")
        assert not is_conditioning("knee_stability")

    def test_core(self) -> None:
        assert is_core("core_anti_extension")
        assert is_core("core")
        assert not is_core("scapular_stability")

    def test_lower_limb(self) -> None:
        assert is_lower_limb("vmo_activation")
        assert is_lower_limb("glute_activation")
        assert not is_lower_limb("thoracic_mobility")
