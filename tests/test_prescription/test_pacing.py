"""Tests for the pacing engine's base rest and transition timing."""

from __future__ import annotations

import pytest

from rehab_engine.models.enums import ExperienceTier
from rehab_engine.prescription.pacing import base_rest_seconds, calculate_timing, transition_seconds


class TestBaseRest:
    @pytest.mark.parametrize(
        "category, difficulty, rest",
        [
            ("nerve_flossing", 1, 35),
            ("hip_flexor_stretch", 1, 20),
            ("cardio_conditioning", 4, 20),
            ("squat_strength", 2, 60),
            ("core_stability", 4, 60),
            ("core_anti_extension", 2, 45),
            ("breathing", 1, 15),
            ("glute_activation", 2, 30),
        ],
    )
    def test_category_table(self, category: str, difficulty: int, rest: int) -> None:
        assert base_rest_seconds(category, difficulty) == rest


class TestTransition:
    def test_bilateral(self) -> None:
        assert transition_seconds(False) == 5
        assert transition_seconds(False, ExperienceTier.NONE) == 5

    def test_unilateral_default(self) -> None:
        assert transition_seconds(True) == 12

    @pytest.mark.parametrize(
        "tier, seconds",
        [(ExperienceTier.NONE, 15), (ExperienceTier.REGULAR, 12), (ExperienceTier.ADVANCED, 8)],
    )
    def test_unilateral_by_experience(self, tier: ExperienceTier, seconds: int) -> None:
        assert transition_seconds(True, tier) == seconds


class TestCalculateTiming:
    def test_high_metabolic_extra_rest(self, make_exercise) -> None:
        ex = make_exercise(category_id="glute_activation", metabolic_intensity=4)
        assert calculate_timing(ex).rest_sec == 45

    def test_conditioning_styles(self, make_exercise) -> None:
        steady = make_exercise(category_id="cardio_conditioning", conditioning_style="steady")
        amrap = make_exercise(category_id="cardio_conditioning", conditioning_style="amrap")
        assert calculate_timing(steady).rest_sec == 60
        assert calculate_timing(amrap).rest_sec == 90

    def test_normalizer_attaches_timing(self, catalog) -> None:
        by_id = {ex.id: ex for ex in catalog}
        assert by_id["jumping_jacks"].timing.rest_sec == 30
        assert by_id["half_kneeling_hip_flexor_stretch"].timing.transition_sec == 12
        assert by_id["diaphragmatic_breathing"].timing.rest_sec == 15
