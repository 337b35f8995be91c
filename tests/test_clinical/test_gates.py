"""Tests for the individual clinical admissibility gates."""

from __future__ import annotations

import dataclasses

from rehab_engine.clinical.context import build_user_context
from rehab_engine.clinical.gates import (
    BlacklistGate,
    DiagnosisGate,
    DifficultyCapGate,
    EquipmentGate,
    PhysicalRestrictionGate,
    SeverityGate,
    TolerancePatternGate,
    check_equipment,
    is_controlled_tempo,
    knee_flexion_limit,
    violates_high_impact_context,
)
from rehab_engine.models.enums import TolerancePattern
from rehab_engine.models.user import UserProfile


def _ctx(**intake):
    return build_user_context(UserProfile.from_dict(intake))


class TestCheckEquipment:
    def test_no_equipment_needed(self, make_exercise) -> None:
        assert check_equipment(make_exercise(equipment=[]), frozenset())

    def test_bodyweight_synonym_needs_nothing(self, make_exercise) -> None:
        assert check_equipment(make_exercise(equipment=["Bodyweight", "none"]), frozenset())

    def test_synonym_does_not_excuse_real_equipment(self, make_exercise) -> None:
        ex = make_exercise(equipment=["Bodyweight", "kettlebell"])
        assert not check_equipment(ex, frozenset())
        assert check_equipment(ex, frozenset({"kettlebell"}))

    def test_owning_nothing_fails(self, make_exercise) -> None:
        assert not check_equipment(make_exercise(equipment=["band"]), frozenset())

    def test_substring_match_both_directions(self, make_exercise) -> None:
        assert check_equipment(make_exercise(equipment=["hantle 2kg"]), frozenset({"hantle"}))
        assert check_equipment(make_exercise(equipment=["band"]), frozenset({"mini band"}))

    def test_every_item_required(self, make_exercise) -> None:
        ex = make_exercise(equipment=["band", "mat"])
        assert not check_equipment(ex, frozenset({"band"}))
        assert check_equipment(ex, frozenset({"band", "mat"}))


class TestHelpers:
    def test_high_impact_context(self, make_exercise) -> None:
        easy = make_exercise(impact_level="high", position="standing", is_foot_loading=True, difficulty_level=2)
        hard = dataclasses.replace(easy, difficulty_level=3)
        assert violates_high_impact_context(easy)
        assert not violates_high_impact_context(hard)

    def test_knee_flexion_limit(self, make_exercise) -> None:
        standing = make_exercise(position="standing", is_foot_loading=True)
        lying = make_exercise()
        moderate = _ctx(pain_locations=["knee"], pain_intensity=3)
        severe = _ctx(pain_locations=["knee"], pain_intensity=8, daily_impact=8)
        assert knee_flexion_limit(standing, moderate) == 60
        assert knee_flexion_limit(standing, severe) == 45
        assert knee_flexion_limit(lying, severe) == 90

    def test_controlled_tempo(self) -> None:
        assert is_controlled_tempo("3-1-3 slow")
        assert not is_controlled_tempo("Dynamic")
        assert not is_controlled_tempo("")


class TestSimpleGates:
    def test_blacklist(self, make_exercise) -> None:
        ctx = build_user_context(UserProfile(), ["bird_dog"])
        assert BlacklistGate().violates(make_exercise("bird_dog"), ctx)
        assert not BlacklistGate().violates(make_exercise("dead_bug"), ctx)

    def test_equipment(self, make_exercise) -> None:
        ctx = _ctx(equipment_available=["mat"])
        assert EquipmentGate().violates(make_exercise(equipment=["kettlebell"]), ctx)

    def test_difficulty_cap(self, make_exercise) -> None:
        ctx = _ctx(exercise_experience="occasional")
        assert DifficultyCapGate().violates(make_exercise(difficulty_level=3), ctx)
        assert not DifficultyCapGate().violates(make_exercise(difficulty_level=2), ctx)


class TestPhysicalRestrictionGate:
    def setup_method(self) -> None:
        self.gate = PhysicalRestrictionGate()

    def test_no_kneeling(self, make_exercise) -> None:
        ctx = _ctx(physical_restrictions=["no_kneeling"])
        assert self.gate.violates(make_exercise(position="quadruped"), ctx)
        assert not self.gate.violates(make_exercise(position="supine"), ctx)

    def test_no_twisting(self, make_exercise) -> None:
        ctx = _ctx(physical_restrictions=["no_twisting"])
        assert self.gate.violates(make_exercise(primary_plane="rotation"), ctx)

    def test_generic_position_restriction(self, make_exercise) -> None:
        ctx = _ctx(physical_restrictions=["no_prone"])
        assert self.gate.violates(make_exercise(position="prone"), ctx)

    def test_foot_injury(self, make_exercise) -> None:
        ctx = _ctx(physical_restrictions=["foot_injury"])
        assert self.gate.violates(make_exercise(position="standing", is_foot_loading=True), ctx)
        assert self.gate.violates(make_exercise(impact_level="medium"), ctx)
        assert not self.gate.violates(make_exercise(position="supine"), ctx)

    def test_high_knee_load_with_deep_squat_restriction(self, make_exercise) -> None:
        ctx = _ctx(physical_restrictions=["no_deep_squat"])
        assert self.gate.violates(make_exercise(knee_load_level="high"), ctx)

    def test_high_knee_load_with_any_knee_pain(self, make_exercise) -> None:
        ctx = _ctx(pain_locations=["knee"], pain_intensity=3, daily_impact=2)
        assert not ctx.is_severe
        ex = make_exercise(knee_load_level="high", knee_flexion_max_deg=20)
        assert self.gate.violates(ex, ctx)
        assert not self.gate.violates(make_exercise(knee_load_level="low", knee_flexion_max_deg=20), ctx)

    def test_unrestricted_user_passes(self, make_exercise) -> None:
        assert not self.gate.violates(make_exercise(position="quadruped"), _ctx())


class TestDiagnosisGate:
    def setup_method(self) -> None:
        self.gate = DiagnosisGate()

    def test_high_knee_load_with_knee_diagnosis(self, make_exercise) -> None:
        ctx = _ctx(medical_diagnosis=["meniscus_tear"])
        assert self.gate.violates(make_exercise(knee_load_level="high", knee_flexion_max_deg=30), ctx)

    def test_high_spine_load_with_disc_herniation(self, make_exercise) -> None:
        ctx = _ctx(medical_diagnosis=["disc_herniation"])
        assert self.gate.violates(make_exercise(spine_load_level="high"), ctx)

    def test_knee_pain_unknown_flexion_rejected(self, make_exercise, knee_ctx) -> None:
        ex = make_exercise(position="standing", is_foot_loading=True)
        assert self.gate.violates(ex, knee_ctx)

    def test_knee_pain_closed_chain_limit(self, make_exercise, knee_ctx) -> None:
        shallow = make_exercise(position="standing", is_foot_loading=True, knee_flexion_max_deg=60)
        deep = make_exercise(position="standing", is_foot_loading=True, knee_flexion_max_deg=75)
        assert not self.gate.violates(shallow, knee_ctx)
        assert self.gate.violates(deep, knee_ctx)

    def test_knee_pain_open_chain_limit(self, make_exercise, knee_ctx) -> None:
        assert not self.gate.violates(make_exercise(knee_flexion_max_deg=90), knee_ctx)
        assert self.gate.violates(make_exercise(knee_flexion_max_deg=140), knee_ctx)

    def test_severe_neck_pain_blocks_overhead(self, make_exercise) -> None:
        ctx = _ctx(pain_locations=["neck"], pain_intensity=8, daily_impact=7)
        press = make_exercise(category_id="shoulder_press", overhead_required=True)
        scap = make_exercise(category_id="scapular_stability", overhead_required=True, difficulty_level=2)
        assert self.gate.violates(press, ctx)
        assert not self.gate.violates(scap, ctx)


class TestTolerancePatternGate:
    def setup_method(self) -> None:
        self.gate = TolerancePatternGate()

    def test_flexion_intolerant_blocks_flexion(self, make_exercise) -> None:
        ctx = _ctx(trigger_movements=["bending_forward"])
        assert ctx.tolerance_pattern is TolerancePattern.FLEXION_INTOLERANT
        assert self.gate.violates(make_exercise(primary_plane="flexion"), ctx)
        assert not self.gate.violates(
            make_exercise(primary_plane="flexion", tolerance_tags=["ok_for_flexion_intolerant"]), ctx
        )

    def test_extension_intolerant_blocks_loaded_extension(self, make_exercise) -> None:
        ctx = _ctx(trigger_movements=["bending_backward"])
        assert self.gate.violates(make_exercise(spine_motion_profile="lumbar_extension_loaded"), ctx)
        assert not self.gate.violates(make_exercise(spine_motion_profile="lumbar_flexion_loaded"), ctx)


class TestSeverityGate:
    def setup_method(self) -> None:
        self.gate = SeverityGate()

    def test_not_severe_never_violates(self, make_exercise, lumbar_ctx) -> None:
        assert not self.gate.violates(make_exercise(difficulty_level=5), lumbar_ctx)

    def test_severe_requires_matching_relief_zone(self, make_exercise, severe_profile) -> None:
        ctx = build_user_context(severe_profile)
        assert self.gate.violates(make_exercise(pain_relief_zones=["neck"]), ctx)
        assert not self.gate.violates(make_exercise(pain_relief_zones=["lumbar"]), ctx)

    def test_relief_zone_matches_expanded_pain_zones(self, make_exercise) -> None:
        ctx = _ctx(pain_locations=["sciatica"], pain_intensity=8, daily_impact=7, pain_character=["sharp"])
        assert ctx.is_severe
        assert "piriformis" not in ctx.pain_filters
        assert not self.gate.violates(make_exercise(pain_relief_zones=["piriformis"]), ctx)
        assert self.gate.violates(make_exercise(pain_relief_zones=["neck"]), ctx)

    def test_therapeutic_level_three_allowed(self, make_exercise, severe_profile) -> None:
        ctx = build_user_context(severe_profile)
        controlled = make_exercise(
            category_id="core_anti_extension",
            difficulty_level=3,
            pain_relief_zones=["lumbar"],
            default_tempo="slow",
        )
        fast = dataclasses.replace(controlled, default_tempo="fast")
        assert not self.gate.violates(controlled, ctx)
        assert self.gate.violates(fast, ctx)

    def test_high_metabolic_blocked(self, make_exercise, severe_profile) -> None:
        ctx = build_user_context(severe_profile)
        assert self.gate.violates(make_exercise(pain_relief_zones=["lumbar"], metabolic_intensity=4), ctx)
