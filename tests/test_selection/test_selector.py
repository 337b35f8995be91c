"""Tests for weighted picking, candidate pooling and anchor selection."""

from __future__ import annotations

import random
from collections import Counter

from rehab_engine.clinical.context import build_user_context
from rehab_engine.models.enums import PhaseId, Section
from rehab_engine.models.readiness import FatigueProfile
from rehab_engine.models.user import UserProfile
from rehab_engine.phases.catalog import PhaseContext
from rehab_engine.selection.scoring import ScoringContext
from rehab_engine.selection.selector import (
    filter_exercise_candidates,
    pick_exercise_for_section,
    select_anchors,
    weighted_pick,
)
from rehab_engine.selection.state import SelectionState
from rehab_engine.selection.weights import build_category_weights


def _scoring(candidates, profile, ctx, phase_id: PhaseId | None = None) -> ScoringContext:
    return ScoringContext(
        profile=profile,
        ctx=ctx,
        category_weights=build_category_weights(candidates, profile, ctx),
        phase=PhaseContext.for_phase(phase_id) if phase_id else None,
    )


class TestWeightedPick:
    def test_zero_weights_return_none(self, rng: random.Random) -> None:
        assert weighted_pick(["a", "b"], lambda item: 0.0, rng) is None

    def test_only_positive_items_drawn(self, rng: random.Random) -> None:
        weights = {"a": 0.0, "b": 1.0, "c": 0.0}
        draws = {weighted_pick(list(weights), weights.get, rng) for _ in range(50)}
        assert draws == {"b"}

    def test_proportional_to_weight(self) -> None:
        rng = random.Random(7)
        weights = {"a": 1.0, "b": 3.0}
        counts = Counter(weighted_pick(list(weights), weights.get, rng) for _ in range(4000))
        assert 0.70 < counts["b"] / 4000 < 0.80

    def test_seeded_draws_reproducible(self) -> None:
        weights = {"a": 1.0, "b": 2.0, "c": 3.0}
        rng_a, rng_b = random.Random(3), random.Random(3)
        first = [weighted_pick(list(weights), weights.get, rng_a) for _ in range(20)]
        second = [weighted_pick(list(weights), weights.get, rng_b) for _ in range(20)]
        assert first == second


class TestFilterCandidates:
    def test_clinical_filter_only_when_rested(self, catalog, lumbar_ctx) -> None:
        ids = {ex.id for ex in filter_exercise_candidates(catalog, lumbar_ctx, FatigueProfile())}
        assert "goblet_squat" not in ids
        assert "jumping_jacks" in ids

    def test_fatigue_gate_applied(self, catalog, lumbar_ctx) -> None:
        ids = {ex.id for ex in filter_exercise_candidates(catalog, lumbar_ctx, FatigueProfile(score=90))}
        assert "jumping_jacks" not in ids
        assert "side_plank" in ids
        assert len(ids) >= 5

    def test_strict_level_kept_when_large_enough(self, make_exercise) -> None:
        ctx = build_user_context(UserProfile.from_dict({"exercise_experience": "advanced"}))
        pool = [make_exercise(f"easy_{i}") for i in range(5)] + [make_exercise("hard", difficulty_level=4)]
        kept = filter_exercise_candidates(pool, ctx, FatigueProfile(score=90))
        assert [ex.id for ex in kept] == [f"easy_{i}" for i in range(5)]

    def test_relaxes_when_pool_too_small(self, make_exercise) -> None:
        ctx = build_user_context(UserProfile.from_dict({"exercise_experience": "advanced"}))
        pool = [make_exercise(f"hard_{i}", difficulty_level=4) for i in range(6)] + [make_exercise("easy")]
        relaxed = filter_exercise_candidates(pool, ctx, FatigueProfile(score=90))
        assert len(relaxed) == 7


class TestSelectAnchors:
    def test_at_most_two_non_breathing_families(self, catalog, lumbar_ctx, regular_lumbar_profile) -> None:
        candidates = filter_exercise_candidates(catalog, lumbar_ctx)
        anchors = select_anchors(candidates, _scoring(candidates, regular_lumbar_profile, lumbar_ctx, PhaseId.CONTROL))
        assert 1 <= len(anchors.families) <= 2
        assert not any(family.startswith("breathing|") for family in anchors.families)
        assert anchors.target_exposure == 2

    def test_strength_phase_exposure(self, catalog, lumbar_ctx, regular_lumbar_profile) -> None:
        candidates = filter_exercise_candidates(catalog, lumbar_ctx)
        anchors = select_anchors(candidates, _scoring(candidates, regular_lumbar_profile, lumbar_ctx, PhaseId.STRENGTH))
        assert anchors.target_exposure == 3


class TestPickForSection:
    def test_pick_recorded_and_not_repeated(self, catalog, lumbar_ctx, regular_lumbar_profile, rng) -> None:
        candidates = filter_exercise_candidates(catalog, lumbar_ctx)
        scoring = _scoring(candidates, regular_lumbar_profile, lumbar_ctx, PhaseId.CONTROL)
        state = SelectionState()
        picked = [
            pick_exercise_for_section(Section.MAIN, candidates, scoring, state, rng)
            for _ in range(4)
        ]
        ids = [p.exercise.id for p in picked if p is not None]
        assert len(ids) == len(set(ids)) == 4
        assert state.used_ids == set(ids)
        assert "diaphragmatic_breathing" not in ids

    def test_extra_filter(self, catalog, lumbar_ctx, regular_lumbar_profile, rng) -> None:
        candidates = filter_exercise_candidates(catalog, lumbar_ctx)
        scoring = _scoring(candidates, regular_lumbar_profile, lumbar_ctx)
        pick = pick_exercise_for_section(
            Section.WARMUP, candidates, scoring, SelectionState(), rng,
            extra_filter=lambda ex: ex.id == "cat_cow",
        )
        assert pick is not None and pick.exercise.id == "cat_cow"

    def test_exhausted_pool_returns_none(self, make_exercise, lumbar_ctx, regular_lumbar_profile, rng) -> None:
        ex = make_exercise()
        scoring = _scoring([ex], regular_lumbar_profile, lumbar_ctx)
        state = SelectionState()
        assert pick_exercise_for_section(Section.MAIN, [ex], scoring, state, rng) is not None
        assert pick_exercise_for_section(Section.MAIN, [ex], scoring, state, rng) is None

    def test_alternative_from_same_family(self, make_exercise, lumbar_ctx, regular_lumbar_profile, rng) -> None:
        twins = [make_exercise("plank_a"), make_exercise("plank_b")]
        scoring = _scoring(twins, regular_lumbar_profile, lumbar_ctx)
        pick = pick_exercise_for_section(Section.MAIN, twins, scoring, SelectionState(), rng)
        assert pick is not None
        assert len(pick.alternatives) == 1
        assert pick.alternatives[0].id != pick.exercise.id
