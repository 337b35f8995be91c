"""Shared test fixtures: catalog rows, intake profiles, session history, seeded RNG."""

from __future__ import annotations

import random
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from rehab_engine.catalog.normalizer import normalize_catalog, normalize_exercise_row
from rehab_engine.clinical.context import build_user_context
from rehab_engine.models.exercise import ExerciseRecord
from rehab_engine.models.session import SessionRecord
from rehab_engine.models.user import ClinicalContext, UserProfile

PLAN_START = date(2026, 3, 2)  # Monday


# ---------------------------------------------------------------------------
# Exercise catalog
# ---------------------------------------------------------------------------


def _row(exercise_id: str, **overrides: Any) -> dict:
    row = {
        "id": exercise_id,
        "name": exercise_id.replace("_", " ").title(),
        "category_id": "core_stability",
        "impact_level": "low",
        "position": "supine",
        "is_foot_loading": False,
        "difficulty_level": 1,
        "primary_plane": "sagittal",
        "equipment": [],
        "metabolic_intensity": 1,
    }
    row.update(overrides)
    return row


@pytest.fixture
def catalog_rows() -> list[dict]:
    """Twelve valid rows spanning breathing, mobility, core, knee and conditioning."""
    return [
        _row(
            "diaphragmatic_breathing",
            category_id="breathing",
            pain_relief_zones=["lumbar_general"],
            max_recommended_duration=180,
        ),
        _row(
            "cat_cow",
            category_id="spine_mobility",
            position="quadruped",
            pain_relief_zones=["lumbar_general", "thoracic"],
        ),
        _row(
            "half_kneeling_hip_flexor_stretch",
            category_id="hip_flexor_stretch",
            position="half_kneeling",
            is_unilateral=True,
            knee_load_level="low",
            knee_flexion_max_deg=90,
            max_recommended_duration=45,
        ),
        _row(
            "dead_bug",
            category_id="core_anti_extension",
            difficulty_level=2,
            pain_relief_zones=["lumbar_general", "lumbosacral"],
            default_tempo="slow",
        ),
        _row(
            "bird_dog",
            category_id="core_stability",
            position="quadruped",
            difficulty_level=2,
            pain_relief_zones=["lumbar_general"],
        ),
        _row(
            "glute_bridge",
            category_id="glute_activation",
            difficulty_level=2,
            knee_load_level="low",
            knee_flexion_max_deg=90,
            pain_relief_zones=["lumbar_general", "glute"],
        ),
        _row(
            "side_plank",
            category_id="core_anti_rotation",
            position="side_lying",
            primary_plane="frontal",
            difficulty_level=3,
            max_recommended_duration=45,
        ),
        _row(
            "wall_sit",
            category_id="knee_stability",
            position="standing",
            is_foot_loading=True,
            difficulty_level=2,
            knee_load_level="medium",
            knee_flexion_max_deg=45,
            max_recommended_duration=60,
            pain_relief_zones=["knee", "knee_stability"],
        ),
        _row(
            "goblet_squat",
            category_id="squat_strength",
            position="standing",
            is_foot_loading=True,
            difficulty_level=4,
            knee_load_level="high",
            knee_flexion_max_deg=110,
            equipment=["kettlebell"],
            metabolic_intensity=2,
        ),
        _row(
            "jumping_jacks",
            category_id="cardio_conditioning",
            position="standing",
            impact_level="high",
            is_foot_loading=True,
            difficulty_level=3,
            primary_plane="frontal",
            knee_flexion_max_deg=30,
            metabolic_intensity=4,
            conditioning_style="interval",
            recommended_interval_sec={"work": 30, "rest": 30},
        ),
        _row(
            "childs_pose",
            category_id="spine_mobility",
            position="kneeling",
            knee_load_level="low",
            knee_flexion_max_deg=140,
            pain_relief_zones=["lumbar_general"],
        ),
        _row(
            "brisk_walk",
            category_id="cardio_conditioning",
            position="standing",
            is_foot_loading=True,
            knee_flexion_max_deg=30,
            metabolic_intensity=3,
            conditioning_style="steady",
        ),
    ]


@pytest.fixture
def catalog(catalog_rows: list[dict]) -> list[ExerciseRecord]:
    return normalize_catalog(catalog_rows)


@pytest.fixture
def make_exercise() -> Callable[..., ExerciseRecord]:
    """Factory: a normalized exercise with row-level overrides."""

    def _make(exercise_id: str = "test_exercise", **overrides: Any) -> ExerciseRecord:
        return normalize_exercise_row(_row(exercise_id, **overrides))

    return _make


# ---------------------------------------------------------------------------
# Intake profiles and clinical contexts
# ---------------------------------------------------------------------------


@pytest.fixture
def regular_lumbar_profile() -> UserProfile:
    """Regular exerciser, moderate low-back pain, no equipment, Mon/Wed/Fri."""
    return UserProfile.from_dict({
        "pain_locations": ["lumbar"],
        "pain_intensity": 4,
        "daily_impact": 3,
        "pain_character": ["dull"],
        "exercise_experience": "regular",
        "equipment_available": [],
        "schedule_pattern": [1, 3, 5],
        "target_session_duration_min": 30,
    })


@pytest.fixture
def beginner_knee_profile() -> UserProfile:
    """Sedentary beginner with anterior knee pain."""
    return UserProfile.from_dict({
        "pain_locations": ["knee"],
        "pain_intensity": 5,
        "daily_impact": 4,
        "exercise_experience": "none",
        "work_type": "sedentary",
        "schedule_pattern": [1, 4],
        "target_session_duration_min": 20,
    })


@pytest.fixture
def severe_profile() -> UserProfile:
    """Severity (8 + 7) / 2 × 1.2 = 9.0 with sharp lumbar pain."""
    return UserProfile.from_dict({
        "pain_locations": ["lumbar"],
        "pain_intensity": 8,
        "daily_impact": 7,
        "pain_character": ["sharp"],
        "exercise_experience": "advanced",
    })


@pytest.fixture
def lumbar_ctx(regular_lumbar_profile: UserProfile) -> ClinicalContext:
    return build_user_context(regular_lumbar_profile)


@pytest.fixture
def knee_ctx(beginner_knee_profile: UserProfile) -> ClinicalContext:
    return build_user_context(beginner_knee_profile)


# ---------------------------------------------------------------------------
# Session history
# ---------------------------------------------------------------------------


@pytest.fixture
def make_session() -> Callable[..., SessionRecord]:
    """Factory: a completed session ``days_ago`` days before ``today`` at 18:00 UTC."""

    def _make(
        today: date = PLAN_START,
        days_ago: int = 1,
        minutes: float = 30,
        feedback: dict | None = None,
        rpe: float | None = None,
    ) -> SessionRecord:
        day = today - timedelta(days=days_ago)
        completed = datetime(day.year, day.month, day.day, 18, 0, tzinfo=timezone.utc)
        return SessionRecord(
            completed_at=completed,
            net_duration_seconds=minutes * 60,
            rpe=rpe,
            feedback=None if feedback is None else SessionRecord.from_dict(
                {"completed_at": completed.isoformat(), "feedback": feedback}
            ).feedback,
        )

    return _make


@pytest.fixture
def plan_start() -> date:
    return PLAN_START


# ---------------------------------------------------------------------------
# Randomness
# ---------------------------------------------------------------------------


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)
