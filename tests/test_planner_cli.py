"""Tests for the weekly plan command-line runner."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from planner.weekly import EXIT_BAD_INPUT, EXIT_NO_SAFE_EXERCISES, build_request, main


@pytest.fixture
def inputs(tmp_path: Path, catalog_rows) -> dict[str, Path]:
    paths = {
        "catalog": tmp_path / "catalog.json",
        "profile": tmp_path / "profile.json",
        "history": tmp_path / "history.json",
        "state": tmp_path / "phase_state.json",
        "output": tmp_path / "plan.json",
    }
    paths["catalog"].write_text(json.dumps(catalog_rows), encoding="utf-8")
    paths["profile"].write_text(json.dumps({
        "pain_locations": ["lumbar"],
        "pain_intensity": 4,
        "daily_impact": 3,
        "exercise_experience": "regular",
        "schedule_pattern": [1, 3, 5],
        "target_session_duration_min": 30,
        "blacklist": ["side_plank"],
    }), encoding="utf-8")
    return paths


def _argv(paths: dict[str, Path], *extra: str) -> list[str]:
    return [
        "--catalog", str(paths["catalog"]),
        "--profile", str(paths["profile"]),
        "--history", str(paths["history"]),
        "--state", str(paths["state"]),
        "--output", str(paths["output"]),
        "--seed", "42",
        "--start", "2026-03-02",
        *extra,
    ]


class TestBuildRequest:
    def test_missing_history_and_state_default(self, inputs: dict[str, Path]) -> None:
        request = build_request(inputs["catalog"], inputs["profile"], inputs["history"], inputs["state"])
        assert request.history == ()
        assert request.phase_state is None
        assert request.blacklist == frozenset({"side_plank"})
        assert len(request.catalog) == 12

    def test_missing_profile_raises(self, inputs: dict[str, Path], tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            build_request(inputs["catalog"], tmp_path / "none.json", inputs["history"], inputs["state"])


class TestMain:
    def test_writes_plan(self, inputs: dict[str, Path]) -> None:
        assert main(_argv(inputs)) == 0
        plan = json.loads(inputs["output"].read_text(encoding="utf-8"))
        assert plan["startDate"] == "2026-03-02"
        assert len(plan["days"]) == 7
        assert plan["meta"]["activePhase"] == "control"
        assert plan["meta"]["painStatus"] == "green"
        planned = {ex["id"] for day in plan["days"] if day["type"] == "workout"
                   for section in ("warmup", "main", "cooldown") for ex in day[section]}
        assert "side_plank" not in planned
        assert not inputs["state"].exists()

    def test_seed_makes_output_reproducible(self, inputs: dict[str, Path]) -> None:
        main(_argv(inputs))
        first = inputs["output"].read_text(encoding="utf-8")
        main(_argv(inputs))
        assert inputs["output"].read_text(encoding="utf-8") == first

    def test_save_state(self, inputs: dict[str, Path]) -> None:
        assert main(_argv(inputs, "--save-state")) == 0
        state = json.loads(inputs["state"].read_text(encoding="utf-8"))
        assert state["blueprint_id"] == "default"
        assert state["base"]["phase_id"] == "control"
        assert state["history"][0]["reason"] == "goal_change_reset"

    def test_no_safe_exercises_exit_code(self, inputs: dict[str, Path]) -> None:
        inputs["profile"].write_text(json.dumps({
            "pain_locations": ["knee"],
            "pain_intensity": 5,
            "daily_impact": 4,
            "exercise_experience": "none",
            "work_type": "sedentary",
        }), encoding="utf-8")
        assert main(_argv(inputs)) == EXIT_NO_SAFE_EXERCISES
        assert not inputs["output"].exists()

    def test_bad_input_exit_code(self, inputs: dict[str, Path]) -> None:
        inputs["catalog"].write_text("{not json", encoding="utf-8")
        assert main(_argv(inputs)) == EXIT_BAD_INPUT

    def test_bad_start_date(self, inputs: dict[str, Path]) -> None:
        argv = _argv(inputs)
        argv[argv.index("2026-03-02")] = "next monday"
        assert main(argv) == EXIT_BAD_INPUT
