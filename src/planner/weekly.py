"""Weekly plan runner: generate a 7-day plan from JSON inputs.

Usage:
    python -m planner.weekly --catalog catalog.json --profile profile.json
    python -m planner.weekly --seed 42 --start 2026-03-02
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from datetime import date
from pathlib import Path

from rehab_engine.engine import PlanEngine, PlanRequest, PlanResult
from rehab_engine.exceptions import NoSafeExercisesError, RehabEngineError
from rehab_engine.serialization import phase_state_to_dict, to_plan_dict

from planner.config import (
    PLAN_CATALOG_PATH,
    PLAN_HISTORY_PATH,
    PLAN_LOG_LEVEL,
    PLAN_OUTPUT_PATH,
    PLAN_PROFILE_PATH,
    PLAN_SEED,
    PLAN_STATE_PATH,
)

logger = logging.getLogger(__name__)

EXIT_NO_SAFE_EXERCISES = 2
EXIT_BAD_INPUT = 1

# Optional keys of the profile file that are request inputs, not intake fields
_REQUEST_KEYS = ("affinity", "pace_map", "last_seen_days", "blacklist")


def _load_json(path: Path, default=None):
    """Load a JSON file; a missing file yields *default* when one is given."""
    if not path.exists() and default is not None:
        logger.info("%s not found, using default", path)
        return default
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def build_request(
    catalog_path: Path,
    profile_path: Path,
    history_path: Path,
    state_path: Path,
    start: date | None = None,
) -> PlanRequest:
    """Assemble a PlanRequest from the JSON files on disk."""
    profile = _load_json(profile_path)
    data = {
        "catalog": _load_json(catalog_path),
        "profile": profile,
        "history": _load_json(history_path, default=[]),
        "phase_state": _load_json(state_path, default={}) or None,
        "start_date": start,
    }
    for key in _REQUEST_KEYS:
        if key in profile:
            data[key] = profile[key]
    return PlanRequest.from_dict(data)


def result_to_dict(result: PlanResult) -> dict:
    output = to_plan_dict(result.plan)
    output["meta"] = {
        "activePhase": result.active_phase_id.value,
        "fatigueScore": result.fatigue.score,
        "fatigueCalibrated": result.fatigue.calibrated,
        "rpeStatus": result.rpe_trend.label.value,
        "painStatus": result.pain.status.value,
        "painReason": result.pain.reason,
    }
    return output


def run(args: argparse.Namespace) -> int:
    try:
        start = date.fromisoformat(args.start) if args.start else None
        request = build_request(
            Path(args.catalog), Path(args.profile), Path(args.history), Path(args.state), start
        )
    except (OSError, ValueError) as exc:
        logger.error("Failed to load inputs: %s", exc)
        return EXIT_BAD_INPUT

    rng = random.Random(args.seed)
    try:
        result = PlanEngine().generate(request, rng)
    except NoSafeExercisesError as exc:
        logger.error("Cannot build a plan: %s", exc)
        return EXIT_NO_SAFE_EXERCISES
    except RehabEngineError as exc:
        logger.error("Plan generation failed: %s", exc)
        return EXIT_BAD_INPUT

    text = json.dumps(result_to_dict(result), indent=2, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        logger.info("Plan written to %s", args.output)
    else:
        print(text)

    if args.save_state:
        Path(args.state).write_text(
            json.dumps(phase_state_to_dict(result.phase_state), indent=2), encoding="utf-8"
        )
        logger.info("Phase state saved to %s", args.state)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate a weekly rehabilitation plan")
    parser.add_argument("--catalog", default=str(PLAN_CATALOG_PATH), help="Exercise catalog JSON")
    parser.add_argument("--profile", default=str(PLAN_PROFILE_PATH), help="User profile JSON")
    parser.add_argument("--history", default=str(PLAN_HISTORY_PATH), help="Session history JSON")
    parser.add_argument("--state", default=str(PLAN_STATE_PATH), help="Stored phase state JSON")
    parser.add_argument("--output", default=PLAN_OUTPUT_PATH, help="Write the plan here instead of stdout")
    parser.add_argument("--seed", type=int, default=PLAN_SEED, help="Random seed")
    parser.add_argument("--start", default=None, help="First plan day (YYYY-MM-DD)")
    parser.add_argument("--save-state", action="store_true", help="Persist the updated phase state")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, PLAN_LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
