"""Environment-variable-based configuration for the weekly plan runner."""

from __future__ import annotations

import os
from pathlib import Path

PLAN_CATALOG_PATH: Path = Path(os.environ.get("PLAN_CATALOG_PATH", "data/catalog.json"))
PLAN_PROFILE_PATH: Path = Path(os.environ.get("PLAN_PROFILE_PATH", "data/profile.json"))
PLAN_HISTORY_PATH: Path = Path(os.environ.get("PLAN_HISTORY_PATH", "data/history.json"))
PLAN_STATE_PATH: Path = Path(os.environ.get("PLAN_STATE_PATH", "data/phase_state.json"))
PLAN_OUTPUT_PATH: str = os.environ.get("PLAN_OUTPUT_PATH", "")
PLAN_SEED: int | None = int(os.environ["PLAN_SEED"]) if os.environ.get("PLAN_SEED") else None
PLAN_LOG_LEVEL: str = os.environ.get("PLAN_LOG_LEVEL", "INFO").upper()
