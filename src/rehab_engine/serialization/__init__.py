"""Serialization module: export plans and persist phase state as JSON."""

from rehab_engine.serialization.plan_json import (
    phase_state_from_dict,
    phase_state_to_dict,
    to_plan_dict,
    to_plan_json_string,
)

__all__ = [
    "phase_state_from_dict",
    "phase_state_to_dict",
    "to_plan_dict",
    "to_plan_json_string",
]
