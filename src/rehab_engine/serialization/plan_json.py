"""JSON serialization for weekly plans and persisted phase state.

Plans are exported as plain dicts (client-facing field names). Phase state
round-trips through ``phase_state_to_dict`` / ``phase_state_from_dict`` so
callers can persist it between generations.

All functions are pure (no I/O).
"""

from __future__ import annotations

import json
from datetime import date
from typing import Any, Mapping

from rehab_engine.models.enums import PhaseId
from rehab_engine.models.phase_state import (
    BasePhase,
    KneeRom,
    OverridePhase,
    PhaseState,
    PhaseTransition,
    RomProfile,
)
from rehab_engine.models.plan import PrescribedExercise, RestDay, Session, WeeklyPlan


def to_plan_dict(plan: WeeklyPlan) -> dict:
    """Convert a WeeklyPlan to a JSON-compatible dict."""
    return {
        "startDate": plan.start_date.isoformat() if plan.start_date else None,
        "phase": plan.phase_id.value,
        "overrideMode": plan.phase_id.value if plan.is_override else None,
        "anchors": list(plan.anchor_families),
        "days": [_convert_day(day) for day in plan.days],
    }


def to_plan_json_string(plan: WeeklyPlan, indent: int = 2) -> str:
    """Convert a WeeklyPlan to a JSON string."""
    return json.dumps(to_plan_dict(plan), indent=indent, ensure_ascii=False)


def phase_state_to_dict(state: PhaseState) -> dict:
    base = state.base
    override = state.override
    knee = state.rom.knee_flexion
    return {
        "blueprint_id": state.blueprint_id,
        "sequence": [p.value for p in state.sequence],
        "phase_index": state.phase_index,
        "cycle": state.cycle,
        "spiral_bias": state.spiral_bias,
        "base": {
            "phase_id": base.phase_id.value,
            "sessions_completed": base.sessions_completed,
            "target_sessions": base.target_sessions,
            "start_date": base.start_date.isoformat(),
            "cap_weeks": base.cap_weeks,
            "last_session_date": _iso(base.last_session_date),
            "is_soft_progression": base.is_soft_progression,
        },
        "override": None if override is None else {
            "mode": override.mode.value,
            "reason": override.reason,
            "triggered_at": override.triggered_at.isoformat(),
            "sessions_completed": override.sessions_completed,
        },
        "rom": {
            "knee_flexion": None if knee is None else {
                "current_limit": knee.current_limit,
                "max_limit": knee.max_limit,
                "step": knee.step,
                "consecutive_clean_sessions": knee.consecutive_clean_sessions,
                "required_clean_sessions": knee.required_clean_sessions,
            },
        },
        "history": [
            {
                "date": t.date.isoformat(),
                "from": t.from_phase,
                "to": t.to_phase,
                "reason": t.reason,
                "cycle": t.cycle,
                "sessions": t.sessions,
                "target": t.target,
            }
            for t in state.history
        ],
    }


def phase_state_from_dict(data: Mapping[str, Any]) -> PhaseState:
    """Rebuild a PhaseState; unknown phase ids raise ``ValueError``."""
    base = data["base"]
    override = data.get("override")
    knee = (data.get("rom") or {}).get("knee_flexion")
    return PhaseState(
        blueprint_id=data["blueprint_id"],
        sequence=tuple(PhaseId(p) for p in data["sequence"]),
        phase_index=int(data.get("phase_index", 0)),
        cycle=int(data.get("cycle", 1)),
        spiral_bias=float(data.get("spiral_bias", 0.0)),
        base=BasePhase(
            phase_id=PhaseId(base["phase_id"]),
            sessions_completed=int(base["sessions_completed"]),
            target_sessions=int(base["target_sessions"]),
            start_date=date.fromisoformat(base["start_date"]),
            cap_weeks=int(base.get("cap_weeks", 8)),
            last_session_date=_parse_date(base.get("last_session_date")),
            is_soft_progression=bool(base.get("is_soft_progression", False)),
        ),
        override=None if not override else OverridePhase(
            mode=PhaseId(override["mode"]),
            reason=override.get("reason", ""),
            triggered_at=date.fromisoformat(override["triggered_at"]),
            sessions_completed=int(override.get("sessions_completed", 0)),
        ),
        rom=RomProfile(knee_flexion=KneeRom(**knee) if knee else None),
        history=tuple(
            PhaseTransition(
                date=date.fromisoformat(t["date"]),
                from_phase=t["from"],
                to_phase=t["to"],
                reason=t["reason"],
                cycle=int(t.get("cycle", 1)),
                sessions=int(t.get("sessions", 0)),
                target=int(t.get("target", 0)),
            )
            for t in data.get("history") or ()
        ),
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _convert_day(day: Session | RestDay) -> dict:
    if isinstance(day, RestDay):
        return {
            "dayNumber": day.day_number,
            "date": day.date.isoformat(),
            "type": "rest",
            "reason": day.reason,
            "estimatedDurationMin": 0,
        }
    return {
        "dayNumber": day.day_number,
        "date": day.date.isoformat(),
        "type": "workout",
        "title": day.title,
        "undulation": day.undulation,
        "fatigueState": day.fatigue_state.value,
        "targetMinutes": day.target_minutes,
        "estimatedDurationMin": day.estimated_duration_min,
        "warmup": [_convert_exercise(rx) for rx in day.warmup],
        "main": [_convert_exercise(rx) for rx in day.main],
        "cooldown": [_convert_exercise(rx) for rx in day.cooldown],
    }


def _convert_exercise(rx: PrescribedExercise) -> dict:
    result = {
        "id": rx.exercise.id,
        "name": rx.exercise.name,
        "category": rx.exercise.category_id,
        "sets": rx.sets,
        "repsOrTime": rx.reps_or_time,
        "tempo": rx.tempo,
        "restAfterExercise": rx.rest_after_sec,
        "transitionTime": rx.transition_sec,
        "isUnilateral": rx.is_unilateral,
    }
    if rx.rest_between_sets_sec is not None:
        result["restBetweenSets"] = rx.rest_between_sets_sec
    if rx.rom_constraint is not None:
        result["romConstraint"] = {
            "joint": rx.rom_constraint.joint,
            "limitDegrees": rx.rom_constraint.limit_degrees,
        }
    if rx.alternatives:
        result["alternatives"] = [alt.id for alt in rx.alternatives]
    if rx.note:
        result["note"] = rx.note
    return result
