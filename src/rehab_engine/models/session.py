"""Completed-session history records consumed by the readiness models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class SessionFeedback:
    """Post-session rating.

    ``type`` is "tension"/"effort" for plain difficulty ratings, "symptom" or
    "pain" for legacy pain ratings, and "pain_monitoring" for the structured
    NPRS schema (whose payload is kept in ``raw``).
    """

    value: int | None = None  # -1 hard / 0 ok / +1 easy
    type: str = ""
    raw: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> SessionFeedback | None:
        if not data:
            return None
        value = data.get("value")
        try:
            parsed = int(value) if value is not None else None
        except (TypeError, ValueError):
            parsed = None
        return cls(value=parsed, type=str(data.get("type") or ""), raw=dict(data))

    @property
    def is_symptom(self) -> bool:
        return self.type in ("symptom", "pain")


@dataclass(frozen=True)
class SessionLogEntry:
    """One performed exercise inside a completed session."""

    exercise_id: str = ""
    sets: str = "1"
    reps_or_time: str = ""
    duration_sec: float = 0.0
    difficulty_level: int = 1
    metabolic_intensity: int = 1
    status: str = "completed"
    is_rest: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SessionLogEntry:
        return cls(
            exercise_id=str(data.get("exerciseId") or data.get("exercise_id") or data.get("id") or ""),
            sets=str(data.get("sets") or "1"),
            reps_or_time=str(data.get("reps_or_time") or ""),
            duration_sec=float(data.get("duration") or 0.0),
            difficulty_level=int(data.get("difficultyLevel") or data.get("difficulty_level") or 1),
            metabolic_intensity=int(data.get("metabolicIntensity") or data.get("metabolic_intensity") or 1),
            status=str(data.get("status") or "completed"),
            is_rest=bool(data.get("isRest") or data.get("is_rest")),
        )


@dataclass(frozen=True)
class SessionRecord:
    """A completed training session from the user's history."""

    completed_at: datetime
    started_at: datetime | None = None
    net_duration_seconds: float | None = None
    rpe: float | None = None
    feedback: SessionFeedback | None = None
    exercise_count: int = 0
    log: tuple[SessionLogEntry, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SessionRecord:
        completed = _parse_datetime(data.get("completed_at") or data.get("completedAt"))
        if completed is None:
            raise ValueError("session record requires completed_at")
        log_rows = data.get("session_log") or data.get("sessionLog") or ()
        log = tuple(SessionLogEntry.from_dict(row) for row in log_rows)
        net = data.get("net_duration_seconds") or data.get("netDurationSeconds")
        rpe = data.get("rpe")
        return cls(
            completed_at=completed,
            started_at=_parse_datetime(data.get("started_at") or data.get("startedAt")),
            net_duration_seconds=float(net) if net else None,
            rpe=float(rpe) if rpe is not None else None,
            feedback=SessionFeedback.from_dict(data.get("feedback")),
            exercise_count=int(data.get("exercise_count") or len([e for e in log if not e.is_rest])),
            log=log,
        )
