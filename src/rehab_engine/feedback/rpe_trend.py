"""Short-term RPE trend from the most recent post-session ratings."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable

from rehab_engine.models.enums import RPE_TREND_DECAY_DAYS, RPE_TREND_WINDOW, RpeTrendLabel
from rehab_engine.models.readiness import RpeTrend
from rehab_engine.models.session import SessionRecord

NEUTRAL_TREND = RpeTrend()

PROTECTION = RpeTrend(0.70, 2, RpeTrendLabel.PROTECTION)
CHRONIC_DELOAD = RpeTrend(0.75, 2, RpeTrendLabel.CHRONIC_DELOAD)
ACUTE_RECOVERY = RpeTrend(0.85, 3, RpeTrendLabel.ACUTE_RECOVERY)
PROGRESSIVE_BOOST = RpeTrend(1.25, None, RpeTrendLabel.PROGRESSIVE_BOOST)
PROGRESSIVE = RpeTrend(1.15, None, RpeTrendLabel.PROGRESSIVE)
MAINTENANCE = RpeTrend(1.0, None, RpeTrendLabel.MAINTENANCE)


def _feedback_value(session: SessionRecord) -> int | None:
    return session.feedback.value if session.feedback is not None else None


def analyze_rpe_trend(
    recent_sessions: Iterable[SessionRecord], today: date | datetime | None = None
) -> RpeTrend:
    """Derive a volume modifier and intensity cap from recent feedback.

    Only the newest ``RPE_TREND_WINDOW`` sessions are considered. A trend
    older than ``RPE_TREND_DECAY_DAYS`` no longer applies.

    Args:
        recent_sessions: Completed sessions in any order.
        today: Evaluation day; defaults to the current UTC date.

    Returns:
        RpeTrend; neutral when there is no usable signal.
    """
    recent = sorted(recent_sessions, key=lambda s: s.completed_at, reverse=True)[:RPE_TREND_WINDOW]
    if not recent:
        return NEUTRAL_TREND

    if today is None:
        today = datetime.now(timezone.utc).date()
    elif isinstance(today, datetime):
        today = today.astimezone(timezone.utc).date() if today.tzinfo else today.date()

    latest = recent[0]
    age_days = (today - latest.completed_at.astimezone(timezone.utc).date()).days
    if age_days > RPE_TREND_DECAY_DAYS:
        return RpeTrend(label=RpeTrendLabel.DECAY)

    value = _feedback_value(latest)
    if value is None:
        return NEUTRAL_TREND
    previous = _feedback_value(recent[1]) if len(recent) > 1 else None

    if value == -1:
        if latest.feedback.is_symptom:
            return PROTECTION
        if previous == -1:
            return CHRONIC_DELOAD
        return ACUTE_RECOVERY
    if value == 1:
        return PROGRESSIVE_BOOST if previous == 1 else PROGRESSIVE
    if value == 0:
        return MAINTENANCE
    return NEUTRAL_TREND
