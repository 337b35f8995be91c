"""Fatigue / readiness model: session load, fatigue bucket, monotony and strain.

References:
    - Foster et al. (2001): session-RPE method (load AU = minutes × RPE)
    - Foster (1998): monotony (mean/SD of daily load) and strain
    - Banister et al. (1975): impulse-response fatigue with exponential decay
    - Senna et al. (2011): short rest raises perceived exertion
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

import numpy as np
import pandas as pd

from rehab_engine.models.enums import (
    DEFAULT_SECONDS_PER_REP,
    DEFAULT_SESSION_RPE,
    DEFAULT_TARGET_MINUTES,
    DEFAULT_THRESHOLD_ENTER,
    DEFAULT_THRESHOLD_EXIT,
    DEFAULT_THRESHOLD_FILTER,
    FALLBACK_MINUTES_PER_EXERCISE,
    FEEDBACK_TO_RPE,
    HISTORY_WINDOW_DAYS,
    LOAD_SCALE,
    MAX_BUCKET_CAPACITY,
    MAX_TIMESTAMP_DURATION_HOURS,
    MIN_SESSIONS_FOR_CALIBRATION,
    MONOTONY_SD_FLOOR,
)
from rehab_engine.models.readiness import FatigueProfile
from rehab_engine.models.session import SessionLogEntry, SessionRecord

logger = logging.getLogger(__name__)

ROLLING_WINDOW_DAYS = 7
BUCKET_DECAY_PER_DAY = 0.5
_NUMBER = re.compile(r"(\d+(?:[.,]\d+)?)")


# ---------------------------------------------------------------------------
# Per-exercise load (bottom-up)
# ---------------------------------------------------------------------------


def calculate_exercise_rpe(difficulty_level: int, metabolic_intensity: int) -> float:
    """Map catalog difficulty (1-5) to RPE (1-10) with a metabolic correction.

    Reference:
        Senna et al. (2011). Effect of rest interval length on perceived exertion.
    """
    rpe = (difficulty_level or 1) * 2.0
    if (metabolic_intensity or 1) >= 3:
        rpe += 1.5
    return min(10.0, max(1.0, rpe))


def parse_set_count(sets: str) -> int:
    """"3" -> 3, "2-4" -> 4 (upper end of a range)."""
    last = str(sets or "").split("-")[-1].strip()
    try:
        return int(last) or 1
    except ValueError:
        return 1


def parse_duration_seconds(value: str) -> float:
    """Seconds in a timed prescription ("45 s", "2 min"); 0 for rep counts."""
    text = str(value or "").lower().replace("/side", "")
    match = _NUMBER.search(text)
    if "min" in text:
        return float(match.group(1).replace(",", ".")) * 60 if match else 60.0
    if "s" in text:
        return float(int(float(match.group(1).replace(",", ".")))) if match else 30.0
    return 0.0


def parse_reps(value: str) -> int:
    text = str(value or "").lower()
    if parse_duration_seconds(text) > 0:
        return 0
    match = re.search(r"(\d+)", text)
    return int(match.group(1)) if match else 10


def _log_entry_load(entry: SessionLogEntry) -> float:
    rpe = calculate_exercise_rpe(entry.difficulty_level, entry.metabolic_intensity)
    if entry.duration_sec > 0:
        work_sec = entry.duration_sec
    else:
        sets = parse_set_count(entry.sets)
        timed = parse_duration_seconds(entry.reps_or_time)
        if timed > 0:
            work_sec = timed * sets
        else:
            work_sec = parse_reps(entry.reps_or_time) * DEFAULT_SECONDS_PER_REP * sets
        if "/side" in entry.reps_or_time.lower():
            work_sec *= 2
    return (work_sec / 60.0) * rpe


# ---------------------------------------------------------------------------
# Session load (top-down fallback)
# ---------------------------------------------------------------------------


def resolve_session_minutes(session: SessionRecord) -> float:
    """Session duration in minutes.

    Priority: explicit net duration, then a plausible start/end timestamp
    delta, then a per-exercise heuristic.
    """
    if session.net_duration_seconds:
        return session.net_duration_seconds / 60.0
    if session.started_at is not None:
        delta = (session.completed_at - session.started_at).total_seconds()
        if 0 < delta < MAX_TIMESTAMP_DURATION_HOURS * 3600:
            return delta / 60.0
    if session.exercise_count > 0:
        return session.exercise_count * FALLBACK_MINUTES_PER_EXERCISE
    return float(DEFAULT_TARGET_MINUTES)


def estimate_session_rpe(session: SessionRecord) -> float:
    if session.rpe is not None and session.rpe > 0:
        return float(session.rpe)
    if session.feedback is not None and session.feedback.value in FEEDBACK_TO_RPE:
        return float(FEEDBACK_TO_RPE[session.feedback.value])
    return float(DEFAULT_SESSION_RPE)


def session_load_au(session: SessionRecord) -> float:
    """Foster session load in arbitrary units.

    The structured exercise log is preferred; skipped and rest entries are
    ignored. When the log yields no load, minutes × session RPE is used.
    """
    performed = [e for e in session.log if e.status != "skipped" and not e.is_rest]
    if performed:
        total = sum(_log_entry_load(e) for e in performed)
        if total > 0:
            return total
    return resolve_session_minutes(session) * estimate_session_rpe(session)


# ---------------------------------------------------------------------------
# Fatigue profile
# ---------------------------------------------------------------------------


def _as_utc_date(value: date | datetime | None) -> date:
    if value is None:
        return datetime.now(timezone.utc).date()
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def daily_load_series(sessions: Iterable[SessionRecord], start: date, end: date) -> pd.Series:
    """Sum session loads per UTC calendar day over [start, end], zero-filled."""
    index = pd.date_range(start=start, end=end, freq="D")
    rows = [
        (pd.Timestamp(s.completed_at.astimezone(timezone.utc).date()), session_load_au(s))
        for s in sessions
    ]
    if not rows:
        return pd.Series(0.0, index=index)
    frame = pd.DataFrame(rows, columns=["day", "load"])
    return frame.groupby("day")["load"].sum().reindex(index, fill_value=0.0)


def calculate_fatigue_profile(
    history: Iterable[SessionRecord], today: date | datetime | None = None
) -> FatigueProfile:
    """Simulate the fatigue bucket over the trailing window and calibrate thresholds.

    Each simulated day halves the bucket (24h half-life) and adds that day's
    scaled load. Thresholds are individualized from the user's own fatigue
    percentiles once enough sessions exist.

    Args:
        history: Completed sessions (any order; older ones are ignored).
        today: Evaluation day (UTC). Defaults to the current UTC date.

    Returns:
        FatigueProfile. Never raises: on failure the default (uncalibrated)
        profile is returned with ``error`` set.
    """
    try:
        today_utc = _as_utc_date(today)
        window_start = today_utc - timedelta(days=HISTORY_WINDOW_DAYS)
        sessions = [
            s for s in history
            if window_start < s.completed_at.astimezone(timezone.utc).date() <= today_utc
        ]

        # Pad the front so the first simulated day has a full 7-day window
        padded_start = window_start - timedelta(days=ROLLING_WINDOW_DAYS - 1)
        daily = daily_load_series(sessions, padded_start, today_utc)

        rolling = daily.rolling(ROLLING_WINDOW_DAYS, min_periods=1)
        week_total = rolling.sum()
        week_mean = week_total / ROLLING_WINDOW_DAYS
        week_sd = daily.rolling(ROLLING_WINDOW_DAYS).std(ddof=1).fillna(0.0).clip(lower=MONOTONY_SD_FLOOR)
        monotony = week_mean / week_sd
        strain = week_total * monotony

        simulated = daily.loc[pd.Timestamp(window_start):]
        bucket = 0.0
        bucket_scores: list[float] = []
        for day_load in simulated.to_numpy(dtype=np.float64):
            bucket = bucket * BUCKET_DECAY_PER_DAY + day_load * LOAD_SCALE
            bucket_scores.append(bucket)
        strain_scores = strain.loc[pd.Timestamp(window_start):].to_numpy(dtype=np.float64)

        scores = np.array(bucket_scores, dtype=np.float64)
        p60, p75, p85 = np.percentile(scores, [60, 75, 85])
        p85_strain = float(np.percentile(strain_scores, 85))

        calibrated = len(sessions) >= MIN_SESSIONS_FOR_CALIBRATION
        if calibrated:
            enter = max(DEFAULT_THRESHOLD_ENTER, p85)
            exit_ = min(DEFAULT_THRESHOLD_EXIT, p60)
            filter_ = max(DEFAULT_THRESHOLD_FILTER, p75)
        else:
            enter, exit_, filter_ = DEFAULT_THRESHOLD_ENTER, DEFAULT_THRESHOLD_EXIT, DEFAULT_THRESHOLD_FILTER

        today_key = pd.Timestamp(today_utc)
        profile = FatigueProfile(
            score=max(0, min(MAX_BUCKET_CAPACITY, int(round(bucket)))),
            threshold_enter=int(round(enter)),
            threshold_exit=int(round(exit_)),
            threshold_filter=int(round(filter_)),
            week_load_7d=int(round(week_total[today_key])),
            monotony_7d=round(float(monotony[today_key]), 2),
            strain_7d=int(round(strain[today_key])),
            p85_strain_56d=int(round(p85_strain)),
            p85_fatigue_56d=int(round(p85)),
            sessions_56d=len(sessions),
            calibrated=calibrated,
        )
        logger.info(
            "Fatigue profile: score=%d enter=%d monotony=%.2f calibrated=%s",
            profile.score, profile.threshold_enter, profile.monotony_7d, profile.calibrated,
        )
        return profile
    except Exception as exc:
        logger.exception("Fatigue profile calculation failed; using defaults")
        return FatigueProfile(error=str(exc) or exc.__class__.__name__)
