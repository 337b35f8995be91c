"""Readiness descriptors: fatigue profile, RPE trend and pain response."""

from __future__ import annotations

from dataclasses import dataclass

from rehab_engine.models.enums import (
    DEFAULT_P85_FATIGUE,
    DEFAULT_P85_STRAIN,
    DEFAULT_THRESHOLD_ENTER,
    DEFAULT_THRESHOLD_EXIT,
    DEFAULT_THRESHOLD_FILTER,
    MONOTONY_RELEVANT_WEEK_LOAD,
    MONOTONY_SPIKE_THRESHOLD,
    PainStatus,
    RpeTrendLabel,
)


@dataclass(frozen=True)
class FatigueProfile:
    """Current fatigue bucket score plus individualized thresholds.

    Thresholds are static defaults until the user has enough sessions in
    the 56-day window (``calibrated``).
    """

    score: int = 0  # 0-120
    threshold_enter: int = DEFAULT_THRESHOLD_ENTER
    threshold_exit: int = DEFAULT_THRESHOLD_EXIT
    threshold_filter: int = DEFAULT_THRESHOLD_FILTER
    week_load_7d: int = 0  # AU
    monotony_7d: float = 0.0
    strain_7d: int = 0
    p85_strain_56d: int = DEFAULT_P85_STRAIN
    p85_fatigue_56d: int = DEFAULT_P85_FATIGUE
    sessions_56d: int = 0
    calibrated: bool = False
    error: str | None = None

    @property
    def is_fatigued(self) -> bool:
        return self.score >= self.threshold_filter

    @property
    def is_monotony_spike(self) -> bool:
        """Foster monotony spike on a week with meaningful volume."""
        return (
            self.monotony_7d >= MONOTONY_SPIKE_THRESHOLD
            and self.strain_7d >= self.p85_strain_56d
            and self.week_load_7d >= MONOTONY_RELEVANT_WEEK_LOAD
        )


@dataclass(frozen=True)
class RpeTrend:
    volume_modifier: float = 1.0
    intensity_cap: int | None = None
    label: RpeTrendLabel = RpeTrendLabel.STANDARD


@dataclass(frozen=True)
class PainResponse:
    """Traffic-light classification of the latest session's pain response."""

    status: PainStatus = PainStatus.GREEN
    during_max: float = 0.0
    delta_24h: float = 0.0
    consecutive_symptom_negatives: int = 0
    modifier: float = 1.0
    reason: str = "ok"
