"""PlanEngine: the orchestrator that turns a request into a weekly plan."""

from __future__ import annotations

import dataclasses
import logging
import random
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Mapping, Sequence

from rehab_engine.catalog.normalizer import normalize_catalog
from rehab_engine.clinical.context import build_user_context
from rehab_engine.exceptions import NoSafeExercisesError
from rehab_engine.feedback.pain_response import analyze_pain_response
from rehab_engine.feedback.rpe_trend import analyze_rpe_trend
from rehab_engine.math.fatigue import calculate_fatigue_profile
from rehab_engine.models.enums import MIN_SAFE_CANDIDATES, PhaseId
from rehab_engine.models.phase_state import PhaseState
from rehab_engine.models.plan import WeeklyPlan
from rehab_engine.models.readiness import FatigueProfile, PainResponse, RpeTrend
from rehab_engine.models.session import SessionRecord
from rehab_engine.models.user import UserProfile
from rehab_engine.phases.catalog import PhaseContext
from rehab_engine.phases.state_machine import (
    PhaseSignals,
    apply_goal_change_policy,
    apply_override_update,
    check_detraining,
    phase_context,
    resolve_active_phase,
)
from rehab_engine.prescription.duration import PaceSettings
from rehab_engine.schedule.validator import validate_and_correct_plan
from rehab_engine.schedule.weekly import build_weekly_plan
from rehab_engine.selection.scoring import ScoringContext
from rehab_engine.selection.selector import filter_exercise_candidates, select_anchors
from rehab_engine.selection.weights import WEIGHT_RULES, WeightRule, build_category_weights
from rehab_engine.serialization import phase_state_from_dict

__all__ = ["PhaseContext", "PlanEngine", "PlanRequest", "PlanResult"]

logger = logging.getLogger(__name__)


def _phase_state(value: PhaseState | Mapping[str, Any] | None) -> PhaseState | None:
    if value is None or isinstance(value, PhaseState):
        return value
    return phase_state_from_dict(value)


@dataclass(frozen=True)
class PlanRequest:
    """Everything one plan generation needs, already fetched into memory."""

    catalog: Sequence[Mapping[str, Any]]
    profile: UserProfile
    history: Sequence[SessionRecord] = field(default_factory=tuple)
    affinity: Mapping[str, float] = field(default_factory=dict)
    pace_map: Mapping[str, float] = field(default_factory=dict)
    last_seen_days: Mapping[str, int] = field(default_factory=dict)
    blacklist: frozenset[str] = field(default_factory=frozenset)
    phase_state: PhaseState | None = None
    start_date: date | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PlanRequest:
        """Build a request from plain JSON-like mappings."""
        profile = data.get("profile") or {}
        start = data.get("start_date")
        return cls(
            catalog=tuple(data.get("catalog") or ()),
            profile=profile if isinstance(profile, UserProfile) else UserProfile.from_dict(profile),
            history=tuple(
                s if isinstance(s, SessionRecord) else SessionRecord.from_dict(s)
                for s in data.get("history") or ()
            ),
            affinity={str(k): float(v) for k, v in (data.get("affinity") or {}).items()},
            pace_map={str(k): float(v) for k, v in (data.get("pace_map") or {}).items()},
            last_seen_days={str(k): int(v) for k, v in (data.get("last_seen_days") or {}).items()},
            blacklist=frozenset(str(b) for b in data.get("blacklist") or ()),
            phase_state=_phase_state(data.get("phase_state")),
            start_date=date.fromisoformat(start) if isinstance(start, str) else start,
        )


@dataclass(frozen=True)
class PlanResult:
    plan: WeeklyPlan
    fatigue: FatigueProfile
    rpe_trend: RpeTrend
    pain: PainResponse
    phase_state: PhaseState
    active_phase_id: PhaseId


class PlanEngine:
    """Runs the generation pipeline end to end.

    Usage:
        engine = PlanEngine()
        result = engine.generate(request, random.Random(42))
    """

    def __init__(self, weight_rules: tuple[WeightRule, ...] = WEIGHT_RULES) -> None:
        self.weight_rules = weight_rules

    def generate(self, request: PlanRequest, rng: random.Random | None = None) -> PlanResult:
        """Generate a 7-day plan.

        Args:
            request: Catalog, profile, history and preference inputs.
            rng: Random source for the weighted draws; seed it for
                reproducible plans.

        Returns:
            PlanResult with the validated plan, the readiness analyses and
            the (possibly updated) phase state to persist.

        Raises:
            NoSafeExercisesError: fewer than 5 exercises survive the filters.
            PhaseConfigurationError: a stored phase state names an unknown phase.
        """
        rng = rng or random.Random()
        profile = request.profile
        today = request.start_date or datetime.now(timezone.utc).date()

        exercises = normalize_catalog(request.catalog)
        ctx = build_user_context(profile, request.blacklist)

        fatigue = calculate_fatigue_profile(request.history, today)
        rpe = analyze_rpe_trend(request.history, today)
        pain = analyze_pain_response(request.history)

        cap = ctx.difficulty_cap
        if rpe.intensity_cap is not None:
            cap = min(cap, rpe.intensity_cap)
        ctx = dataclasses.replace(ctx, difficulty_cap=cap, pain_status=pain.status)

        state, phase = self._resolve_phase(request.phase_state, profile, ctx.is_severe, pain, fatigue, today)

        candidates = filter_exercise_candidates(exercises, ctx, fatigue)
        if len(candidates) < MIN_SAFE_CANDIDATES:
            raise NoSafeExercisesError(len(candidates), MIN_SAFE_CANDIDATES)

        weights = build_category_weights(candidates, profile, ctx, self.weight_rules)
        scoring = ScoringContext(
            profile=profile,
            ctx=ctx,
            category_weights=weights,
            phase=phase,
            fatigue=fatigue,
            pain_status=pain.status,
        )
        anchors = select_anchors(candidates, scoring)
        plan = build_weekly_plan(
            candidates,
            scoring,
            anchors,
            today,
            rng,
            pace=PaceSettings.for_profile(profile, request.pace_map),
            volume_modifier=rpe.volume_modifier * pain.modifier,
            affinity=dict(request.affinity),
            last_seen_days=dict(request.last_seen_days),
        )
        plan = validate_and_correct_plan(plan, phase)

        logger.info(
            "Generated plan: %d candidates, phase=%s%s, fatigue=%d, rpe=%s, pain=%s",
            len(candidates), phase.phase_id.value, " (override)" if phase.is_override else "",
            fatigue.score, rpe.label.value, pain.status.value,
        )
        return PlanResult(
            plan=plan,
            fatigue=fatigue,
            rpe_trend=rpe,
            pain=pain,
            phase_state=state,
            active_phase_id=phase.phase_id,
        )

    @staticmethod
    def _resolve_phase(
        stored: PhaseState | None,
        profile: UserProfile,
        is_severe: bool,
        pain: PainResponse,
        fatigue: FatigueProfile,
        today: date,
    ) -> tuple[PhaseState, PhaseContext]:
        state = apply_goal_change_policy(stored, profile.primary_goal, profile, today)
        state = check_detraining(state, today)
        resolution = resolve_active_phase(
            state, PhaseSignals.from_readiness(is_severe, pain.status, fatigue)
        )
        if resolution.suggested is not None:
            state = apply_override_update(state, resolution.suggested, today)
        return state, phase_context(state, resolution)
