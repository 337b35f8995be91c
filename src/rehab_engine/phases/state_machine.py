"""Phase progression state machine.

The base phase walks the goal blueprint's sequence, advancing when its
session target is reached or softly when its time cap runs out. Safety
overrides (rehab, deload) temporarily replace the effective phase without
touching the base counters. Every operation is pure: it returns a new
``PhaseState`` and never mutates its input.

Reference:
    Issurin (2010). New horizons for the methodology and physiology of
    training periodization. Sports Med 40(3).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import date

from rehab_engine.models.enums import (
    DETRAINING_GAP_DAYS,
    DETRAINING_RETENTION,
    PHASE_HISTORY_MAX_ITEMS,
    ROM_KNEE_FLOOR_DEG,
    ROM_KNEE_START_DEG,
    SPIRAL_CYCLE_INCREMENT,
    SPIRAL_MAX_BIAS,
    ExperienceTier,
    PainStatus,
    PhaseId,
)
from rehab_engine.models.phase_state import (
    BasePhase,
    KneeRom,
    OverridePhase,
    PhaseState,
    PhaseTransition,
    RomProfile,
)
from rehab_engine.models.readiness import FatigueProfile
from rehab_engine.models.user import UserProfile
from rehab_engine.phases.catalog import (
    PhaseContext,
    get_phase_config,
    pick_target_sessions,
    resolve_blueprint,
)

logger = logging.getLogger(__name__)

KNEE_ROM_PAIN_LOCATIONS = frozenset({"knee", "knee_anterior", "patella"})
KNEE_ROM_DIAGNOSES = frozenset({"chondromalacia", "meniscus_tear", "knee_oa"})
ROM_REGRESSION_STEPS = 2


@dataclass(frozen=True)
class PhaseSignals:
    """Readiness inputs that can trigger or clear a safety override."""

    is_severe_pain: bool = False
    pain_status: PainStatus = PainStatus.GREEN
    fatigue_score: int = 0
    threshold_enter: int = 80
    threshold_exit: int = 60
    is_monotony_spike: bool = False

    @classmethod
    def from_readiness(
        cls, is_severe_pain: bool, pain_status: PainStatus, fatigue: FatigueProfile
    ) -> PhaseSignals:
        return cls(
            is_severe_pain=is_severe_pain,
            pain_status=pain_status,
            fatigue_score=fatigue.score,
            threshold_enter=fatigue.threshold_enter,
            threshold_exit=fatigue.threshold_exit,
            is_monotony_spike=fatigue.is_monotony_spike,
        )


@dataclass(frozen=True)
class OverrideSuggestion:
    """Enter ``mode`` or, when ``mode`` is None, leave the current override."""

    mode: PhaseId | None
    reason: str


@dataclass(frozen=True)
class PhaseResolution:
    active_phase_id: PhaseId
    is_override: bool
    suggested: OverrideSuggestion | None = None


def initialize_rom_profile(profile: UserProfile) -> RomProfile:
    """Knee flexion is tracked only for knee pain or knee diagnoses."""
    pain = {p.lower() for p in profile.pain_locations}
    diagnoses = {d.lower() for d in profile.medical_diagnosis}
    if pain & KNEE_ROM_PAIN_LOCATIONS or diagnoses & KNEE_ROM_DIAGNOSES:
        return RomProfile(knee_flexion=KneeRom())
    return RomProfile()


def _new_base_phase(phase_id: PhaseId, experience: ExperienceTier, today: date) -> BasePhase:
    return BasePhase(
        phase_id=phase_id,
        sessions_completed=0,
        target_sessions=pick_target_sessions(phase_id, experience),
        start_date=today,
        cap_weeks=get_phase_config(phase_id).progression.cap_weeks,
    )


def initialize_phase_state(goal: str | None, profile: UserProfile, today: date) -> PhaseState:
    """Fresh state at the first phase of the goal's blueprint."""
    blueprint = resolve_blueprint(goal)
    return PhaseState(
        blueprint_id=blueprint.id,
        sequence=blueprint.sequence,
        base=_new_base_phase(blueprint.sequence[0], profile.experience, today),
        rom=initialize_rom_profile(profile),
    )


def _override_trigger(signals: PhaseSignals) -> OverrideSuggestion | None:
    if signals.is_severe_pain:
        return OverrideSuggestion(PhaseId.REHAB, "severe_pain_reported")
    if signals.pain_status is PainStatus.RED:
        return OverrideSuggestion(PhaseId.REHAB, "pain_flare_up_detected")
    if signals.pain_status is PainStatus.AMBER:
        return OverrideSuggestion(PhaseId.DELOAD, "pain_warning_amber")
    if signals.fatigue_score >= signals.threshold_enter:
        return OverrideSuggestion(PhaseId.DELOAD, "high_fatigue_load")
    if signals.is_monotony_spike:
        return OverrideSuggestion(PhaseId.DELOAD, "monotony_strain_spike")
    return None


def _override_cleared(override: OverridePhase, signals: PhaseSignals) -> bool:
    if override.sessions_completed < 1:
        return False
    if override.mode is PhaseId.REHAB:
        return not signals.is_severe_pain and signals.pain_status is not PainStatus.RED
    return (
        signals.pain_status is PainStatus.GREEN
        and signals.fatigue_score < signals.threshold_exit
    )


def resolve_active_phase(state: PhaseState, signals: PhaseSignals) -> PhaseResolution:
    """Decide the effective phase for today's plan.

    Triggers are checked in priority order: severe pain, red, amber,
    fatigue above the enter threshold, monotony spike. A trigger that
    differs from the running override suggests entering it. Otherwise a
    running override is kept until its exit conditions hold and at least
    one session was done under it.

    Returns:
        The effective phase, whether it is an override, and an optional
        suggestion for ``apply_override_update``.
    """
    trigger = _override_trigger(signals)
    current = state.override
    if trigger is not None and (current is None or current.mode is not trigger.mode):
        return PhaseResolution(trigger.mode, True, trigger)

    if current is not None:
        if _override_cleared(current, signals):
            return PhaseResolution(
                state.base.phase_id, False, OverrideSuggestion(None, "condition_cleared")
            )
        return PhaseResolution(current.mode, True)

    return PhaseResolution(state.base.phase_id, False)


def apply_override_update(state: PhaseState, suggestion: OverrideSuggestion, today: date) -> PhaseState:
    """Enter or leave a safety override.

    Entering because of pain regresses the knee ROM limit by two steps
    (never below 45°) and restarts the clean-session streak.
    """
    if suggestion.mode is None:
        logger.info("Exiting override %s (%s)", state.active_phase_id.value, suggestion.reason)
        return replace(state, override=None)

    logger.info("Entering override %s (%s)", suggestion.mode.value, suggestion.reason)
    override = OverridePhase(mode=suggestion.mode, reason=suggestion.reason, triggered_at=today)
    rom = state.rom
    knee = rom.knee_flexion
    if "pain" in suggestion.reason and knee is not None:
        limit = max(ROM_KNEE_FLOOR_DEG, knee.current_limit - knee.step * ROM_REGRESSION_STEPS)
        logger.info("Pain override: knee flexion limit %d -> %d", knee.current_limit, limit)
        rom = replace(rom, knee_flexion=replace(knee, current_limit=limit, consecutive_clean_sessions=0))
    return replace(state, override=override, rom=rom)


def update_rom_progress(rom: RomProfile, pain_status: PainStatus | None) -> RomProfile:
    """Green sessions build the clean streak; amber or red resets it."""
    knee = rom.knee_flexion
    if knee is None or pain_status is None:
        return rom
    if pain_status is PainStatus.GREEN:
        clean = knee.consecutive_clean_sessions + 1
        if clean >= knee.required_clean_sessions and knee.current_limit < knee.max_limit:
            limit = min(knee.max_limit, knee.current_limit + knee.step)
            logger.info("Knee flexion limit raised to %d", limit)
            return replace(rom, knee_flexion=replace(knee, current_limit=limit, consecutive_clean_sessions=0))
        return replace(rom, knee_flexion=replace(knee, consecutive_clean_sessions=clean))
    return replace(rom, knee_flexion=replace(knee, consecutive_clean_sessions=0))


def _weeks_between(start: date, end: date) -> float:
    return max(0.0, (end - start).days / 7)


def _push_history(
    history: tuple[PhaseTransition, ...], transition: PhaseTransition
) -> tuple[PhaseTransition, ...]:
    return ((transition,) + history)[:PHASE_HISTORY_MAX_ITEMS]


def advance_phase(
    state: PhaseState,
    reason: str,
    today: date,
    experience: ExperienceTier = ExperienceTier.NONE,
    soft: bool = False,
) -> PhaseState:
    """Move to the next phase of the blueprint, wrapping into a new cycle."""
    index = state.phase_index + 1
    cycle = state.cycle
    spiral = state.spiral_bias
    if index >= len(state.sequence):
        index = 0
        cycle += 1
        spiral = min(SPIRAL_MAX_BIAS, round(spiral + SPIRAL_CYCLE_INCREMENT, 6))

    old = state.base
    new_phase_id = state.sequence[index]
    base = replace(_new_base_phase(new_phase_id, experience, today), is_soft_progression=soft)
    transition = PhaseTransition(
        date=today,
        from_phase=old.phase_id.value,
        to_phase=new_phase_id.value,
        reason=reason,
        cycle=cycle,
        sessions=old.sessions_completed,
        target=old.target_sessions,
    )
    logger.info(
        "Phase %s -> %s (%s, cycle %d)", old.phase_id.value, new_phase_id.value, reason, cycle
    )
    return replace(
        state,
        base=base,
        phase_index=index,
        cycle=cycle,
        spiral_bias=spiral,
        history=_push_history(state.history, transition),
    )


def record_completed_session(
    state: PhaseState,
    completed_phase_id: PhaseId,
    today: date,
    pain_status: PainStatus | None = None,
    experience: ExperienceTier = ExperienceTier.NONE,
) -> PhaseState:
    """Count a finished session against the phase it was done in.

    Args:
        state: Current phase state.
        completed_phase_id: Phase the session was generated under.
        today: Completion date.
        pain_status: Pain classification of this session, drives ROM progress.
        experience: Used to size the next phase's session target.

    Returns:
        Updated state; a base phase that reached its target (or its time
        cap) has already advanced.
    """
    state = replace(state, rom=update_rom_progress(state.rom, pain_status))

    override = state.override
    if override is not None:
        # Base counters stay frozen while an override runs
        if override.mode is not completed_phase_id:
            return state
        return replace(
            state, override=replace(override, sessions_completed=override.sessions_completed + 1)
        )

    base = state.base
    if base.phase_id is not completed_phase_id:
        return state

    base = replace(base, sessions_completed=base.sessions_completed + 1, last_session_date=today)
    state = replace(state, base=base)
    if base.sessions_completed >= base.target_sessions:
        return advance_phase(state, "target_reached", today, experience)
    if _weeks_between(base.start_date, today) >= base.cap_weeks:
        return advance_phase(state, "time_cap", today, experience, soft=True)
    return state


def check_detraining(state: PhaseState, today: date) -> PhaseState:
    """Halve base progress after a long break and restart knee ROM at 60°."""
    last = state.base.last_session_date
    if last is None:
        return state
    gap = (today - last).days
    if gap <= DETRAINING_GAP_DAYS:
        return state

    logger.info("Detraining detected (%d days since last session)", gap)
    base = replace(
        state.base,
        sessions_completed=math.floor(state.base.sessions_completed * DETRAINING_RETENTION),
    )
    rom = state.rom
    if rom.knee_flexion is not None:
        rom = replace(rom, knee_flexion=replace(rom.knee_flexion, current_limit=ROM_KNEE_START_DEG))
    return replace(state, base=base, rom=rom)


def apply_goal_change_policy(
    state: PhaseState | None, goal: str | None, profile: UserProfile, today: date
) -> PhaseState:
    """Restart the macro-cycle when the goal maps to a different blueprint.

    The ROM profile and any running override survive the reset.
    """
    blueprint = resolve_blueprint(goal)
    if state is not None and state.blueprint_id == blueprint.id:
        return state

    fresh = initialize_phase_state(goal, profile, today)
    transition = PhaseTransition(
        date=today,
        from_phase=state.blueprint_id if state is not None else "none",
        to_phase=blueprint.id,
        reason="goal_change_reset",
    )
    logger.info("Goal change: blueprint %s -> %s", transition.from_phase, blueprint.id)
    if state is not None:
        fresh = replace(fresh, rom=state.rom, override=state.override)
    return replace(fresh, history=_push_history(fresh.history, transition))


def phase_context(state: PhaseState, resolution: PhaseResolution | None = None) -> PhaseContext:
    """Generator view of the effective phase."""
    phase_id = resolution.active_phase_id if resolution is not None else state.active_phase_id
    is_override = resolution.is_override if resolution is not None else state.is_override
    return PhaseContext.for_phase(
        phase_id,
        is_override=is_override,
        spiral_bias=state.spiral_bias,
        is_soft_progression=state.base.is_soft_progression,
        rom=state.rom,
    )
