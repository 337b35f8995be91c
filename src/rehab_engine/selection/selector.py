"""Candidate pooling, anchor selection and weighted picking."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Iterable, Sequence, TypeVar

from rehab_engine.catalog.categories import is_breathing
from rehab_engine.clinical.safety_filter import (
    check_exercise_availability,
    is_exercise_safe_for_fatigue,
)
from rehab_engine.models.enums import (
    ALTERNATIVE_SCORE_RATIO,
    ANCHOR_TARGET_EXPOSURE,
    ANCHOR_TARGET_EXPOSURE_STRENGTH,
    MAX_ANCHOR_FAMILIES,
    MIN_SAFE_CANDIDATES,
    PhaseId,
    Section,
)
from rehab_engine.models.exercise import ExerciseRecord
from rehab_engine.models.readiness import FatigueProfile
from rehab_engine.models.user import ClinicalContext
from rehab_engine.selection.scoring import ScoringContext, score_exercise
from rehab_engine.selection.state import SelectionState

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Pick:
    exercise: ExerciseRecord
    alternatives: tuple[ExerciseRecord, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Anchors:
    families: frozenset[str]
    target_exposure: int


def weighted_pick(
    items: Sequence[T], weight_fn: Callable[[T], float], rng: random.Random
) -> T | None:
    """Draw one item with probability proportional to its weight.

    Returns None when no item has positive weight.
    """
    weights = [max(0.0, weight_fn(item)) for item in items]
    total = sum(weights)
    if total <= 0:
        return None
    r = rng.random() * total
    acc = 0.0
    for item, w in zip(items, weights):
        acc += w
        if w > 0 and r <= acc:
            return item
    # Float round-off: fall back to the last positively weighted item
    return next(item for item, w in zip(reversed(items), reversed(weights)) if w > 0)


def filter_exercise_candidates(
    exercises: Iterable[ExerciseRecord],
    ctx: ClinicalContext,
    fatigue: FatigueProfile | None = None,
) -> list[ExerciseRecord]:
    """Clinically admissible candidates, narrowed further while fatigued.

    The fatigue gate starts at its strictest level and relaxes one level
    when fewer than ``MIN_SAFE_CANDIDATES`` exercises would remain.
    """
    admissible = [ex for ex in exercises if check_exercise_availability(ex, ctx).allowed]
    if fatigue is None or not (fatigue.is_fatigued or fatigue.is_monotony_spike):
        return admissible

    if fatigue.is_monotony_spike:
        logger.info(
            "Monotony spike filter active (week load=%d, monotony=%.2f)",
            fatigue.week_load_7d, fatigue.monotony_7d,
        )
    strict = [ex for ex in admissible if is_exercise_safe_for_fatigue(ex, 0)]
    if len(strict) >= MIN_SAFE_CANDIDATES:
        return strict
    logger.warning(
        "Fatigue filter too strict (%d candidates); relaxing to level 1", len(strict)
    )
    return [ex for ex in admissible if is_exercise_safe_for_fatigue(ex, 1)]


def select_anchors(
    candidates: Iterable[ExerciseRecord],
    scoring: ScoringContext,
) -> Anchors:
    """Pick the movement families to repeat across the week.

    Non-breathing candidates are scored for the main section against a
    blank selection state; the families of the top-scoring exercises become
    anchors.
    """
    strength_phase = scoring.phase is not None and scoring.phase.phase_id is PhaseId.STRENGTH
    target = ANCHOR_TARGET_EXPOSURE_STRENGTH if strength_phase else ANCHOR_TARGET_EXPOSURE
    blank = SelectionState(anchor_target_exposure=target)

    scored = [
        (score_exercise(ex, Section.MAIN, scoring, blank), ex)
        for ex in candidates
        if not is_breathing(ex.category_id)
    ]
    scored = [(s, ex) for s, ex in scored if s > 0]
    scored.sort(key=lambda item: item[0], reverse=True)

    families: list[str] = []
    for _, ex in scored:
        if len(families) >= MAX_ANCHOR_FAMILIES:
            break
        if ex.family_key not in families:
            families.append(ex.family_key)
    return Anchors(frozenset(families), target)


def pick_exercise_for_section(
    section: Section,
    candidates: Sequence[ExerciseRecord],
    scoring: ScoringContext,
    state: SelectionState,
    rng: random.Random,
    extra_filter: Callable[[ExerciseRecord], bool] | None = None,
) -> Pick | None:
    """Draw one exercise for *section* and record it in *state*.

    For the main section, the best-scoring exercise of the same family is
    attached as an alternative when it scores within 95% of the pick.
    """
    pool = [
        ex for ex in candidates
        if ex.id not in state.used_ids and (extra_filter is None or extra_filter(ex))
    ]
    if not pool:
        return None

    picked = weighted_pick(pool, lambda ex: score_exercise(ex, section, scoring, state), rng)
    if picked is None:
        return None

    alternatives: tuple[ExerciseRecord, ...] = ()
    if section is Section.MAIN:
        primary_score = score_exercise(picked, section, scoring, state)
        same_family = [
            ex for ex in pool
            if ex.id != picked.id and ex.family_key == picked.family_key
        ]
        if same_family:
            best_score, best = max(
                ((score_exercise(ex, section, scoring, state), ex) for ex in same_family),
                key=lambda item: item[0],
            )
            if best_score >= primary_score * ALTERNATIVE_SCORE_RATIO:
                alternatives = (best,)

    state.record_pick(picked)
    return Pick(picked, alternatives)
