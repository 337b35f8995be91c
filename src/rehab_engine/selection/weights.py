"""Category weight engine.

Every category present in the candidate pool starts at 1.0. ``WEIGHT_RULES``
is evaluated once, top to bottom; for each rule whose condition holds, its
boosts are applied first and then its scales. Selection probability is
proportional to these weights, so the table order and values are load-bearing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable

from rehab_engine.catalog.categories import (
    is_breathing,
    is_conditioning,
    is_core,
    is_lower_limb,
    is_mobility,
    is_nerve,
)
from rehab_engine.models.enums import CATEGORY_WEIGHT_FLOOR
from rehab_engine.models.exercise import ExerciseRecord
from rehab_engine.models.user import ClinicalContext, UserProfile

Condition = Callable[[UserProfile, ClinicalContext], bool]
CategoryPredicate = Callable[[str], bool]


@dataclass(frozen=True)
class Boost:
    """Additive boost to one category; skipped if the category is absent."""

    category: str
    amount: float
    severe_amount: float | None = None

    def value(self, ctx: ClinicalContext) -> float:
        if ctx.is_severe and self.severe_amount is not None:
            return self.severe_amount
        return self.amount


@dataclass(frozen=True)
class Scale:
    """Multiply every category matching ``predicate``."""

    predicate: CategoryPredicate
    factor: float
    severe_factor: float | None = None

    def value(self, ctx: ClinicalContext) -> float:
        if ctx.is_severe and self.severe_factor is not None:
            return self.severe_factor
        return self.factor


@dataclass(frozen=True)
class WeightRule:
    name: str
    condition: Condition
    boosts: tuple[Boost, ...] = field(default_factory=tuple)
    scales: tuple[Scale, ...] = field(default_factory=tuple)


def _pain(*locations: str) -> Condition:
    return lambda p, c: any(loc in p.pain_locations for loc in locations)


def _diagnosis(*names: str) -> Condition:
    return lambda p, c: any(n in p.medical_diagnosis for n in names)


def _focus(name: str) -> Condition:
    return lambda p, c: name in p.focus_locations


def _component(name: str) -> Condition:
    return lambda p, c: name in p.component_weights


def _is_pain_relief_category(cat: str) -> bool:
    return (
        is_breathing(cat)
        or is_mobility(cat)
        or is_nerve(cat)
        or cat in ("breathing_control", "muscle_relaxation")
    )


WEIGHT_RULES: tuple[WeightRule, ...] = (
    WeightRule(
        "knee_pain",
        _pain("knee", "knee_anterior"),
        boosts=(
            Boost("vmo_activation", 1.0),
            Boost("glute_activation", 2.0),
            Boost("hip_extension", 1.5),
            Boost("knee_stability", 2.2),
            Boost("patellofemoralcontrol", 2.5),
            Boost("terminal_knee_extension", 1.3, severe_amount=1.1),
            Boost("hip_mobility", 0.2),
        ),
        scales=(Scale(is_conditioning, 0.9, severe_factor=0.70),),
    ),
    WeightRule(
        "lumbar_pain",
        _pain("lumbar", "low_back"),
        boosts=(
            Boost("breathing", 0.8),
            Boost("spine_mobility", 0.6),
            Boost("core_anti_extension", 1.8, severe_amount=1.5),
            Boost("hip_mobility", 0.6),
        ),
    ),
    WeightRule(
        "disc_or_spondylolisthesis",
        _diagnosis("disc_herniation", "spondylolisthesis"),
        boosts=(Boost("core_anti_extension", 1.2),),
    ),
    WeightRule(
        "hip_pain",
        _pain("hip"),
        boosts=(Boost("hip_mobility", 1.0), Boost("glute_activation", 0.8)),
    ),
    WeightRule(
        "neck_pain",
        _pain("neck", "cervical"),
        boosts=(
            Boost("thoracic_mobility", 0.8),
            Boost("scapular_stability", 1.3),
            Boost("cervical_motor_control", 1.5),
            Boost("breathing_control", 0.6),
            Boost("muscle_relaxation", 0.4),
        ),
    ),
    WeightRule(
        "patellofemoral_diagnosis",
        _diagnosis("chondromalacia", "patellofemoral"),
        boosts=(Boost("patellofemoralcontrol", 2.0),),
    ),
    WeightRule(
        "ankle_foot_pain",
        _pain("ankle", "foot"),
        boosts=(
            Boost("calves", 0.6),
            Boost("ankle_mobility", 0.8),
            Boost("balance_proprioception", 0.5),
        ),
    ),
    WeightRule(
        "focus_glutes",
        _focus("glutes"),
        boosts=(Boost("glute_activation", 1.5), Boost("hip_extension", 1.5)),
    ),
    WeightRule(
        "focus_abs",
        _focus("abs"),
        boosts=(Boost("core_stability", 1.2), Boost("core_anti_extension", 1.0)),
    ),
    WeightRule(
        "sedentary_work",
        lambda p, c: p.work_type == "sedentary",
        boosts=(
            Boost("thoracic_mobility", 0.7),
            Boost("hip_flexor_stretch", 0.5),
            Boost("glute_activation", 0.6),
        ),
    ),
    WeightRule(
        "standing_work",
        lambda p, c: p.work_type == "standing",
        boosts=(Boost("spine_mobility", 0.4), Boost("calves", 0.4)),
    ),
    WeightRule(
        "running_hobby",
        lambda p, c: p.hobby == "running",
        boosts=(Boost("core_stability", 1.0), Boost("vmo_activation", 0.3)),
    ),
    WeightRule(
        "cycling_hobby",
        lambda p, c: p.hobby == "cycling",
        boosts=(Boost("thoracic_mobility", 0.8), Boost("hip_flexor_stretch", 0.9)),
    ),
    WeightRule(
        "knee_degeneration",
        _diagnosis("chondromalacia", "osteoarthritis"),
        boosts=(
            Boost("vmo_activation", 0.3),
            Boost("glute_activation", 1.2),
            Boost("hip_extension", 0.8),
        ),
        scales=(Scale(is_conditioning, 0.9),),
    ),
    WeightRule(
        "scoliosis",
        _diagnosis("scoliosis"),
        boosts=(Boost("core_anti_rotation", 0.6), Boost("core_anti_lateral_flexion", 0.6)),
    ),
    WeightRule(
        "sciatic_irritation",
        lambda p, c: "piriformis" in p.medical_diagnosis
        or "sciatica" in p.pain_locations
        or "sciatica" in c.pain_filters,
        boosts=(Boost("nerve_flossing", 2.0, severe_amount=1.5), Boost("glute_activation", 0.4)),
    ),
    WeightRule(
        "foot_injury",
        lambda p, c: "foot_injury" in c.restrictions,
        scales=(Scale(is_lower_limb, 0.85), Scale(is_conditioning, 0.85)),
    ),
    WeightRule(
        "no_kneeling",
        lambda p, c: "no_kneeling" in c.restrictions,
        boosts=(Boost("core_stability", 0.3),),
    ),
    WeightRule("prefers_mobility", _component("mobility"), scales=(Scale(is_mobility, 1.35),)),
    WeightRule(
        "prefers_strength",
        _component("strength"),
        scales=(Scale(lambda cat: is_core(cat) or is_lower_limb(cat), 1.25),),
    ),
    WeightRule(
        "prefers_conditioning", _component("conditioning"), scales=(Scale(is_conditioning, 1.45),)
    ),
    WeightRule(
        "goal_pain_relief",
        lambda p, c: p.primary_goal == "pain_relief",
        scales=(
            Scale(_is_pain_relief_category, 1.2),
            Scale(is_conditioning, 0.8),
            Scale(is_core, 1.15),
        ),
    ),
    WeightRule(
        "goal_fat_loss",
        lambda p, c: p.primary_goal == "fat_loss",
        scales=(Scale(is_conditioning, 1.3),),
    ),
)


def init_category_weights(exercises: Iterable[ExerciseRecord]) -> dict[str, float]:
    return {ex.category_id or "uncategorized": 1.0 for ex in exercises}


def apply_weight_rule(weights: dict[str, float], rule: WeightRule, ctx: ClinicalContext) -> None:
    """Apply one matched rule in place: boosts, then scales."""
    for boost in rule.boosts:
        if boost.category in weights:
            weights[boost.category] += boost.value(ctx)
    for scale in rule.scales:
        factor = scale.value(ctx)
        for cat in weights:
            if scale.predicate(cat):
                weights[cat] *= factor


def build_category_weights(
    exercises: Iterable[ExerciseRecord],
    profile: UserProfile,
    ctx: ClinicalContext,
    rules: tuple[WeightRule, ...] = WEIGHT_RULES,
) -> dict[str, float]:
    """Build the per-category selection weights for this user.

    Args:
        exercises: Candidate pool (defines which categories exist).
        profile: User intake profile.
        ctx: Clinical context (severity, restrictions, pain filters).
        rules: Rule table; defaults to ``WEIGHT_RULES``.

    Returns:
        Mapping category id -> weight, every weight >= CATEGORY_WEIGHT_FLOOR.
    """
    weights = init_category_weights(exercises)
    for rule in rules:
        if rule.condition(profile, ctx):
            apply_weight_rule(weights, rule, ctx)
    return {cat: max(CATEGORY_WEIGHT_FLOOR, w) for cat, w in weights.items()}
