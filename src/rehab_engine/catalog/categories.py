"""Category family predicates.

Category ids are free-form catalog tags (e.g. ``core_anti_extension``,
``hip_flexor_stretch``); families are recognized by substring.
"""

from __future__ import annotations

_BREATHING = ("breathing", "breath", "relax", "parasymp")
_MOBILITY = ("mobility", "stretch", "flexor", "decompression")
_CONDITIONING = ("conditioning", "cardio", "aerobic")
_LOWER_LIMB = (
    "knee", "vmo", "calf", "calves", "ankle", "glute", "hip_extension",
    "unilateral", "hamstring", "quad", "eccentric", "nerve",
)


def _contains_any(category: str, needles: tuple[str, ...]) -> bool:
    cat = str(category or "").lower()
    return any(n in cat for n in needles)


def is_breathing(category: str) -> bool:
    return _contains_any(category, _BREATHING)


def is_mobility(category: str) -> bool:
    return _contains_any(category, _MOBILITY)


def is_conditioning(category: str) -> bool:
    return _contains_any(category, _CONDITIONING)


def is_core(category: str) -> bool:
    cat = str(category or "").lower()
    return cat.startswith("core_") or cat == "core" or "core_stability" in cat or "anti_" in cat


def is_lower_limb(category: str) -> bool:
    return _contains_any(category, _LOWER_LIMB)


def is_nerve(category: str) -> bool:
    return "nerve" in str(category or "").lower()


def is_relaxation(category: str) -> bool:
    """Breathing / down-regulation categories favoured for pain relief."""
    cat = str(category or "").lower()
    return is_breathing(cat) or cat in ("breathing_control", "muscle_relaxation")
