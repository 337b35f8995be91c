"""Pain taxonomy: maps intake pain locations to catalog pain-relief zones."""

from __future__ import annotations

from typing import Any

from rehab_engine.models.user import normalize_lower_set

# Intake location -> pain_relief_zones tags used in the catalog
PAIN_MAPPING: dict[str, tuple[str, ...]] = {
    "lumbar": ("lumbar_general", "lumbosacral", "sciatica"),
    "lumbar_general": ("lumbar_general", "lumbosacral"),
    "low_back": ("lumbar_general", "lumbosacral", "sciatica"),
    "si_joint": ("si_joint", "lumbosacral"),
    "sciatica": ("sciatica", "piriformis", "lumbar_radiculopathy"),
    "hip": ("hip", "piriformis", "glute"),
    "piriformis": ("piriformis", "sciatica", "glute"),
    "knee": ("knee", "patella", "knee_stability"),
    "knee_anterior": ("patella", "knee_anterior", "knee"),
    "patella": ("patella", "knee_anterior"),
    "cervical": ("cervical", "neck", "upper_traps"),
    "neck": ("cervical", "neck", "upper_traps"),
    "thoracic": ("thoracic", "posture", "shoulder_mobility"),
    "shoulder": ("shoulder", "thoracic"),
    "ankle": ("ankle", "calves", "foot"),
    "foot": ("foot", "ankle", "plantar_fascia"),
}

# Locations with no direct entry still pull in their neighbours
ADJACENT_FILTERS: dict[str, tuple[str, ...]] = {
    "si_joint": ("lumbar_general",),
    "hip": ("lumbar_general",),
    "knee": ("knee",),
}
DEFAULT_PAIN_FILTERS = frozenset({"lumbar_general", "thoracic"})


def derive_pain_zone_set(locations: Any) -> frozenset[str]:
    """Return the direct locations plus every mapped pain-relief zone."""
    inputs = normalize_lower_set(locations)
    zones = set(inputs)
    for location in inputs:
        zones.update(PAIN_MAPPING.get(location, ()))
    return frozenset(zones)


def derive_pain_filters(locations: Any) -> frozenset[str]:
    """Direct locations plus adjacency expansions; a default set if none given."""
    inputs = normalize_lower_set(locations)
    if not inputs:
        return DEFAULT_PAIN_FILTERS
    filters = set(inputs)
    for location in inputs:
        filters.update(ADJACENT_FILTERS.get(location, ()))
    return frozenset(filters)
