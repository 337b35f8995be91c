"""Mutable selection bookkeeping for one planning cycle."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from rehab_engine.models.enums import ANCHOR_TARGET_EXPOSURE
from rehab_engine.models.exercise import ExerciseRecord


@dataclass
class SelectionState:
    """Usage counters consulted by the scorer's variety and freshness terms.

    Weekly counters live for the whole plan; session counters are cleared by
    ``start_session`` before each training day. The affinity and last-seen
    maps are inputs and are never mutated.
    """

    anchor_families: frozenset[str] = field(default_factory=frozenset)
    anchor_target_exposure: int = ANCHOR_TARGET_EXPOSURE
    affinity: dict[str, float] = field(default_factory=dict)
    last_seen_days: dict[str, int] = field(default_factory=dict)

    used_ids: set[str] = field(default_factory=set)
    weekly_usage: Counter = field(default_factory=Counter)
    weekly_category_usage: Counter = field(default_factory=Counter)
    weekly_family_usage: Counter = field(default_factory=Counter)
    session_category_usage: Counter = field(default_factory=Counter)
    session_family_usage: Counter = field(default_factory=Counter)
    session_plane_usage: Counter = field(default_factory=Counter)

    def start_session(self) -> None:
        self.used_ids.clear()
        self.session_category_usage.clear()
        self.session_family_usage.clear()
        self.session_plane_usage.clear()

    def record_pick(self, exercise: ExerciseRecord) -> None:
        family = exercise.family_key
        self.used_ids.add(exercise.id)
        self.weekly_usage[exercise.id] += 1
        self.weekly_category_usage[exercise.category_id] += 1
        self.weekly_family_usage[family] += 1
        self.session_category_usage[exercise.category_id] += 1
        self.session_family_usage[family] += 1
        self.session_plane_usage[exercise.primary_plane] += 1

    def is_anchor(self, exercise: ExerciseRecord) -> bool:
        return exercise.family_key in self.anchor_families
