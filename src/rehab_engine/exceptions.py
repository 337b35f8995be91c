"""Custom exception hierarchy for the plan engine."""

from __future__ import annotations

from rehab_engine.models.enums import CatalogError


class RehabEngineError(Exception):
    """Base exception for all rehab_engine errors."""


class CatalogValidationError(RehabEngineError):
    """A raw exercise row failed structural validation and was rejected."""

    def __init__(self, code: CatalogError, exercise_id: str | None = None) -> None:
        super().__init__(f"{code.value} (exercise={exercise_id or '?'})")
        self.code = code
        self.exercise_id = exercise_id


class FeedbackValidationError(RehabEngineError):
    """A pain-monitoring feedback payload does not match its schema."""


class NoSafeExercisesError(RehabEngineError):
    """Too few exercises survived the safety filters to build a plan."""

    def __init__(self, candidate_count: int, minimum: int) -> None:
        super().__init__(
            f"Only {candidate_count} safe exercises available (minimum {minimum})"
        )
        self.candidate_count = candidate_count
        self.minimum = minimum


class PhaseConfigurationError(RehabEngineError):
    """Unknown blueprint or phase id: a fatal configuration error."""
