"""
Feature vectors for the review-delay regressor.

A progress record plus the learner's pattern map onto seven numeric features
in a fixed order. The mastery flag travels with the vector (the explanation
text uses it) but is not part of the trained feature set.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from adaptive_review.db.models import ProgressRecord
    from adaptive_review.learning.pattern_tracker import PatternView

SECONDS_PER_DAY = 86400.0

FEATURE_NAMES: tuple[str, ...] = (
    "ease_factor",
    "interval_days",
    "repetitions",
    "days_since_last_review",
    "user_retention_rate",
    "user_forgetting_speed",
    "correct_after_break",
)


@dataclass(frozen=True)
class FeatureVector:
    """One regressor input."""

    ease_factor: float
    interval_days: float
    repetitions: float
    days_since_last_review: float
    user_retention_rate: float
    user_forgetting_speed: float
    correct_after_break: float
    is_mastered: bool = False

    def as_array(self) -> np.ndarray:
        """The seven trained features in FEATURE_NAMES order."""
        return np.array([getattr(self, name) for name in FEATURE_NAMES], dtype=np.float64)


def days_since(last_reviewed_at: datetime | None, now: datetime) -> float:
    """Fractional days elapsed since the last review; 0 if never reviewed or in the future."""
    if last_reviewed_at is None:
        return 0.0
    return max(0.0, (now - last_reviewed_at).total_seconds() / SECONDS_PER_DAY)


def build_feature_vector(
    progress: ProgressRecord,
    pattern: PatternView,
    now: datetime,
) -> FeatureVector:
    """
    Build the feature vector for a stored progress record.

    correct_after_break has no dedicated counter in storage, so the
    repetition count stands in for it at both training and inference time.

    Args:
        progress: Progress record for the (user, flashcard) pair
        pattern: The learner's pattern (or defaults when none is stored)
        now: Reference time for days_since_last_review

    Returns:
        FeatureVector with is_mastered carried alongside
    """
    return FeatureVector(
        ease_factor=float(progress.ease_factor),
        interval_days=float(progress.interval_days),
        repetitions=float(progress.repetitions),
        days_since_last_review=days_since(progress.last_reviewed_at, now),
        user_retention_rate=float(pattern.average_retention_rate),
        user_forgetting_speed=float(pattern.forgetting_speed),
        correct_after_break=float(progress.repetitions),
        is_mastered=bool(progress.is_mastered),
    )


def feature_matrix(vectors: list[FeatureVector]) -> np.ndarray:
    """Stack vectors into an (n, 7) matrix."""
    if not vectors:
        return np.empty((0, len(FEATURE_NAMES)), dtype=np.float64)
    return np.vstack([v.as_array() for v in vectors])
