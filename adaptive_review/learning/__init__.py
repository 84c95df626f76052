"""
Learning: per-learner features for the review-delay model.

- features: fixed-order feature vectors built from progress + pattern
- pattern_tracker: lazily created, two-point-blended learner aggregates
"""

from adaptive_review.learning.features import (
    FEATURE_NAMES,
    FeatureVector,
    build_feature_vector,
    days_since,
    feature_matrix,
)
from adaptive_review.learning.pattern_tracker import LearningPatternTracker, PatternView

__all__ = [
    "FEATURE_NAMES",
    "FeatureVector",
    "build_feature_vector",
    "days_since",
    "feature_matrix",
    "LearningPatternTracker",
    "PatternView",
]
