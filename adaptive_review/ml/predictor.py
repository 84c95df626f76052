"""
Review Predictor.

Answers "how many hours until this learner should see this flashcard again".
The decision is made once, in decide(), and comes back as a tagged outcome:

    Predicted(prediction)  - the model produced a usable value
    FellBack(cause)        - the model is untrained or failed; use the fallback
    NotFound()             - no progress record for the pair

predict() turns the outcome into the public result and never raises. The
fallback schedules interval_days x 24 hours, the delay the classic
spaced-repetition scheduler already assigned.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Union

from loguru import logger

from config import Settings, get_settings
from adaptive_review.core.clock import utcnow
from adaptive_review.core.errors import InferenceError, ModelUnavailableError
from adaptive_review.db.models import ProgressRecord
from adaptive_review.db.repository import UnitOfWork
from adaptive_review.learning.features import FeatureVector, build_feature_vector
from adaptive_review.learning.pattern_tracker import LearningPatternTracker, PatternView
from adaptive_review.ml.model_store import ModelStore
from adaptive_review.ml.schemas import Prediction

MIN_REVIEW_HOURS = 1.0

HIGH_CONFIDENCE = 0.85
BASE_CONFIDENCE = 0.5
FALLBACK_CONFIDENCE = 0.3

REASON_MASTERED = "mastered, spaced for retention"
REASON_EARLY_STAGE = "early stage, frequent review"
REASON_HIGH_RETENTION = "high retention, interval extended"
REASON_FAST_FORGETTING = "fast forgetting, review sooner"
REASON_DEFAULT = "optimal interval from history"
REASON_FALLBACK = "standard spaced-repetition algorithm"


@dataclass(frozen=True)
class Predicted:
    prediction: Prediction


@dataclass(frozen=True)
class FellBack:
    cause: str


@dataclass(frozen=True)
class NotFound:
    pass


Outcome = Union[Predicted, FellBack, NotFound]


def clamp_hours(hours: float, max_hours: float) -> float:
    """Bound a delay to [1 hour, max_hours]."""
    return min(max(hours, MIN_REVIEW_HOURS), max_hours)


def explain(features: FeatureVector) -> str:
    """Human-readable reason; first matching rule wins."""
    if features.is_mastered:
        return REASON_MASTERED
    if features.repetitions < 3:
        return REASON_EARLY_STAGE
    if features.user_retention_rate > 80:
        return REASON_HIGH_RETENTION
    if features.user_forgetting_speed > 2.0:
        return REASON_FAST_FORGETTING
    return REASON_DEFAULT


class ReviewPredictor:
    """Model-backed review delay prediction with a deterministic fallback."""

    def __init__(
        self,
        uow: UnitOfWork,
        model_store: ModelStore,
        settings: Settings | None = None,
    ):
        self.uow = uow
        self.model_store = model_store
        self.settings = settings or get_settings()
        self.patterns = LearningPatternTracker(
            uow,
            default_retention_rate=self.settings.default_retention_rate,
            default_forgetting_speed=self.settings.default_forgetting_speed,
        )

    async def predict(self, user_id: str, flashcard_id: int) -> Prediction | None:
        """
        Predict the next review delay.

        Returns:
            A Prediction (model-backed or fallback), or None if the learner
            has no progress on this flashcard or even the fallback failed.
        """
        outcome = await self.decide(user_id, flashcard_id)

        if isinstance(outcome, Predicted):
            return outcome.prediction
        if isinstance(outcome, NotFound):
            return None

        logger.debug(
            "Fallback for user={} flashcard={}: {}", user_id, flashcard_id, outcome.cause
        )
        return await self.fallback(user_id, flashcard_id)

    async def decide(self, user_id: str, flashcard_id: int) -> Outcome:
        if not self.model_store.is_trained():
            return FellBack("model not trained")

        try:
            progress = await self._find_progress(user_id, flashcard_id)
            if progress is None:
                return NotFound()

            pattern = await self.patterns.get(user_id)
            now = utcnow()
            features = build_feature_vector(progress, pattern, now)
            raw_hours = self.model_store.predict(features)
        except ModelUnavailableError:
            return FellBack("model not trained")
        except InferenceError as exc:
            logger.warning(
                "Inference failed for user={} flashcard={}: {}", user_id, flashcard_id, exc
            )
            return FellBack(str(exc))
        except Exception as exc:
            logger.exception(
                "Prediction failed for user={} flashcard={}", user_id, flashcard_id
            )
            return FellBack(str(exc))

        hours = clamp_hours(raw_hours, self.settings.max_review_hours)
        return Predicted(
            Prediction(
                flashcard_id=flashcard_id,
                user_id=user_id,
                optimal_review_hours=hours,
                confidence=self._confidence(pattern),
                recommended_review_date=now + timedelta(hours=hours),
                reason=explain(features),
                created_at=now,
                source="model",
            )
        )

    async def fallback(self, user_id: str, flashcard_id: int) -> Prediction | None:
        """Classic interval-based schedule; logs and returns None on failure."""
        try:
            progress = await self._find_progress(user_id, flashcard_id)
            if progress is None:
                return None

            now = utcnow()
            hours = clamp_hours(
                float(progress.interval_days * 24), self.settings.max_review_hours
            )
            return Prediction(
                flashcard_id=flashcard_id,
                user_id=user_id,
                optimal_review_hours=hours,
                confidence=FALLBACK_CONFIDENCE,
                recommended_review_date=now + timedelta(hours=hours),
                reason=REASON_FALLBACK,
                created_at=now,
                source="fallback",
            )
        except Exception:
            logger.exception(
                "Fallback prediction failed for user={} flashcard={}", user_id, flashcard_id
            )
            return None

    def _confidence(self, pattern: PatternView) -> float:
        if pattern.sessions_processed > self.settings.high_confidence_sessions:
            return HIGH_CONFIDENCE
        return BASE_CONFIDENCE

    async def _find_progress(self, user_id: str, flashcard_id: int) -> ProgressRecord | None:
        return await self.uow.find_one(
            ProgressRecord,
            ProgressRecord.user_id == user_id,
            ProgressRecord.flashcard_id == flashcard_id,
        )
