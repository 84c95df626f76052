"""
Model Trainer.

Builds labeled examples from recent real progress history and fits a
gradient-boosted regression tree ensemble that predicts the review delay in
hours. Features are min-max normalized inside the pipeline so the same
scaling is applied at inference time.

Training never raises to the caller: too little data, storage errors, fit
errors and artifact write errors all end in a logged ``False``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import numpy as np
from loguru import logger
from sklearn.ensemble import HistGradientBoostingRegressor
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import MinMaxScaler

from config import Settings, get_settings
from adaptive_review.core.clock import utcnow
from adaptive_review.core.errors import InsufficientDataError, PersistenceError
from adaptive_review.db.models import ProgressRecord
from adaptive_review.db.repository import UnitOfWork
from adaptive_review.learning.features import FeatureVector, build_feature_vector, feature_matrix
from adaptive_review.learning.pattern_tracker import LearningPatternTracker
from adaptive_review.ml.model_store import ModelStore

HOURS_PER_DAY = 24


@dataclass
class TrainingSet:
    """Feature matrix and labels for one training run."""

    features: np.ndarray
    labels: np.ndarray

    def __len__(self) -> int:
        return int(self.labels.shape[0])


def build_pipeline(
    max_leaf_nodes: int = 20,
    max_iter: int = 100,
    min_samples_leaf: int = 10,
    random_state: int | None = 42,
) -> Pipeline:
    """Min-max scaling followed by a boosted tree regressor."""
    return Pipeline(
        [
            ("scale", MinMaxScaler()),
            (
                "regressor",
                HistGradientBoostingRegressor(
                    max_leaf_nodes=max_leaf_nodes,
                    max_iter=max_iter,
                    min_samples_leaf=min_samples_leaf,
                    random_state=random_state,
                ),
            ),
        ]
    )


class ModelTrainer:
    """Collects training data and publishes fitted models to a ModelStore."""

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

    async def prepare_training_data(self) -> TrainingSet:
        """
        Labeled examples from progress reviewed within the lookback window.

        Only records with at least one successful repetition count, and only
        for learners that already have a learning pattern. The label is the
        record's current interval converted to hours.
        """
        now = utcnow()
        cutoff = now - timedelta(days=self.settings.training_lookback_days)

        records = await self.uow.find(
            ProgressRecord,
            ProgressRecord.last_reviewed_at >= cutoff,
            ProgressRecord.repetitions > 0,
        )
        patterns = await self.patterns.get_all()

        vectors: list[FeatureVector] = []
        labels: list[float] = []
        skipped = 0
        for record in records:
            pattern = patterns.get(record.user_id)
            if pattern is None:
                skipped += 1
                continue
            vectors.append(build_feature_vector(record, pattern, now))
            labels.append(float(record.interval_days * HOURS_PER_DAY))

        if skipped:
            logger.debug("Skipped {} progress records without a learning pattern", skipped)

        return TrainingSet(
            features=feature_matrix(vectors),
            labels=np.asarray(labels, dtype=np.float64),
        )

    async def retrain(self) -> bool:
        """
        Fit a new model on fresh data and swap it in.

        Returns:
            True if a new model is now being served. False if there was not
            enough data or anything failed; the previously loaded model (if
            any) stays in place in both cases.
        """
        try:
            logger.info("Starting model retraining...")
            training_set = await self.prepare_training_data()

            required = self.settings.min_training_examples
            if len(training_set) < required:
                raise InsufficientDataError(len(training_set), required)

            logger.info("Training model on {} examples...", len(training_set))
            pipeline = await asyncio.to_thread(self._fit, training_set)

            await asyncio.to_thread(
                self.model_store.publish, pipeline, example_count=len(training_set)
            )
            logger.info("Model retrained and saved to {}", self.model_store.model_path)
            return True

        except InsufficientDataError as exc:
            logger.warning("Not enough data to train: {}", exc)
            return False
        except PersistenceError as exc:
            logger.error("Model trained but could not be persisted: {}", exc)
            return False
        except Exception:
            logger.exception("Model retraining failed")
            return False

    def _fit(self, training_set: TrainingSet) -> Any:
        pipeline = build_pipeline(**self.settings.get_training_config())
        pipeline.fit(training_set.features, training_set.labels)
        return pipeline
