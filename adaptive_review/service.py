"""
Public operations of the adaptive review engine.

One AdaptiveReviewService wraps one database session. The ModelStore is
shared process-wide and injected, so every service instance predicts with
the same served model and sees a retrain as soon as it is published.

Usage:
    store = ModelStore.from_settings()
    async with async_session_scope() as session:
        service = AdaptiveReviewService(session, store)
        plan = await service.generate_study_plan("user-1")
"""

from __future__ import annotations

import random
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_settings
from adaptive_review.db.repository import UnitOfWork
from adaptive_review.ml.curator import CsvSource, TrainingDataCurator
from adaptive_review.ml.model_store import ModelStore
from adaptive_review.ml.predictor import ReviewPredictor
from adaptive_review.ml.schemas import ImportResult, ManualTrainingRow, Prediction, TrainingStats
from adaptive_review.ml.study_plan import StudyPlanGenerator
from adaptive_review.ml.trainer import ModelTrainer


class AdaptiveReviewService:
    """Facade over prediction, planning, training and data curation."""

    def __init__(
        self,
        session: AsyncSession,
        model_store: ModelStore,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ):
        self.settings = settings or get_settings()
        self.model_store = model_store
        self.uow = UnitOfWork(session)

        self.predictor = ReviewPredictor(self.uow, model_store, self.settings)
        self.planner = StudyPlanGenerator(self.uow, self.predictor, self.settings)
        self.trainer = ModelTrainer(self.uow, model_store, self.settings)
        self.curator = TrainingDataCurator(self.uow, model_store, self.settings, rng=rng)

    # Prediction

    async def predict_next_review_time(self, user_id: str, flashcard_id: int) -> Prediction | None:
        return await self.predictor.predict(user_id, flashcard_id)

    async def generate_study_plan(self, user_id: str) -> list[Prediction]:
        return await self.planner.generate_plan(user_id)

    # Model

    async def retrain_model(self) -> bool:
        return await self.trainer.retrain()

    def is_model_trained(self) -> bool:
        return self.model_store.is_trained()

    # Training data

    async def add_manual_training_data(self, rows: Iterable[ManualTrainingRow]) -> ImportResult:
        return await self.curator.add_manual_training_data(rows)

    async def import_from_csv(self, source: CsvSource) -> ImportResult:
        return await self.curator.import_from_csv(source)

    async def generate_synthetic_data(self, count: int) -> ImportResult:
        return await self.curator.generate_synthetic_data(count)

    async def get_training_stats(self) -> TrainingStats:
        return await self.curator.get_training_stats()

    async def delete_synthetic_data(self) -> int:
        return await self.curator.delete_synthetic_data()
