"""
Study Plan Generator.

Ranks a learner's due flashcards by predicted review delay, shortest first.
"""

from __future__ import annotations

from datetime import timedelta

from loguru import logger

from config import Settings, get_settings
from adaptive_review.core.clock import utcnow
from adaptive_review.db.models import ProgressRecord
from adaptive_review.db.repository import UnitOfWork
from adaptive_review.ml.predictor import ReviewPredictor
from adaptive_review.ml.schemas import Prediction


class StudyPlanGenerator:
    """Builds capped, ordered study plans from the predictor."""

    def __init__(
        self,
        uow: UnitOfWork,
        predictor: ReviewPredictor,
        settings: Settings | None = None,
    ):
        self.uow = uow
        self.predictor = predictor
        self.settings = settings or get_settings()

    async def generate_plan(self, user_id: str) -> list[Prediction]:
        """
        Predictions for flashcards due within the lookahead window.

        At most study_plan_limit items, chosen by earliest next_review_date,
        then ordered by optimal_review_hours ascending. Items whose prediction
        is unavailable are left out.
        """
        horizon = utcnow() + timedelta(hours=self.settings.study_plan_lookahead_hours)

        try:
            due = await self.uow.find(
                ProgressRecord,
                ProgressRecord.user_id == user_id,
                ProgressRecord.next_review_date <= horizon,
                order_by=(ProgressRecord.next_review_date,),
                limit=self.settings.study_plan_limit,
            )
        except Exception:
            logger.exception("Failed to load due flashcards for user={}", user_id)
            return []

        plan: list[Prediction] = []
        for progress in due:
            try:
                prediction = await self.predictor.predict(user_id, progress.flashcard_id)
            except Exception as exc:
                logger.warning(
                    "Skipping flashcard={} in plan for user={}: {}",
                    progress.flashcard_id,
                    user_id,
                    exc,
                )
                continue
            if prediction is not None:
                plan.append(prediction)

        plan.sort(key=lambda p: p.optimal_review_hours)
        logger.debug("Study plan for user={}: {} of {} due items", user_id, len(plan), len(due))
        return plan
