"""
Weekly background retraining.

After a short startup delay the scheduler runs one pass, then sleeps until
the next configured weekday/hour (UTC). A pass checks the training stats and
only retrains when enough qualifying data exists.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import Settings, get_settings
from adaptive_review.core.clock import utcnow
from adaptive_review.db.database import async_session_scope
from adaptive_review.db.repository import UnitOfWork
from adaptive_review.ml.curator import TrainingDataCurator
from adaptive_review.ml.model_store import ModelStore
from adaptive_review.ml.trainer import ModelTrainer


def next_run_time(now: datetime, weekday: int, hour: int) -> datetime:
    """
    Next occurrence of weekday (Monday=0) at hour:00 strictly after now.

    On the scheduled weekday before the hour, that is today; once the hour has
    passed it is the same weekday of the following week.
    """
    days_ahead = (weekday - now.weekday()) % 7
    candidate = (now + timedelta(days=days_ahead)).replace(
        hour=hour, minute=0, second=0, microsecond=0
    )
    if candidate <= now:
        candidate += timedelta(days=7)
    return candidate


class RetrainingScheduler:
    """
    Background task that retrains the model once a week.
    """

    def __init__(
        self,
        model_store: ModelStore,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        settings: Settings | None = None,
    ):
        self.model_store = model_store
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.is_running = False
        self.task: asyncio.Task | None = None

    async def start(self) -> None:
        """Start the background loop."""
        if self.is_running:
            logger.warning("Retraining scheduler is already running")
            return

        self.is_running = True
        self.task = asyncio.create_task(self._run_scheduler())
        logger.info("Retraining scheduler started")

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if not self.is_running:
            return

        self.is_running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None
        logger.info("Retraining scheduler stopped")

    async def run_once(self) -> bool:
        """
        One retraining pass.

        Returns:
            True if a new model was trained and published.
        """
        async with async_session_scope(self.session_factory) as session:
            uow = UnitOfWork(session)
            stats = await TrainingDataCurator(uow, self.model_store, self.settings).get_training_stats()

            if not stats.can_train:
                logger.warning(
                    "Skipping scheduled retraining: {} qualifying records, {} required",
                    stats.total_records,
                    self.settings.min_training_examples,
                )
                return False

            trained = await ModelTrainer(uow, self.model_store, self.settings).retrain()

        if trained:
            logger.info("Scheduled retraining completed")
        else:
            logger.error("Scheduled retraining did not produce a model")
        return trained

    def seconds_until_next_run(self, now: datetime | None = None) -> float:
        now = now or utcnow()
        target = next_run_time(now, self.settings.retrain_weekday, self.settings.retrain_hour_utc)
        return (target - now).total_seconds()

    async def _run_scheduler(self) -> None:
        """Main scheduler loop."""
        try:
            await asyncio.sleep(self.settings.retrain_initial_delay_seconds)
        except asyncio.CancelledError:
            return

        while self.is_running:
            try:
                await self.run_once()
                delay = self.seconds_until_next_run()
                logger.info("Next scheduled retraining in {:.1f} hours", delay / 3600)
                await asyncio.sleep(delay)
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Error in retraining scheduler")
                try:
                    await asyncio.sleep(self.settings.retrain_retry_seconds)
                except asyncio.CancelledError:
                    break
