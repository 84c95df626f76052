"""
Learning Pattern Tracker.

Maintains per-user aggregates (retention rate, forgetting speed, sample
count). Patterns are created lazily from the first curated sample and then
blended with each new sample as a plain two-point mean:

    new_average = (old_average + sample) / 2

This is not a count-weighted or exponential average: the latest sample always
carries half the weight.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from adaptive_review.core.clock import utcnow
from adaptive_review.db.models import LearningPattern
from adaptive_review.db.repository import UnitOfWork

DEFAULT_RETENTION_RATE = 70.0
DEFAULT_FORGETTING_SPEED = 1.0


@dataclass(frozen=True)
class PatternView:
    """Read-only snapshot of a learner's pattern."""

    user_id: str
    average_retention_rate: float
    forgetting_speed: float
    sessions_processed: int
    is_default: bool = False

    @classmethod
    def from_entity(cls, pattern: LearningPattern) -> PatternView:
        return cls(
            user_id=pattern.user_id,
            average_retention_rate=float(pattern.average_retention_rate),
            forgetting_speed=float(pattern.forgetting_speed),
            sessions_processed=int(pattern.sessions_processed or 0),
        )


class LearningPatternTracker:
    """Reads and blends LearningPattern rows through a unit of work."""

    def __init__(
        self,
        uow: UnitOfWork,
        default_retention_rate: float = DEFAULT_RETENTION_RATE,
        default_forgetting_speed: float = DEFAULT_FORGETTING_SPEED,
    ):
        self.uow = uow
        self.default_retention_rate = default_retention_rate
        self.default_forgetting_speed = default_forgetting_speed

    def default_for(self, user_id: str) -> PatternView:
        """Pattern assumed for a learner with no curated samples yet."""
        return PatternView(
            user_id=user_id,
            average_retention_rate=self.default_retention_rate,
            forgetting_speed=self.default_forgetting_speed,
            sessions_processed=0,
            is_default=True,
        )

    async def find(self, user_id: str) -> LearningPattern | None:
        """Stored pattern entity, or None."""
        return await self.uow.find_one(LearningPattern, LearningPattern.user_id == user_id)

    async def get(self, user_id: str) -> PatternView:
        """Stored pattern, or the defaults if the learner has none."""
        pattern = await self.find(user_id)
        if pattern is None:
            return self.default_for(user_id)
        return PatternView.from_entity(pattern)

    async def get_all(self) -> dict[str, PatternView]:
        """All stored patterns keyed by user id."""
        patterns = await self.uow.find(LearningPattern)
        return {p.user_id: PatternView.from_entity(p) for p in patterns}

    async def blend(
        self,
        user_id: str,
        new_retention: float,
        new_forgetting: float,
    ) -> LearningPattern:
        """
        Fold one sample into the learner's pattern.

        Creates the pattern seeded with the sample (sessions_processed=1) if
        none exists; otherwise averages old and new values and increments
        sessions_processed. Changes are staged, not committed.
        """
        now = utcnow()
        pattern = await self.find(user_id)

        if pattern is None:
            pattern = LearningPattern(
                user_id=user_id,
                average_retention_rate=new_retention,
                forgetting_speed=new_forgetting,
                sessions_processed=1,
                created_at=now,
                updated_at=now,
            )
            await self.uow.add(pattern)
            logger.debug("Created learning pattern for user={}", user_id)
            return pattern

        pattern.average_retention_rate = (pattern.average_retention_rate + new_retention) / 2
        pattern.forgetting_speed = (pattern.forgetting_speed + new_forgetting) / 2
        pattern.sessions_processed = (pattern.sessions_processed or 0) + 1
        pattern.updated_at = now
        return pattern
