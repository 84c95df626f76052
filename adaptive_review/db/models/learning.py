"""
Scheduling Engine Models.

SQLAlchemy models for the adaptive review engine:
- Users and flashcards (owned by the host application, read here for existence checks)
- Per-user-per-flashcard spaced repetition progress
- Per-user learning pattern aggregates used as model features
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from adaptive_review.core.clock import utcnow

from .base import Base


class User(Base):
    """A learner. Created and managed by the host application."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255))
    display_name: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<User id={self.id}>"


class Flashcard(Base):
    """A reviewable flashcard. Created and managed by the host application."""

    __tablename__ = "flashcards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question: Mapped[str] = mapped_column(Text, default="")
    answer: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<Flashcard id={self.id}>"


class ProgressRecord(Base):
    """
    Spaced repetition state per learner per flashcard.

    At most one row exists per (user_id, flashcard_id). Rows created by the
    synthetic data generator carry is_synthetic so they can be purged later.
    """

    __tablename__ = "user_flashcard_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    flashcard_id: Mapped[int] = mapped_column(
        ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False
    )

    # SM-2 parameters
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5)
    interval_days: Mapped[int] = mapped_column(Integer, default=0)
    repetitions: Mapped[int] = mapped_column(Integer, default=0)

    # Scheduling
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime)
    next_review_date: Mapped[datetime | None] = mapped_column(DateTime)

    is_mastered: Mapped[bool] = mapped_column(Boolean, default=False)
    is_synthetic: Mapped[bool] = mapped_column(Boolean, default=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, onupdate=utcnow)

    # Relationships
    user: Mapped[User] = relationship()
    flashcard: Mapped[Flashcard] = relationship()

    __table_args__ = (
        UniqueConstraint("user_id", "flashcard_id", name="uq_progress_user_flashcard"),
        Index("idx_progress_user_next_review", "user_id", "next_review_date"),
        Index("idx_progress_last_reviewed", "last_reviewed_at"),
        Index("idx_progress_synthetic", "is_synthetic"),
    )

    def __repr__(self) -> str:
        return (
            f"<ProgressRecord user={self.user_id} flashcard={self.flashcard_id} "
            f"interval={self.interval_days} reps={self.repetitions}>"
        )


class LearningPattern(Base):
    """
    Aggregate memory statistics for one learner.

    average_retention_rate is on a 0-100 scale; forgetting_speed is a positive
    multiplier (nominally 0.1-5.0) where higher means the learner forgets faster.
    """

    __tablename__ = "user_learning_patterns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    average_retention_rate: Mapped[float] = mapped_column(Float, default=70.0)
    forgetting_speed: Mapped[float] = mapped_column(Float, default=1.0)
    sessions_processed: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return (
            f"<LearningPattern user={self.user_id} retention={self.average_retention_rate} "
            f"forgetting={self.forgetting_speed} sessions={self.sessions_processed}>"
        )
