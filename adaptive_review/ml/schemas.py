"""
Data transfer types for the scheduling engine.

ManualTrainingRow is validated with pydantic because it arrives from outside
(API payloads, CSV lines). The result types are plain dataclasses built by
the services.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

PredictionSource = Literal["model", "fallback"]


class ManualTrainingRow(BaseModel):
    """One labeled training sample for a (user, flashcard) pair."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1)
    flashcard_id: int
    ease_factor: float = Field(default=2.5, ge=1.3, le=2.5)
    interval: int = Field(default=0, ge=0, le=365)
    repetitions: int = Field(default=0, ge=0, le=100)
    days_since_last_review: float = Field(default=0.0, ge=0, le=365)
    user_retention_rate: float = Field(default=70.0, ge=0, le=100)
    user_forgetting_speed: float = Field(default=1.0, ge=0.1, le=5.0)
    correct_after_break: float = Field(default=0.0, ge=0, le=100)
    is_mastered: bool = False
    optimal_review_hours: float = Field(default=24.0, ge=1, le=8760)


@dataclass
class ImportResult:
    """Outcome of a curation batch (manual, CSV, or synthetic)."""

    success: bool = False
    records_added: int = 0
    total_records: int = 0
    error_message: str | None = None
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TrainingStats:
    """Summary of the curated training corpus."""

    total_records: int = 0
    records_last_24_hours: int = 0
    records_last_7_days: int = 0
    records_last_30_days: int = 0
    can_train: bool = False
    is_model_trained: bool = False
    last_training_date: datetime | None = None
    unique_users: int = 0
    unique_flashcards: int = 0
    average_ease_factor: float = 0.0
    average_interval: float = 0.0
    average_retention_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Prediction:
    """Recommended delay before the next review of one flashcard."""

    flashcard_id: int
    user_id: str
    optimal_review_hours: float
    confidence: float
    recommended_review_date: datetime
    reason: str
    created_at: datetime
    source: PredictionSource = "model"

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
