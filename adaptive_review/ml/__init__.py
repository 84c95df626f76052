"""
ML Module - review-delay model, its training data, and scheduling on top of it.

Components:
- schemas: training rows, import results, stats and predictions
- model_store: the served model snapshot and its joblib artifact
- trainer: builds training sets and fits the regressor
- predictor: model-backed prediction with interval fallback
- study_plan: ranked due-flashcard plans
- curator: manual, CSV and synthetic training data
- retraining_scheduler: weekly background retraining
"""

from adaptive_review.ml.curator import TrainingDataCurator, parse_csv_line, read_csv_text
from adaptive_review.ml.model_store import LoadedModel, ModelMetadata, ModelStore
from adaptive_review.ml.predictor import FellBack, NotFound, Predicted, ReviewPredictor
from adaptive_review.ml.retraining_scheduler import RetrainingScheduler, next_run_time
from adaptive_review.ml.schemas import ImportResult, ManualTrainingRow, Prediction, TrainingStats
from adaptive_review.ml.study_plan import StudyPlanGenerator
from adaptive_review.ml.trainer import ModelTrainer, build_pipeline

__all__ = [
    # Schemas
    "ImportResult",
    "ManualTrainingRow",
    "Prediction",
    "TrainingStats",
    # Model
    "LoadedModel",
    "ModelMetadata",
    "ModelStore",
    "ModelTrainer",
    "build_pipeline",
    # Prediction
    "ReviewPredictor",
    "Predicted",
    "FellBack",
    "NotFound",
    "StudyPlanGenerator",
    # Data
    "TrainingDataCurator",
    "parse_csv_line",
    "read_csv_text",
    # Background
    "RetrainingScheduler",
    "next_run_time",
]
