"""
Model Store - the explicit handle on the currently served regressor.

Holds one immutable LoadedModel snapshot and one lock. The lock guards the
startup load and the persist-then-swap after training; predictions read the
snapshot reference without it, so a prediction runs against whichever model
was current when it dereferenced the handle. Two overlapping trainings each
publish independently and the later swap wins.

The artifact is a joblib file holding the fitted scikit-learn pipeline plus
metadata. A missing file is the normal "untrained" state.
"""

from __future__ import annotations

import math
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import joblib
from loguru import logger

from config import Settings, get_settings
from adaptive_review.core.clock import utcnow
from adaptive_review.core.errors import InferenceError, ModelUnavailableError, PersistenceError
from adaptive_review.learning.features import FEATURE_NAMES, FeatureVector

ARTIFACT_FORMAT_VERSION = 1


@dataclass(frozen=True)
class LoadedModel:
    """A fitted pipeline and what is known about how it was trained."""

    pipeline: Any
    trained_at: datetime | None
    example_count: int
    feature_names: tuple[str, ...] = FEATURE_NAMES


@dataclass(frozen=True)
class ModelMetadata:
    """Answer to "is there a model, and since when" for stats and status checks."""

    is_trained: bool
    trained_at: datetime | None
    example_count: int
    artifact_path: Path


class ModelStore:
    """Owns the current model snapshot and its artifact file."""

    def __init__(self, model_path: Path | str, autoload: bool = True):
        self.model_path = Path(model_path)
        self._lock = threading.Lock()
        self._current: LoadedModel | None = None

        if autoload:
            self.load()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ModelStore:
        settings = settings or get_settings()
        return cls(settings.get_model_path())

    # ========================================
    # Lifecycle
    # ========================================

    def load(self) -> bool:
        """
        Load the artifact into memory.

        Returns:
            True if a model was loaded. A missing or unreadable artifact leaves
            the store untrained and returns False.
        """
        with self._lock:
            if not self.model_path.exists():
                logger.info(
                    "Model artifact not found at {}. Initial training required.", self.model_path
                )
                return False

            try:
                snapshot = self._read_artifact()
            except Exception as exc:
                logger.error("Failed to load model artifact {}: {}", self.model_path, exc)
                return False

            self._current = snapshot

        logger.info(
            "Model loaded from {} (trained_at={}, examples={})",
            self.model_path,
            snapshot.trained_at,
            snapshot.example_count,
        )
        return True

    def publish(self, pipeline: Any, example_count: int) -> LoadedModel:
        """
        Persist a freshly fitted pipeline and make it the served model.

        Writing and swapping happen under the lock; the in-memory reference is
        replaced only after the artifact is safely on disk.

        Raises:
            PersistenceError: if the artifact could not be written
        """
        snapshot = LoadedModel(
            pipeline=pipeline,
            trained_at=utcnow(),
            example_count=example_count,
        )
        with self._lock:
            self._write_artifact(snapshot)
            self._current = snapshot

        logger.info("Model saved to {} ({} examples)", self.model_path, example_count)
        return snapshot

    # ========================================
    # Reads (lock-free)
    # ========================================

    def is_trained(self) -> bool:
        return self._current is not None

    def current(self) -> LoadedModel | None:
        return self._current

    def metadata(self) -> ModelMetadata:
        snapshot = self._current
        return ModelMetadata(
            is_trained=snapshot is not None,
            trained_at=snapshot.trained_at if snapshot else None,
            example_count=snapshot.example_count if snapshot else 0,
            artifact_path=self.model_path,
        )

    def predict(self, features: FeatureVector) -> float:
        """
        Raw model output (hours) for one feature vector.

        Raises:
            ModelUnavailableError: no model is loaded
            InferenceError: the pipeline failed or produced a non-finite value
        """
        snapshot = self._current
        if snapshot is None:
            raise ModelUnavailableError("no trained model is loaded")

        try:
            raw = snapshot.pipeline.predict(features.as_array().reshape(1, -1))
            value = float(raw[0])
        except Exception as exc:
            raise InferenceError(f"model evaluation failed: {exc}") from exc

        if not math.isfinite(value):
            raise InferenceError(f"model produced a non-finite value: {value}")
        return value

    # ========================================
    # Artifact I/O
    # ========================================

    def _read_artifact(self) -> LoadedModel:
        data = joblib.load(self.model_path)
        if not isinstance(data, dict) or "pipeline" not in data:
            raise PersistenceError(f"unrecognized artifact layout in {self.model_path}")

        feature_names = tuple(data.get("feature_names", FEATURE_NAMES))
        if feature_names != FEATURE_NAMES:
            raise PersistenceError(f"artifact features {feature_names} do not match {FEATURE_NAMES}")

        return LoadedModel(
            pipeline=data["pipeline"],
            trained_at=data.get("trained_at"),
            example_count=int(data.get("example_count", 0)),
            feature_names=feature_names,
        )

    def _write_artifact(self, snapshot: LoadedModel) -> None:
        payload = {
            "format_version": ARTIFACT_FORMAT_VERSION,
            "pipeline": snapshot.pipeline,
            "trained_at": snapshot.trained_at,
            "example_count": snapshot.example_count,
            "feature_names": snapshot.feature_names,
        }

        try:
            self.model_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.model_path.parent,
                prefix=f".{self.model_path.stem}-",
                suffix=".tmp",
            )
            os.close(fd)
            try:
                joblib.dump(payload, tmp_name)
                os.replace(tmp_name, self.model_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except Exception as exc:
            raise PersistenceError(f"failed to save model to {self.model_path}: {exc}") from exc
