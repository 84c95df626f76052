"""
Unit tests for ModelStore.

Tests:
- Missing and corrupt artifacts leave the store untrained
- publish() persists atomically and swaps the served model
- predict() error mapping
"""

import numpy as np
import pytest
from sklearn.dummy import DummyRegressor

from adaptive_review.core.errors import InferenceError, ModelUnavailableError, PersistenceError
from adaptive_review.learning.features import FeatureVector
from adaptive_review.ml.model_store import ModelStore


def fitted_constant_model(value: float = 48.0) -> DummyRegressor:
    model = DummyRegressor(strategy="constant", constant=value)
    model.fit(np.zeros((4, 7)), np.full(4, value))
    return model


def features() -> FeatureVector:
    return FeatureVector(2.5, 4.0, 3.0, 1.0, 70.0, 1.0, 3.0)


class TestLoad:
    """Tests for startup loading."""

    def test_missing_artifact_is_untrained(self, tmp_path):
        store = ModelStore(tmp_path / "Models" / "model.joblib")

        assert not store.is_trained()
        assert store.current() is None
        metadata = store.metadata()
        assert metadata.is_trained is False
        assert metadata.trained_at is None

    def test_corrupt_artifact_is_untrained(self, tmp_path):
        path = tmp_path / "model.joblib"
        path.write_bytes(b"definitely not a joblib file")

        store = ModelStore(path)
        assert not store.is_trained()

    def test_artifact_with_wrong_layout_is_untrained(self, tmp_path):
        import joblib

        path = tmp_path / "model.joblib"
        joblib.dump({"something": "else"}, path)

        assert not ModelStore(path).is_trained()

    def test_autoload_disabled(self, tmp_path):
        path = tmp_path / "model.joblib"
        ModelStore(path).publish(fitted_constant_model(), example_count=4)

        store = ModelStore(path, autoload=False)
        assert not store.is_trained()
        assert store.load() is True
        assert store.is_trained()


class TestPublish:
    """Tests for persist-then-swap."""

    def test_publish_creates_directory_and_artifact(self, tmp_path):
        path = tmp_path / "nested" / "Models" / "model.joblib"
        store = ModelStore(path)

        snapshot = store.publish(fitted_constant_model(), example_count=120)

        assert path.exists()
        assert store.is_trained()
        assert store.current() is snapshot
        assert store.metadata().example_count == 120
        assert store.metadata().trained_at is not None
        # No temporary files left behind
        assert [p.name for p in path.parent.iterdir()] == ["model.joblib"]

    def test_published_model_survives_reload(self, tmp_path):
        path = tmp_path / "model.joblib"
        ModelStore(path).publish(fitted_constant_model(36.0), example_count=150)

        reloaded = ModelStore(path)

        assert reloaded.is_trained()
        assert reloaded.metadata().example_count == 150
        assert reloaded.predict(features()) == pytest.approx(36.0)

    def test_later_publish_wins(self, tmp_path):
        store = ModelStore(tmp_path / "model.joblib")
        store.publish(fitted_constant_model(10.0), example_count=100)
        store.publish(fitted_constant_model(20.0), example_count=200)

        assert store.predict(features()) == pytest.approx(20.0)
        assert ModelStore(tmp_path / "model.joblib").predict(features()) == pytest.approx(20.0)

    def test_write_failure_keeps_previous_model(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file where a directory should be")
        store = ModelStore(blocker / "model.joblib")

        with pytest.raises(PersistenceError):
            store.publish(fitted_constant_model(), example_count=100)
        assert not store.is_trained()


class TestPredict:
    """Tests for model evaluation."""

    def test_untrained_raises_unavailable(self, tmp_path):
        store = ModelStore(tmp_path / "model.joblib")
        with pytest.raises(ModelUnavailableError):
            store.predict(features())

    def test_pipeline_failure_raises_inference_error(self, tmp_path, monkeypatch):
        store = ModelStore(tmp_path / "model.joblib")
        store.publish(fitted_constant_model(), example_count=4)

        def boom(_):
            raise ValueError("bad input")

        monkeypatch.setattr(store.current().pipeline, "predict", boom)

        with pytest.raises(InferenceError):
            store.predict(features())

    def test_non_finite_output_raises_inference_error(self, tmp_path, monkeypatch):
        store = ModelStore(tmp_path / "model.joblib")
        store.publish(fitted_constant_model(), example_count=4)
        monkeypatch.setattr(store.current().pipeline, "predict", lambda _: np.array([np.nan]))

        with pytest.raises(InferenceError):
            store.predict(features())
