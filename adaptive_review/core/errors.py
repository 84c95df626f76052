"""
Exception taxonomy for the review scheduling engine.

Most of these never reach a caller of the public operations: they are raised
inside a component and converted into data (a per-row message, ``False``,
or a fallback prediction) at the component boundary.
"""

from __future__ import annotations


class ReviewEngineError(Exception):
    """Base class for engine errors."""
    pass


class TrainingRowError(ReviewEngineError):
    """A training row references a user or flashcard that does not exist."""

    def __init__(self, user_id: str, flashcard_id: int):
        self.user_id = user_id
        self.flashcard_id = flashcard_id
        super().__init__(f"user {user_id} or flashcard {flashcard_id} not found")


class CsvParseError(ReviewEngineError):
    """A CSV line could not be parsed into a training row."""

    def __init__(self, line_number: int, message: str):
        self.line_number = line_number
        self.message = message
        super().__init__(f"line {line_number}: {message}")


class InsufficientDataError(ReviewEngineError):
    """Too few qualifying examples to fit a model."""

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(
            f"insufficient training data ({available} examples, at least {required} required)"
        )


class ModelUnavailableError(ReviewEngineError):
    """No trained model is loaded."""
    pass


class InferenceError(ReviewEngineError):
    """Feature construction or model evaluation failed."""
    pass


class PersistenceError(ReviewEngineError):
    """The model artifact could not be written or read."""
    pass
