"""
Adaptive review scheduling engine.

Predicts, per (user, flashcard) pair, how many hours should pass before the
flashcard is shown again, and curates the labeled data the predictor is
trained on.

Components:
- learning: feature vectors and per-user learning patterns
- ml: training data curation, model training/storage, prediction, study plans
- db: SQLAlchemy models and the async unit of work
- service: the public operations facade
"""

__version__ = "1.0.0"
