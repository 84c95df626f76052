# SQLAlchemy models
from .base import Base
from .learning import Flashcard, LearningPattern, ProgressRecord, User

__all__ = [
    # Base
    "Base",
    # Collaborator entities
    "User",
    "Flashcard",
    # Scheduling state
    "ProgressRecord",
    "LearningPattern",
]
