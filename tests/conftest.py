"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
Database tests run against a throwaway SQLite file (aiosqlite) per test.
"""
import sys
from datetime import timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from loguru import logger

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings  # noqa: E402
from adaptive_review.core.clock import utcnow  # noqa: E402
from adaptive_review.db.database import create_engine_for, create_session_factory, init_db  # noqa: E402
from adaptive_review.db.models import Flashcard, LearningPattern, ProgressRecord, User  # noqa: E402
from adaptive_review.db.repository import UnitOfWork  # noqa: E402
from adaptive_review.ml.model_store import ModelStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (require database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings(tmp_path):
    """Settings pointing the database and model artifact into tmp_path."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'adaptive_review.db'}",
        content_root=str(tmp_path),
        log_file=None,
        retrain_initial_delay_seconds=3600.0,
    )


@pytest.fixture
def log_records():
    """Collect loguru records emitted during the test."""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def model_store(settings):
    """Untrained model store writing under tmp_path."""
    return ModelStore(settings.get_model_path())


@pytest_asyncio.fixture
async def engine(settings):
    """Async engine with all tables created."""
    engine = create_engine_for(settings.database_url)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def uow(session):
    return UnitOfWork(session)


# ========================================
# Data builders
# ========================================


async def seed_catalog(session, users: int, flashcards: int) -> tuple[list[str], list[int]]:
    """Create users u0..u{n-1} and flashcards 1..m; returns their ids."""
    user_ids = [f"u{i}" for i in range(users)]
    flashcard_ids = list(range(1, flashcards + 1))
    session.add_all(User(id=user_id, email=f"{user_id}@example.com") for user_id in user_ids)
    session.add_all(Flashcard(id=fid, question=f"Q{fid}", answer=f"A{fid}") for fid in flashcard_ids)
    await session.commit()
    return user_ids, flashcard_ids


async def seed_pattern(session, user_id: str, retention: float = 70.0, forgetting: float = 1.0, sessions: int = 1):
    pattern = LearningPattern(
        user_id=user_id,
        average_retention_rate=retention,
        forgetting_speed=forgetting,
        sessions_processed=sessions,
    )
    session.add(pattern)
    await session.commit()
    return pattern


async def seed_progress(
    session,
    user_id: str,
    flashcard_id: int,
    *,
    repetitions: int = 3,
    interval_days: int = 4,
    ease_factor: float = 2.5,
    reviewed_days_ago: float = 1.0,
    due_in_hours: float | None = None,
    is_mastered: bool = False,
    is_synthetic: bool = False,
    commit: bool = True,
):
    now = utcnow()
    last_reviewed_at = now - timedelta(days=reviewed_days_ago)
    if due_in_hours is None:
        next_review_date = last_reviewed_at + timedelta(days=interval_days)
    else:
        next_review_date = now + timedelta(hours=due_in_hours)

    record = ProgressRecord(
        user_id=user_id,
        flashcard_id=flashcard_id,
        ease_factor=ease_factor,
        interval_days=interval_days,
        repetitions=repetitions,
        last_reviewed_at=last_reviewed_at,
        next_review_date=next_review_date,
        is_mastered=is_mastered,
        is_synthetic=is_synthetic,
    )
    session.add(record)
    if commit:
        await session.commit()
    return record
