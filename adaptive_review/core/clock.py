"""Time helpers.

Timestamps are stored as naive UTC so the same columns compare correctly on
PostgreSQL and SQLite.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
