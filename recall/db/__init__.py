"""Database utilities and session management."""

from recall.db.base import Base, JSONType, TimestampMixin, new_id, utcnow
from recall.db.session import (
    check_db_health,
    close_engine,
    create_engine,
    create_session_factory,
    init_db,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "JSONType",
    "new_id",
    "utcnow",
    # Session management
    "create_engine",
    "create_session_factory",
    "init_db",
    "close_engine",
    "check_db_health",
]
