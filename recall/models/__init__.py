"""
Database Models

Import models from this module to ensure they're registered with SQLAlchemy:

    from recall.models import ContentItem, Identity, User

This ensures that:
1. Alembic can detect all models for migrations
2. Base.metadata.create_all() creates every table
"""

from recall.models.content import ContentItem, ContentType, IndexStatus
from recall.models.user import Identity, User

__all__ = [
    # User models
    "Identity",
    "User",
    # Content models
    "ContentItem",
    # Enums
    "ContentType",
    "IndexStatus",
]
