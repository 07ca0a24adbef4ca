"""
Content Models

This module contains the content model for the Recall application.

Models Included:
----------------
1. ContentItem - A piece of content a user saved (document, tweet, video, link)
2. ContentType (Enum) - Closed set of content types
3. IndexStatus (Enum) - Whether the item's vector entry has been written

Database Tables:
----------------
- content_items: one row per saved item, scoped to its owner

The vector for each item lives in a separate store (the vector index).
index_status records whether that second write has happened, which is how
the reconciler finds items that are saved but not yet searchable.
"""

import enum

from sqlalchemy import Enum, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from recall.db.base import Base, JSONType, String2048, String32, String500, TimestampMixin, new_id


# ================================
# Enums
# ================================

class ContentType(str, enum.Enum):
    """
    Enum for content types.

    Supported Types:
    ----------------
    1. DOCUMENT: Notes, articles, pasted text
    2. TWEET: A post from X/Twitter
    3. YOUTUBE: A video (link + notes or transcript)
    4. LINK: Any bookmarked URL
    """

    DOCUMENT = "document"
    TWEET = "tweet"
    YOUTUBE = "youtube"
    LINK = "link"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


class IndexStatus(str, enum.Enum):
    """
    Enum for vector index status.

    Status Flow:
    ------------
    PENDING → INDEXED (success path)
        ↓
     FAILED → INDEXED (after reindex / reconciliation)

    - PENDING: Saved, vector write not finished yet
    - INDEXED: Vector entry written, item is searchable
    - FAILED: Vector write failed, item is listable but not searchable
    """

    PENDING = "pending"
    INDEXED = "indexed"
    FAILED = "failed"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


# ================================
# ContentItem Model
# ================================

class ContentItem(Base, TimestampMixin):
    """
    Content item saved by a user.

    Table: content_items
    --------------------
    Each content item belongs to exactly one owner, forever.

    Example:
    --------
    item = ContentItem(
        owner_id="3f9c...",
        type=ContentType.DOCUMENT,
        title="Deep Work",
        body="Focus techniques for knowledge workers",
        tags=["focus"],
    )
    """

    __tablename__ = "content_items"

    id: Mapped[str] = mapped_column(
        String32,
        primary_key=True,
        default=new_id,
        comment="Opaque id, shared with the vector index entry"
    )

    owner_id: Mapped[str] = mapped_column(
        String32,
        nullable=False,
        index=True,
        comment="uid of the owning user (immutable)"
    )
    # No foreign key: the identity provider is an external boundary

    type: Mapped[ContentType] = mapped_column(
        Enum(ContentType, name="content_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        comment="document | tweet | youtube | link"
    )

    title: Mapped[str] = mapped_column(
        String500,
        nullable=False,
        comment="Content title"
    )

    body: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="The content itself (wire name: content)"
    )

    link: Mapped[str | None] = mapped_column(
        String2048,
        nullable=True,
        comment="Optional source URL"
    )

    tags: Mapped[list[str]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
        comment="Ordered free-form tags (duplicates allowed)"
    )
    # JSON array keeps order and duplicates exactly as submitted

    index_status: Mapped[IndexStatus] = mapped_column(
        Enum(IndexStatus, name="index_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=IndexStatus.PENDING,
        index=True,
        comment="Vector index write status"
    )

    index_error: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Error kind of the last failed index write"
    )

    __table_args__ = (
        # Listing is always "all items of one owner, newest first"
        Index("ix_content_items_owner_created", "owner_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"ContentItem(id={self.id}, owner_id={self.owner_id}, "
            f"title='{self.title[:30]}', index_status={self.index_status.value})"
        )

    def index_metadata(self) -> dict:
        """Metadata stored next to the vector (ownerId is what search filters on)."""
        metadata = {
            "ownerId": self.owner_id,
            "type": self.type.value,
            "title": self.title,
            "tags": list(self.tags or []),
        }
        if self.link:
            metadata["link"] = self.link
        return metadata
