"""
Pydantic schemas for the Content and Search APIs.

Wire format is camelCase (ownerId, indexStatus, createdAt, ...) to match
what the frontend already sends and reads. Internally every field is
snake_case; alias_generator does the translation.

Note: the item body is called `content` on the wire and `body` in the
database model.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import (
    AnyHttpUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
)
from pydantic.alias_generators import to_camel

from recall.models.content import ContentItem, ContentType, IndexStatus


_http_url = TypeAdapter(AnyHttpUrl)


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ========================================
# Content Submission
# ========================================

class ContentSubmission(CamelModel):
    """
    Request schema for POST /content.

    Example request:
        POST /content
        {
            "type": "document",
            "title": "Deep Work",
            "content": "Focus techniques for knowledge workers",
            "tags": ["focus"]
        }

    Validation:
    -----------
    - type: one of document | tweet | youtube | link
    - title, content: non-empty after stripping whitespace
    - link: optional, must be an http(s) URL
    - tags: optional, defaults to []
    """

    type: ContentType = Field(description="Content type")
    title: str = Field(max_length=500, description="Content title")
    content: str = Field(description="The content itself")
    link: Optional[str] = Field(default=None, max_length=2048, description="Source URL")
    tags: List[str] = Field(default_factory=list, description="Free-form tags")

    @field_validator("title", "content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("link")
    @classmethod
    def http_link(cls, value: Optional[str]) -> Optional[str]:
        # Validate only; the submitted string is stored unchanged
        if value is None:
            return None
        _http_url.validate_python(value)
        return value


# ========================================
# Content Responses
# ========================================

class ContentResponse(CamelModel):
    """
    A saved content item.

    Example response:
        {
            "id": "9f1c2d...",
            "ownerId": "3a7b...",
            "type": "document",
            "title": "Deep Work",
            "content": "Focus techniques for knowledge workers",
            "link": null,
            "tags": ["focus"],
            "indexStatus": "indexed",
            "createdAt": "2026-01-05T10:12:00Z",
            "updatedAt": "2026-01-05T10:12:00Z"
        }
    """

    id: str
    owner_id: str
    type: ContentType
    title: str
    content: str
    link: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    index_status: IndexStatus
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite drops tzinfo; everything the store writes is UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def from_item(cls, item: ContentItem) -> "ContentResponse":
        return cls(
            id=item.id,
            owner_id=item.owner_id,
            type=item.type,
            title=item.title,
            content=item.body,
            link=item.link,
            tags=list(item.tags or []),
            index_status=item.index_status,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


class ContentListResponse(BaseModel):
    """Response schema for GET /content."""

    contents: List[ContentResponse] = Field(description="The caller's items, newest first")


# ========================================
# Search Schemas
# ========================================

class SearchRequest(BaseModel):
    """
    Request schema for POST /search.

    Emptiness is checked by the search pipeline so that a blank query
    reports the `q` field like every other validation failure.
    """

    q: str = Field(description="Natural-language query", max_length=4000)


class SearchMatch(BaseModel):
    """One index match: the item id, its similarity score and stored metadata."""

    id: str
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class SearchResponse(BaseModel):
    results: List[SearchMatch] = Field(description="Matches ranked by descending score")
