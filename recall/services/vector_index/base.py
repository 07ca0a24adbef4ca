"""
Vector index contract.

Every backend stores IndexEntry records keyed by the content item id and
answers top-K nearest-neighbour queries restricted to one owner.

Rules every backend follows:
----------------------------
- upsert() with an existing id replaces the entry (never a second entry)
- query() always filters on metadata.ownerId; there is no unfiltered query
- Failures surface as IndexWriteError (upsert/delete) or IndexQueryError
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class IndexEntry:
    """A stored vector: same id as its ContentItem, plus filterable metadata."""

    id: str
    vector: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def owner_id(self) -> str:
        return self.metadata["ownerId"]


@dataclass(frozen=True)
class IndexMatch:
    """One query result, ranked by descending score."""

    id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)


class VectorIndex(ABC):
    """Base class for vector index backends."""

    name: str = "vector_index"

    @abstractmethod
    async def upsert(self, entry: IndexEntry) -> None:
        """Insert or replace the entry with entry.id."""

    @abstractmethod
    async def query(self, vector: list[float], owner_id: str, top_k: int) -> list[IndexMatch]:
        """Return up to top_k entries owned by owner_id, most similar first."""

    @abstractmethod
    async def delete(self, ids: list[str]) -> None:
        """Delete entries by id. Unknown ids are ignored."""

    async def check_health(self) -> bool:
        return True

    async def close(self) -> None:
        """Release connections held by the backend."""
