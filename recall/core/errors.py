"""
Domain error taxonomy and explicit pipeline results.

Boundary clients (embedding, content store, vector index, identity) raise
the exceptions defined here. The pipelines catch them at each step boundary
and hand back a PipelineResult, so a caller can tell an EmbeddingError from
an IndexWriteError without a chain of except clauses.

Error Kinds:
------------
- validation_error  → client fault, never retried (400)
- auth_error        → missing/invalid credential (401)
- not_found         → item does not exist for this owner (404)
- embedding_failed, store_write_failed, store_read_failed,
  index_write_failed, index_query_failed
                    → external dependency faults (500, opaque to clients)
- payload_too_large, rate_limited
                    → blanket request protections (413, 429)
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar


class ErrorKind(str, enum.Enum):
    """Stable, client-visible error codes."""

    VALIDATION = "validation_error"
    AUTH = "auth_error"
    NOT_FOUND = "not_found"
    EMBEDDING = "embedding_failed"
    STORE_WRITE = "store_write_failed"
    STORE_READ = "store_read_failed"
    INDEX_WRITE = "index_write_failed"
    INDEX_QUERY = "index_query_failed"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal_server_error"

    def __str__(self) -> str:
        return self.value


# Status code and the message shown to clients for each kind.
# Dependency faults share one opaque message; details stay in the logs.
ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTH: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.EMBEDDING: 500,
    ErrorKind.STORE_WRITE: 500,
    ErrorKind.STORE_READ: 500,
    ErrorKind.INDEX_WRITE: 500,
    ErrorKind.INDEX_QUERY: 500,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.INTERNAL: 500,
}

PUBLIC_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NOT_FOUND: "Content not found",
    ErrorKind.EMBEDDING: "Failed to process content. Please try again later.",
    ErrorKind.STORE_WRITE: "Failed to save content. Please try again later.",
    ErrorKind.STORE_READ: "Failed to fetch content. Please try again later.",
    ErrorKind.INDEX_WRITE: "Failed to update the search index. Please try again later.",
    ErrorKind.PAYLOAD_TOO_LARGE: "Request body too large",
    ErrorKind.RATE_LIMITED: "Too many requests. Please try again later.",
    ErrorKind.INDEX_QUERY: "Failed to search content. Please try again later.",
    ErrorKind.INTERNAL: "An unexpected error occurred. Please try again later.",
}


# ================================
# Exceptions
# ================================

class RecallError(Exception):
    """Base class for all domain errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str = "", *, item_id: Optional[str] = None):
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value
        self.item_id = item_id

    @property
    def status_code(self) -> int:
        return ERROR_STATUS[self.kind]

    @property
    def public_message(self) -> str:
        """Message that is safe to return to API clients."""
        return PUBLIC_MESSAGES.get(self.kind, self.message)


class ValidationError(RecallError):
    """Malformed or missing input. Names every offending field."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str = "Invalid request", fields: Optional[list[str]] = None):
        super().__init__(message)
        self.fields = list(fields or [])

    @property
    def public_message(self) -> str:
        return self.message

    @classmethod
    def from_pydantic(cls, exc: Any, message: str = "Invalid request") -> "ValidationError":
        """
        Build from a pydantic (or FastAPI request) validation error.

        Field names are the dotted error locations with the request part
        ("body", "query", "path") dropped, in the order pydantic reports them
        and without duplicates.
        """
        fields: list[str] = []
        for error in exc.errors():
            loc = [str(part) for part in error.get("loc", ())]
            if loc and loc[0] in ("body", "query", "path", "header"):
                loc = loc[1:]
            name = ".".join(loc) or "body"
            if name not in fields:
                fields.append(name)
        return cls(f"{message}: {', '.join(fields)}", fields=fields)


class AuthError(RecallError):
    """Missing, invalid or expired credential."""

    kind = ErrorKind.AUTH

    @property
    def public_message(self) -> str:
        return self.message


class NotFoundError(RecallError):
    kind = ErrorKind.NOT_FOUND


class EmbeddingError(RecallError):
    """Embedding service timeout, quota, or malformed response."""

    kind = ErrorKind.EMBEDDING


class StoreWriteError(RecallError):
    kind = ErrorKind.STORE_WRITE


class StoreReadError(RecallError):
    kind = ErrorKind.STORE_READ


class IndexWriteError(RecallError):
    """Vector index upsert/delete failed. item_id is set when the item itself was saved."""

    kind = ErrorKind.INDEX_WRITE


class IndexQueryError(RecallError):
    kind = ErrorKind.INDEX_QUERY


# ================================
# Explicit Results
# ================================

T = TypeVar("T")


@dataclass(frozen=True)
class PipelineFailure:
    """Why a pipeline stopped, in a form the HTTP layer can render directly."""

    kind: ErrorKind
    message: str
    fields: list[str] = field(default_factory=list)
    item_id: Optional[str] = None

    @property
    def status_code(self) -> int:
        return ERROR_STATUS[self.kind]

    @classmethod
    def from_error(cls, error: RecallError) -> "PipelineFailure":
        return cls(
            kind=error.kind,
            message=error.public_message,
            fields=list(getattr(error, "fields", [])),
            item_id=error.item_id,
        )


@dataclass(frozen=True)
class PipelineResult(Generic[T]):
    """Either a value or a failure, never both."""

    value: Optional[T] = None
    failure: Optional[PipelineFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T) -> "PipelineResult[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: RecallError) -> "PipelineResult[T]":
        return cls(failure=PipelineFailure.from_error(error))
