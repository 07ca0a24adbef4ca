"""
Pydantic schemas for request/response validation.

Import all schemas here for easy access.
"""

from recall.schemas.auth import (
    ErrorBody,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    SigninRequest,
    SigninResponse,
    SignupRequest,
    SignupResponse,
)
from recall.schemas.content import (
    ContentListResponse,
    ContentResponse,
    ContentSubmission,
    SearchMatch,
    SearchRequest,
    SearchResponse,
)

__all__ = [
    # Authentication
    "SignupRequest",
    "SignupResponse",
    "SigninRequest",
    "SigninResponse",
    "LoginRequest",
    "LoginResponse",
    "ErrorBody",
    "ErrorResponse",
    # Content
    "ContentSubmission",
    "ContentResponse",
    "ContentListResponse",
    # Search
    "SearchRequest",
    "SearchMatch",
    "SearchResponse",
]
