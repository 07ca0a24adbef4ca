"""
Authentication schemas (Pydantic models for request/response).

These schemas define:
- Request formats (what client sends)
- Response formats (what server returns)
- The shared error envelope

Field names are camelCase on the wire (idToken, displayName).

References:
-----------
- Pydantic: https://docs.pydantic.dev/latest/
- FastAPI Request Body: https://fastapi.tiangolo.com/tutorial/body/
"""

from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from recall.schemas.content import CamelModel


# ================================
# Signup / Signin
# ================================

class SignupRequest(CamelModel):
    """
    Signup request.

    Example request:
        POST /auth/signup
        {
            "email": "alice@example.com",
            "password": "SecurePassword123!",
            "displayName": "Alice"
        }
    """
    email: EmailStr = Field(
        ...,
        description="User's email address",
        examples=["alice@example.com"]
    )
    password: str = Field(
        ...,
        min_length=6,
        max_length=128,
        description="User's password (minimum 6 characters)",
        examples=["SecurePassword123!"]
    )
    display_name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Name shown in the UI",
        examples=["Alice"]
    )


class SignupResponse(BaseModel):
    """
    Signup response.

    Example response:
        {"uid": "3a7b0c..."}
    """
    uid: str = Field(..., description="New user's uid")


class SigninRequest(CamelModel):
    """
    Signin request.

    The client obtains an ID token from the identity provider
    (POST /auth/login) and exchanges it here for its uid. A missing or
    empty token is rejected by the provider like any other bad token (401).

    Example request:
        POST /auth/signin
        {"idToken": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."}
    """
    id_token: Optional[str] = Field(default=None, description="ID token issued by the identity provider")


class SigninResponse(BaseModel):
    uid: str = Field(..., description="Verified uid")


class LoginRequest(BaseModel):
    """
    Password login request (identity provider).

    Example request:
        POST /auth/login
        {"email": "alice@example.com", "password": "SecurePassword123!"}
    """
    email: EmailStr = Field(..., examples=["alice@example.com"])
    password: str = Field(..., min_length=1, max_length=128)


class LoginResponse(CamelModel):
    """
    Password login response.

    Example response:
        {"idToken": "eyJhbGciOi...", "uid": "3a7b0c..."}

    Client should send in future requests:
        Authorization: Bearer eyJhbGciOi...
    """
    id_token: str = Field(..., description="Signed ID token")
    uid: str = Field(..., description="User's uid")


# ================================
# Error Responses
# ================================

class ErrorBody(BaseModel):
    code: str = Field(..., description="Stable error code, e.g. validation_error")
    message: str = Field(..., description="Human-readable message")
    fields: Optional[List[str]] = Field(None, description="Offending fields (validation errors)")
    id: Optional[str] = Field(None, description="Item id when the item was saved but not indexed")


class ErrorResponse(BaseModel):
    """
    Standard error response format.

    Used for all API errors.

    Example:
        {
            "error": {
                "code": "validation_error",
                "message": "Invalid request: title",
                "fields": ["title"]
            }
        }
    """
    error: ErrorBody
