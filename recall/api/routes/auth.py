"""
Authentication endpoints.

This module provides:
- Signup (creates the identity and the user profile)
- Signin (exchanges an ID token for the verified uid)
- Login (email + password → ID token, the identity provider's own endpoint)

The routes never read token claims themselves; the identity provider
does all verification.
"""

from fastapi import APIRouter, Depends, status

from recall.core.auth import get_services
from recall.core.logging import get_logger
from recall.schemas.auth import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    SigninRequest,
    SigninResponse,
    SignupRequest,
    SignupResponse,
)
from recall.services.container import ServiceContainer

# Setup logger
logger = get_logger(__name__)

# Create router
router = APIRouter(prefix="/auth", tags=["authentication"])


# ================================
# Signup
# ================================

@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def signup(
    body: SignupRequest,
    services: ServiceContainer = Depends(get_services),
):
    """
    Create a new account.

    Steps:
    ------
    1. Identity provider creates the identity (400 if the email is taken)
    2. The user profile {uid, email, displayName, createdAt} is stored
    3. Return the new uid

    The client then calls POST /auth/login to get an ID token.
    """
    uid = await services.identity.create_user(body.email, body.password, body.display_name)
    await services.store.create_user_profile(uid, body.email.lower(), body.display_name)

    logger.info("user_signed_up", uid=uid)
    return SignupResponse(uid=uid)


# ================================
# Signin
# ================================

@router.post(
    "/signin",
    response_model=SigninResponse,
    responses={401: {"model": ErrorResponse}},
)
async def signin(
    body: SigninRequest,
    services: ServiceContainer = Depends(get_services),
):
    """
    Verify an ID token and return its uid.

    Returns 401 if the token is malformed, expired or tampered with.
    """
    verified = await services.identity.verify_token(body.id_token)
    return SigninResponse(uid=verified.uid)


# ================================
# Password Login (identity provider)
# ================================

@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse}},
)
async def login(
    body: LoginRequest,
    services: ServiceContainer = Depends(get_services),
):
    """
    Exchange email and password for an ID token.

    Flow:
    -----
    1. POST /auth/login {email, password}  → {idToken, uid}
    2. Send `Authorization: Bearer <idToken>` on /content and /search
    """
    token, uid = await services.identity.sign_in_with_password(body.email, body.password)

    logger.info("user_logged_in", uid=uid)
    return LoginResponse(id_token=token, uid=uid)
