"""
Identity Provider

Creates users, signs them in and verifies their ID tokens.

The rest of the application treats the identity provider as an external
boundary: it hands in a bearer token and gets back a VerifiedIdentity (or
an AuthError). Nothing outside this module reads token claims.

LocalIdentityProvider:
----------------------
- Owns the `identities` table
- bcrypt password hashes (recall.core.security)
- HS256 ID tokens signed with SECRET_KEY (python-jose)
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from recall.core.errors import AuthError, StoreReadError, StoreWriteError, ValidationError
from recall.core.logging import get_logger
from recall.core.security import create_id_token, decode_id_token, get_password_hash, verify_password
from recall.models.user import Identity


logger = get_logger(__name__)


@dataclass(frozen=True)
class VerifiedIdentity:
    uid: str
    email: Optional[str] = None


class IdentityProvider(ABC):
    """Contract of the identity provider as seen by the HTTP layer."""

    @abstractmethod
    async def create_user(self, email: str, password: str, display_name: str) -> str:
        """
        Create an account and return its uid.

        Raises:
            ValidationError: Duplicate email or invalid input
        """

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> tuple[str, str]:
        """
        Check credentials and issue an ID token.

        Returns:
            (id_token, uid)

        Raises:
            AuthError: Wrong credentials or disabled account
        """

    @abstractmethod
    async def verify_token(self, token: Optional[str]) -> VerifiedIdentity:
        """
        Verify an ID token.

        Raises:
            AuthError: Missing, malformed, expired, tampered or revoked token
        """


class LocalIdentityProvider(IdentityProvider):
    """
    Identity provider backed by the application database.

    Usage:
    ------
    identity = LocalIdentityProvider(session_factory)
    uid = await identity.create_user("alice@example.com", "secret123", "Alice")
    token, uid = await identity.sign_in_with_password("alice@example.com", "secret123")
    verified = await identity.verify_token(token)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _find_by_email(self, session: AsyncSession, email: str) -> Optional[Identity]:
        result = await session.execute(select(Identity).where(Identity.email == email))
        return result.scalar_one_or_none()

    async def create_user(self, email: str, password: str, display_name: str) -> str:
        email = (email or "").strip().lower()
        invalid = [name for name, value in (("email", email), ("password", password)) if not value]
        if invalid:
            raise ValidationError(f"Missing required fields: {', '.join(invalid)}", fields=invalid)

        # bcrypt is CPU-bound
        hashed_password = await asyncio.to_thread(get_password_hash, password)

        try:
            async with self.session_factory() as session:
                if await self._find_by_email(session, email) is not None:
                    raise ValidationError("Email already registered", fields=["email"])

                identity = Identity(
                    email=email,
                    hashed_password=hashed_password,
                    display_name=display_name or "",
                )
                session.add(identity)
                await session.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent signup for the same email
            raise ValidationError("Email already registered", fields=["email"]) from e
        except SQLAlchemyError as e:
            logger.error("identity_create_failed", error=str(e))
            raise StoreWriteError(f"Identity insert failed: {e}") from e

        logger.info("identity_created", uid=identity.uid)
        return identity.uid

    async def sign_in_with_password(self, email: str, password: str) -> tuple[str, str]:
        email = (email or "").strip().lower()
        try:
            async with self.session_factory() as session:
                identity = await self._find_by_email(session, email)
        except SQLAlchemyError as e:
            logger.error("identity_lookup_failed", error=str(e))
            raise StoreReadError(f"Identity lookup failed: {e}") from e

        if identity is None:
            raise AuthError("Incorrect email or password")

        matches = await asyncio.to_thread(verify_password, password, identity.hashed_password)
        if not matches:
            raise AuthError("Incorrect email or password")
        if not identity.is_active:
            raise AuthError("Account is disabled")

        token = create_id_token(identity.uid, claims={"email": identity.email})
        return token, identity.uid

    async def verify_token(self, token: Optional[str]) -> VerifiedIdentity:
        if not token:
            raise AuthError("Missing bearer token")

        payload = decode_id_token(token)
        if payload is None:
            raise AuthError("Invalid or expired token")

        uid = payload.get("sub")
        if not uid:
            raise AuthError("Invalid or expired token")

        try:
            async with self.session_factory() as session:
                identity = await session.get(Identity, uid)
        except SQLAlchemyError as e:
            logger.error("identity_lookup_failed", error=str(e))
            raise StoreReadError(f"Identity lookup failed: {e}") from e

        if identity is None or not identity.is_active:
            raise AuthError("Invalid or expired token")

        return VerifiedIdentity(uid=identity.uid, email=identity.email)
