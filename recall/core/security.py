"""
Security utilities for the identity provider.

This module provides:
- Password hashing and verification (using bcrypt)
- ID token creation and validation (using python-jose)

References:
-----------
- JWT Standard: https://jwt.io/introduction
- bcrypt: https://pypi.org/project/bcrypt/
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from recall.core.config import settings

# ================================
# Password Hashing
# ================================

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a bcrypt hash.

    Args:
        plain_password: The password the user entered
        hashed_password: The stored bcrypt hash

    Returns:
        True if password matches, False otherwise

    Example:
        >>> hashed = get_password_hash("secret")
        >>> verify_password("secret", hashed)
        True
        >>> verify_password("wrong", hashed)
        False
    """
    password_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    hashed_bytes = hashed_password.encode("utf-8")

    try:
        # bcrypt.checkpw handles constant-time comparison
        return bcrypt.checkpw(password_bytes, hashed_bytes)
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False


def get_password_hash(password: str) -> str:
    """
    Hash a plaintext password.

    Each call generates a fresh salt, so hashing the same password twice
    gives two different strings that both verify.

    Hash Format:
    ------------
    $2b$12$R9h/cIPz0gi.URNNX3kh2OPST9/PgBkqquzi.Ss7KIUgO2t0jWMUW
    └─┬┘└┬┘└───────────────┬───────────────┘└───────────┬─────────────┘
      │  │                 │                             └─ Hash (31 chars)
      │  │                 └─────────────────────────────── Salt (22 chars)
      │  └───────────────────────────────────────────────── Cost factor
      └──────────────────────────────────────────────────── Algorithm
    """
    password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt())
    return hashed.decode("utf-8")


# ================================
# ID Tokens
# ================================

def create_id_token(
    subject: str,
    claims: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed ID token for a user.

    What's in the token?
    --------------------
    - sub: the user's uid (the only claim the core relies on)
    - iss: issuer name (settings.ID_TOKEN_ISSUER)
    - iat / exp: issue and expiry time
    - any extra claims passed in (e.g. email)

    Args:
        subject: User uid
        claims: Additional claims to embed
        expires_delta: Lifetime (default: ID_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded JWT string
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ID_TOKEN_EXPIRE_MINUTES))

    to_encode: dict[str, Any] = dict(claims or {})
    to_encode.update({
        "sub": subject,
        "iss": settings.ID_TOKEN_ISSUER,
        "iat": now,
        "exp": expire,
    })

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_id_token(token: str) -> dict[str, Any] | None:
    """
    Decode and verify an ID token.

    Checks the signature, the expiry and the issuer.

    Returns:
        Decoded claims if the token is valid, None otherwise
        (expired, tampered, wrong issuer, or not a JWT at all)
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=settings.ID_TOKEN_ISSUER,
        )
    except JWTError:
        return None
