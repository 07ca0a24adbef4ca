"""
User Models

Models Included:
----------------
1. Identity - Credentials owned by the identity provider (email + bcrypt hash)
2. User - Public user profile created on signup

Why two tables?
---------------
The identity provider is a boundary: the rest of the application only ever
sees a verified uid. Identity rows belong to the provider (they could live
in an external service); User rows belong to the application and are what
the signup route writes after the provider has issued a uid.

Database Tables:
----------------
- identities: uid, email, hashed_password, display_name, is_active
- users: uid, email, display_name, created_at
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from recall.db.base import Base, String100, String255, String32, TimestampMixin, new_id, utcnow


# ================================
# Identity Model (identity provider)
# ================================

class Identity(Base, TimestampMixin):
    """
    Credential record owned by the local identity provider.

    Table: identities
    -----------------
    One row per account. The uid is generated here and becomes the
    owner id of every ContentItem the user creates.
    """

    __tablename__ = "identities"

    uid: Mapped[str] = mapped_column(
        String32,
        primary_key=True,
        default=new_id,
        comment="Opaque user identifier issued by the identity provider"
    )

    email: Mapped[str] = mapped_column(
        String255,
        unique=True,
        index=True,
        nullable=False,
        comment="Login email (stored lower-cased)"
    )

    hashed_password: Mapped[str] = mapped_column(
        String255,
        nullable=False,
        comment="bcrypt hash of the password"
    )
    # NEVER store plaintext passwords
    # Set with get_password_hash(), check with verify_password()

    display_name: Mapped[str] = mapped_column(
        String100,
        nullable=False,
        default="",
        comment="Name shown in the UI"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Disabled identities cannot sign in or use existing tokens"
    )

    def __repr__(self) -> str:
        return f"Identity(uid={self.uid}, email={self.email})"


# ================================
# User Model (application profile)
# ================================

class User(Base):
    """
    User profile created on signup.

    Table: users
    ------------
    Created once by POST /auth/signup and never mutated or deleted by the
    content pipelines. uid matches Identity.uid.
    """

    __tablename__ = "users"

    uid: Mapped[str] = mapped_column(
        String32,
        primary_key=True,
        comment="Same uid as the identity provider record"
    )

    email: Mapped[str] = mapped_column(
        String255,
        nullable=False,
        comment="User's email address"
    )

    display_name: Mapped[str] = mapped_column(
        String100,
        nullable=False,
        default="",
        comment="Name shown in the UI"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="Timestamp when the profile was created (UTC)"
    )

    def __repr__(self) -> str:
        return f"User(uid={self.uid}, email={self.email})"
