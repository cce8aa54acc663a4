"""
User model — the authentication identity.

Each User represents a login credential (email + hashed password) with a
defined role. Every member owns exactly one fund Account, created at signup.

User types:
  - ADMIN: Operator with read-only oversight plus interest configuration
  - MEMBER: Fund member (customer) — the default role for signup

The password is stored as an Argon2id hash — never in plaintext.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from growthfund.database import Base


class UserType(str, enum.Enum):
    """
    Defines the role a user holds within the fund.

    Inherits from str so the enum value serializes naturally to JSON.
    """
    ADMIN = "admin"
    MEMBER = "member"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Email is the login identifier and the OTP delivery address
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    # Argon2id hash of the password
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    full_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    user_type: Mapped[UserType] = mapped_column(
        Enum(UserType),
        default=UserType.MEMBER,
        nullable=False,
    )

    # Set once a registration code for this email has been verified
    email_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Soft-disable: deactivated users can't log in but their data is preserved
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    account: Mapped["Account"] = relationship(
        back_populates="user",
        uselist=False,
    )
