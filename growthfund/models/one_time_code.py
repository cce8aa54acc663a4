"""
OneTimeCode model — short-lived numeric codes proving control of an email.

Codes are keyed by (email, purpose) rather than by a foreign key to an
account, because registration codes are issued before the account exists.
At most one unverified code per pair is kept: issuing a new one deletes the
older ones.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, Integer, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from growthfund.database import Base


class CodePurpose(str, enum.Enum):
    REGISTRATION = "registration"
    LOGIN = "login"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    PASSWORD_RESET = "password_reset"


class CodeStatus(str, enum.Enum):
    """Lifecycle state of a stored code, as shown to admins."""
    VERIFIED = "verified"
    EXPIRED = "expired"
    PENDING = "pending"


class OneTimeCode(Base):
    __tablename__ = "one_time_codes"

    __table_args__ = (
        Index("ix_one_time_codes_email_purpose", "email", "purpose"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    purpose: Mapped[CodePurpose] = mapped_column(
        Enum(
            CodePurpose,
            values_callable=lambda e: [member.value for member in e],
            native_enum=False,
            length=20,
        ),
        nullable=False,
    )

    # Six decimal digits, leading zeros kept
    code: Mapped[str] = mapped_column(
        String(6),
        nullable=False,
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    # Write-once: flips to True on a successful match, never back
    verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    attempts_remaining: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Known only when the code is issued for an existing user
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
