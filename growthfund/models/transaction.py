"""
Transaction model — the append-only ledger of money movements.

Key fields:
  - kind: deposit, withdrawal or interest (see TransactionKind)
  - amount_cents: Always positive; the direction comes from the kind
  - status: pending -> completed | failed, never reverting
  - otp_code_id: The one-time code guarding a deposit/withdrawal (NULL for
    interest and gateway deposits, which need no verification)
  - balance_after_cents: The account balance right after the mutation; set
    only when the transaction completes
  - idempotency_key: Unique key for externally delivered events, so a
    redelivered payment webhook cannot credit twice

Records are never deleted. A pending transaction the user abandons stays
pending; nothing completes it automatically.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from growthfund.database import Base


class TransactionKind(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    INTEREST = "interest"

    @property
    def requires_verification(self) -> bool:
        return self is not TransactionKind.INTEREST

    def signed(self, amount_cents: int) -> int:
        """Return the balance delta this kind applies for a positive amount."""
        if self is TransactionKind.DEPOSIT or self is TransactionKind.INTEREST:
            return amount_cents
        if self is TransactionKind.WITHDRAWAL:
            return -amount_cents
        raise ValueError(f"Unhandled transaction kind: {self!r}")


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    # Persist the lowercase values rather than member names
    return [member.value for member in enum_cls]


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_transactions_positive_amount"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    kind: Mapped[TransactionKind] = mapped_column(
        Enum(
            TransactionKind,
            values_callable=_enum_values,
            native_enum=False,
            length=20,
        ),
        nullable=False,
    )

    amount_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    status: Mapped[TransactionStatus] = mapped_column(
        Enum(
            TransactionStatus,
            values_callable=_enum_values,
            native_enum=False,
            length=20,
        ),
        nullable=False,
        default=TransactionStatus.PENDING,
    )

    # Expired codes are purged, so the reference is cleared rather than cascaded
    otp_code_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("one_time_codes.id", ondelete="SET NULL"),
        nullable=True,
    )

    balance_after_cents: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    description: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # Why a transaction failed (otp_expired, insufficient_funds, ...)
    failure_reason: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    idempotency_key: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
