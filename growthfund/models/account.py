"""
Account model — the fund position owned by a User.

Each account has:
  - A balance in integer cents (never negative, CHECK constraint)
  - An optional per-account daily interest rate override (percent)
  - The cumulative interest earned, in cents
  - The date of the last interest accrual period applied

Balance management:
  `balance_cents` is written by exactly one code path: the balance service's
  conditional UPDATE (see growthfund/services/balance_service.py). Every
  change is paired with a completed Transaction carrying the resulting
  balance snapshot.

Interest guard:
  `last_interest_accrued_on` is the UTC calendar date of the last accrual.
  The accrual UPDATE only matches rows where it is NULL or earlier than the
  period being applied, so a second run on the same day is a no-op.

Why integer cents?
  Floating-point numbers introduce rounding errors in money arithmetic
  (0.1 + 0.2 != 0.3). Integer cents keep all sums exact; interest is computed
  with Decimal and rounded half-even to a whole cent.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Integer, Date, DateTime, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from growthfund.database import Base


class Account(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        CheckConstraint(
            "balance_cents >= 0",
            name="ck_accounts_non_negative_balance",
        ),
        CheckConstraint(
            "total_interest_earned_cents >= 0",
            name="ck_accounts_non_negative_interest",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # One account per user
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        unique=True,
        nullable=False,
    )

    balance_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Daily rate override in percent; NULL means the global setting applies
    interest_rate: Mapped[Decimal | None] = mapped_column(
        Numeric(9, 6),
        nullable=True,
    )

    total_interest_earned_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    last_interest_accrued_on: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
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
    user: Mapped["User"] = relationship(
        back_populates="account",
    )
