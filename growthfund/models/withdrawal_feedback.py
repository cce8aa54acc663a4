"""
WithdrawalFeedback model — why a member is taking money out.

A withdrawal may carry one feedback record: a required reason, an optional
plan for the money and optional free text. It is written together with the
pending transaction and only counts in the analytics once that transaction
completes.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from growthfund.database import Base


class WithdrawalReason(str, enum.Enum):
    EMERGENCY_EXPENSES = "emergency_expenses"
    BETTER_OPPORTUNITY = "better_opportunity"
    DISSATISFIED_RETURNS = "dissatisfied_returns"
    NEED_LIQUIDITY = "need_liquidity"
    CLOSING_ACCOUNT = "closing_account"
    OTHER = "other"


class ReinvestPlan(str, enum.Enum):
    REINVEST_LATER = "reinvest_later"
    DIFFERENT_PLATFORM = "different_platform"
    TRADITIONAL_BANKING = "traditional_banking"
    STOCK_MARKET = "stock_market"
    CRYPTO = "crypto"
    NO_PLANS = "no_plans"


class WithdrawalFeedback(Base):
    __tablename__ = "withdrawal_feedback"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    transaction_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("transactions.id"),
        unique=True,
        nullable=False,
    )

    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    reason: Mapped[WithdrawalReason] = mapped_column(
        Enum(
            WithdrawalReason,
            values_callable=lambda e: [member.value for member in e],
            native_enum=False,
            length=30,
        ),
        nullable=False,
    )

    reinvest_plan: Mapped[ReinvestPlan | None] = mapped_column(
        Enum(
            ReinvestPlan,
            values_callable=lambda e: [member.value for member in e],
            native_enum=False,
            length=30,
        ),
        nullable=True,
    )

    experience_feedback: Mapped[str | None] = mapped_column(
        String(2000),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
