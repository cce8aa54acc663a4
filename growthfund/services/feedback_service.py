"""
Feedback service — withdrawal reasons and the admin analytics built on them.

Feedback is stored with the pending withdrawal it describes. Analytics read
only feedback whose withdrawal completed, so abandoned or failed attempts do
not skew the counts.
"""

import uuid
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.models.transaction import Transaction, TransactionStatus
from growthfund.models.withdrawal_feedback import (
    ReinvestPlan,
    WithdrawalFeedback,
    WithdrawalReason,
)


@dataclass
class WithdrawalAnalytics:
    total: int
    by_reason: dict[str, int]
    by_reinvest_plan: dict[str, int]
    recent_feedback: list[WithdrawalFeedback] = field(default_factory=list)


async def record_feedback(
    db: AsyncSession,
    transaction_id: uuid.UUID,
    account_id: uuid.UUID,
    reason: WithdrawalReason,
    reinvest_plan: ReinvestPlan | None = None,
    experience_feedback: str | None = None,
) -> WithdrawalFeedback:
    """Attach feedback to a withdrawal. Blank free text is stored as NULL."""
    text = (experience_feedback or "").strip() or None
    feedback = WithdrawalFeedback(
        transaction_id=transaction_id,
        account_id=account_id,
        reason=reason,
        reinvest_plan=reinvest_plan,
        experience_feedback=text,
    )
    db.add(feedback)
    await db.flush()
    return feedback


async def get_withdrawal_analytics(
    db: AsyncSession,
    recent_limit: int = 10,
) -> WithdrawalAnalytics:
    """Counts by reason and by plan, plus the latest free-text comments."""
    completed = (
        select(WithdrawalFeedback)
        .join(Transaction, Transaction.id == WithdrawalFeedback.transaction_id)
        .where(Transaction.status == TransactionStatus.COMPLETED)
    )

    reason_rows = await db.execute(
        select(WithdrawalFeedback.reason, func.count())
        .join(Transaction, Transaction.id == WithdrawalFeedback.transaction_id)
        .where(Transaction.status == TransactionStatus.COMPLETED)
        .group_by(WithdrawalFeedback.reason)
    )
    by_reason = {reason.value: count for reason, count in reason_rows.all()}

    plan_rows = await db.execute(
        select(WithdrawalFeedback.reinvest_plan, func.count())
        .join(Transaction, Transaction.id == WithdrawalFeedback.transaction_id)
        .where(Transaction.status == TransactionStatus.COMPLETED)
        .where(WithdrawalFeedback.reinvest_plan.is_not(None))
        .group_by(WithdrawalFeedback.reinvest_plan)
    )
    by_plan = {plan.value: count for plan, count in plan_rows.all()}

    recent = await db.execute(
        completed
        .where(WithdrawalFeedback.experience_feedback.is_not(None))
        .order_by(WithdrawalFeedback.created_at.desc())
        .limit(recent_limit)
    )

    return WithdrawalAnalytics(
        total=sum(by_reason.values()),
        by_reason=by_reason,
        by_reinvest_plan=by_plan,
        recent_feedback=list(recent.scalars().all()),
    )
