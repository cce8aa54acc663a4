"""
Ledger service — the append-only transaction history.

Records are created here and finalized here; nothing deletes them. Status
changes are conditional UPDATEs on status = 'pending', so a transaction moves
pending -> completed or pending -> failed exactly once and never reverts.

`balance_after_cents` is written only by complete(), with the balance the
balance service returned for the matching mutation.
"""

import logging
import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.models.transaction import Transaction, TransactionKind, TransactionStatus

logger = logging.getLogger(__name__)


class LedgerStateError(RuntimeError):
    """
    A finalize call found the transaction no longer pending.

    Not a FundAPIError, so the request session rolls back, undoing
    any balance change made alongside it.
    """


async def create_pending(
    db: AsyncSession,
    account_id: uuid.UUID,
    kind: TransactionKind,
    amount_cents: int,
    otp_code_id: uuid.UUID | None = None,
    description: str | None = None,
) -> Transaction:
    """Insert a pending transaction awaiting verification."""
    txn = Transaction(
        account_id=account_id,
        kind=kind,
        amount_cents=amount_cents,
        status=TransactionStatus.PENDING,
        otp_code_id=otp_code_id,
        description=description,
    )
    db.add(txn)
    await db.flush()
    return txn


async def record_completed(
    db: AsyncSession,
    account_id: uuid.UUID,
    kind: TransactionKind,
    amount_cents: int,
    balance_after_cents: int,
    description: str | None = None,
    idempotency_key: str | None = None,
) -> Transaction:
    """Insert an already-completed transaction (interest, gateway deposits)."""
    txn = Transaction(
        account_id=account_id,
        kind=kind,
        amount_cents=amount_cents,
        status=TransactionStatus.COMPLETED,
        balance_after_cents=balance_after_cents,
        description=description,
        idempotency_key=idempotency_key,
    )
    db.add(txn)
    await db.flush()
    return txn


async def _finalize(
    db: AsyncSession,
    txn: Transaction,
    status: TransactionStatus,
    **values,
) -> Transaction:
    result = await db.execute(
        update(Transaction)
        .where(Transaction.id == txn.id)
        .where(Transaction.status == TransactionStatus.PENDING)
        .values(status=status, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise LedgerStateError(f"Transaction {txn.id} is no longer pending")

    await db.refresh(txn)
    return txn


async def complete(
    db: AsyncSession,
    txn: Transaction,
    balance_after_cents: int,
) -> Transaction:
    finalized = await _finalize(
        db, txn, TransactionStatus.COMPLETED, balance_after_cents=balance_after_cents
    )
    logger.info(
        "Transaction %s (%s, %d cents) completed, balance now %d",
        txn.id,
        txn.kind.value,
        txn.amount_cents,
        balance_after_cents,
    )
    return finalized


async def fail(
    db: AsyncSession,
    txn: Transaction,
    reason: str,
) -> Transaction:
    finalized = await _finalize(db, txn, TransactionStatus.FAILED, failure_reason=reason)
    logger.info("Transaction %s failed: %s", txn.id, reason)
    return finalized


async def rebind_code(
    db: AsyncSession,
    txn: Transaction,
    otp_code_id: uuid.UUID,
) -> Transaction:
    """Point a pending transaction at a freshly issued code (resend)."""
    txn.otp_code_id = otp_code_id
    await db.flush()
    return txn


async def get_by_idempotency_key(
    db: AsyncSession,
    idempotency_key: str,
) -> Transaction | None:
    result = await db.execute(
        select(Transaction).where(Transaction.idempotency_key == idempotency_key)
    )
    return result.scalar_one_or_none()


async def list_for_account(
    db: AsyncSession,
    account_id: uuid.UUID,
    status_filter: TransactionStatus | None = None,
    kind_filter: TransactionKind | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Transaction]:
    """History for one account, newest first."""
    query = (
        select(Transaction)
        .where(Transaction.account_id == account_id)
        .order_by(Transaction.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    if status_filter:
        query = query.where(Transaction.status == status_filter)
    if kind_filter:
        query = query.where(Transaction.kind == kind_filter)

    result = await db.execute(query)
    return list(result.scalars().all())


async def list_all(
    db: AsyncSession,
    status_filter: TransactionStatus | None = None,
    kind_filter: TransactionKind | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Transaction]:
    """[ADMIN ONLY] Every transaction in the system, newest first."""
    query = (
        select(Transaction)
        .order_by(Transaction.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    if status_filter:
        query = query.where(Transaction.status == status_filter)
    if kind_filter:
        query = query.where(Transaction.kind == kind_filter)

    result = await db.execute(query)
    return list(result.scalars().all())


async def compute_balance(db: AsyncSession, account_id: uuid.UUID) -> int:
    """
    Recompute a balance from completed transactions.

    Deposits and interest add, withdrawals subtract. This is the integrity
    check counterpart to Account.balance_cents.
    """
    result = await db.execute(
        select(Transaction.kind, func.coalesce(func.sum(Transaction.amount_cents), 0))
        .where(Transaction.account_id == account_id)
        .where(Transaction.status == TransactionStatus.COMPLETED)
        .group_by(Transaction.kind)
    )
    return sum(kind.signed(total) for kind, total in result.all())
