"""
Transaction service — the request-facing deposit/withdrawal workflow.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It ties together the code
store, the notification dispatcher, the balance service and the ledger:

  initiate  -> validate amount (and balance, for withdrawals)
            -> issue a code for (email, kind), record a PENDING transaction
               bound to that code, email the code
  verify    -> check the submitted code against the transaction's code
            -> apply the signed delta (balance re-checked at this moment)
            -> COMPLETED with balance_after_cents, or FAILED

State machine (deposits and withdrawals):

  Initiated ── invalid amount / insufficient balance ──> Rejected (no record)
      │
      └──> Pending ── code valid, funds ok ──────────> Completed
              │  ├─── code valid, funds short ────────> Failed (insufficient_funds)
              │  ├─── code expired ───────────────────> Failed (otp_expired)
              │  ├─── too many wrong codes ───────────> Failed (otp_attempts_exceeded)
              │  └─── wrong code / code superseded ───> stays Pending
              └── abandoned ───────────────────────────> stays Pending forever

Withdrawal balance checks:
  The balance is checked at initiation so obviously impossible requests get
  no record, and re-checked by the balance service's conditional UPDATE at
  verification, since other transactions may have moved the balance in
  between. Only the second check protects the invariant.

Failure persistence:
  Failures raise FundAPIError subclasses; the request session commits on
  those, so the FAILED status and consumed attempts are stored while the
  caller still receives the error.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.config import settings
from growthfund.dependencies import RequestContext
from growthfund.exceptions import (
    CodeAttemptsExceededError,
    CodeExpiredError,
    InsufficientFundsError,
    InvalidAmountError,
    ResendTooSoonError,
    TransactionNotFoundError,
    TransactionNotPendingError,
)
from growthfund.models.one_time_code import CodePurpose, OneTimeCode
from growthfund.models.transaction import Transaction, TransactionKind, TransactionStatus
from growthfund.services import balance_service, feedback_service, ledger_service, otp_service
from growthfund.services.notifications import EmailDispatcher
from growthfund.services.otp_service import VerificationResult

logger = logging.getLogger(__name__)


def purpose_for(kind: TransactionKind) -> CodePurpose:
    """The code purpose guarding a user-initiated transaction kind."""
    if not kind.requires_verification:
        raise ValueError(f"{kind.value} transactions are not user-initiated")
    return CodePurpose(kind.value)


def validate_amount(amount_cents: int) -> None:
    """Reject amounts outside MIN_TRANSACTION_CENTS..MAX_TRANSACTION_CENTS."""
    minimum = max(settings.MIN_TRANSACTION_CENTS, 1)
    maximum = settings.MAX_TRANSACTION_CENTS
    if amount_cents < minimum or amount_cents > maximum:
        raise InvalidAmountError(amount_cents, minimum, maximum)


async def initiate_transaction(
    db: AsyncSession,
    ctx: RequestContext,
    kind: TransactionKind,
    amount_cents: int,
    dispatcher: EmailDispatcher,
    now: datetime | None = None,
    feedback: dict | None = None,
) -> tuple[Transaction, OneTimeCode]:
    """
    Start a deposit or withdrawal and send its verification code.

    Args:
        feedback: Optional withdrawal feedback (reason, reinvest_plan,
                  experience_feedback), stored with the pending withdrawal.

    Returns:
        Tuple of (pending Transaction, issued OneTimeCode).

    Raises:
        InvalidAmountError: Amount below the minimum or above the maximum.
        InsufficientFundsError: Withdrawal larger than the current balance.
            No transaction record is created in this case.
    """
    purpose = purpose_for(kind)
    validate_amount(amount_cents)

    if kind is TransactionKind.WITHDRAWAL:
        account = await balance_service.get_account_fresh(db, ctx.account_id)
        if account.balance_cents < amount_cents:
            raise InsufficientFundsError(
                account_id=ctx.account_id,
                requested_cents=amount_cents,
                available_cents=account.balance_cents,
            )

    code = await otp_service.issue_code(db, ctx.email, purpose, user_id=ctx.user_id, now=now)
    txn = await ledger_service.create_pending(
        db,
        account_id=ctx.account_id,
        kind=kind,
        amount_cents=amount_cents,
        otp_code_id=code.id,
    )
    if feedback is not None and kind is TransactionKind.WITHDRAWAL:
        await feedback_service.record_feedback(db, txn.id, ctx.account_id, **feedback)

    logger.info(
        "Initiated %s %s of %d cents for account %s",
        kind.value,
        txn.id,
        amount_cents,
        ctx.account_id,
    )

    await dispatcher.send_code(ctx.email, code.code, purpose, ctx.full_name)
    return txn, code


async def verify_transaction(
    db: AsyncSession,
    ctx: RequestContext,
    transaction_id: uuid.UUID,
    submitted_code: str,
    now: datetime | None = None,
) -> tuple[Transaction, int]:
    """
    Verify a pending transaction's code and apply it.

    Returns:
        Tuple of (completed Transaction, new balance in cents).

    Raises:
        TransactionNotFoundError: Unknown id or another member's transaction.
        TransactionNotPendingError: Already completed or failed.
        CodeExpiredError / CodeAttemptsExceededError: Transaction marked failed.
        CodeMismatchError / CodeNotFoundError: Transaction left pending.
        InsufficientFundsError: Withdrawal no longer covered; marked failed.
    """
    txn = await get_transaction(db, ctx, transaction_id)
    if txn.status is not TransactionStatus.PENDING:
        raise TransactionNotPendingError(txn.id, txn.status.value)

    if txn.otp_code_id is None:
        result = VerificationResult.NOT_FOUND
    else:
        result = await otp_service.verify_code(
            db,
            ctx.email,
            purpose_for(txn.kind),
            submitted_code,
            now=now,
            code_id=txn.otp_code_id,
        )

    if result is VerificationResult.EXPIRED:
        await ledger_service.fail(db, txn, CodeExpiredError.error_type)
    elif result is VerificationResult.EXHAUSTED:
        await ledger_service.fail(db, txn, CodeAttemptsExceededError.error_type)
    otp_service.raise_for_result(result)

    try:
        new_balance = await balance_service.apply_delta(
            db, ctx.account_id, txn.kind.signed(txn.amount_cents)
        )
    except InsufficientFundsError:
        await ledger_service.fail(db, txn, InsufficientFundsError.error_type)
        raise

    txn = await ledger_service.complete(db, txn, new_balance)
    return txn, new_balance


async def resend_transaction_code(
    db: AsyncSession,
    ctx: RequestContext,
    transaction_id: uuid.UUID,
    dispatcher: EmailDispatcher,
    now: datetime | None = None,
) -> OneTimeCode:
    """
    Issue a fresh code for a pending transaction once the cool-down is over.

    Raises:
        ResendTooSoonError: The current code is younger than the cool-down.
    """
    txn = await get_transaction(db, ctx, transaction_id)
    if txn.status is not TransactionStatus.PENDING:
        raise TransactionNotPendingError(txn.id, txn.status.value)

    purpose = purpose_for(txn.kind)
    current_time = now or datetime.now(timezone.utc)

    active = await otp_service.get_active_code(db, ctx.email, purpose)
    if active is not None:
        wait = otp_service.seconds_until_resend(
            current_time, active.created_at, settings.OTP_RESEND_COOLDOWN_SECONDS
        )
        if wait > 0:
            raise ResendTooSoonError(wait)

    code = await otp_service.issue_code(
        db, ctx.email, purpose, user_id=ctx.user_id, now=current_time
    )
    await ledger_service.rebind_code(db, txn, code.id)
    await dispatcher.send_code(ctx.email, code.code, purpose, ctx.full_name)
    return code


async def get_transaction(
    db: AsyncSession,
    ctx: RequestContext,
    transaction_id: uuid.UUID,
) -> Transaction:
    """
    Get one of the member's transactions.

    Another member's transaction is reported as not found rather than
    forbidden, so ids can't be guessed at.
    """
    result = await db.execute(
        select(Transaction)
        .where(Transaction.id == transaction_id)
        .where(Transaction.account_id == ctx.account_id)
        .execution_options(populate_existing=True)
    )
    txn = result.scalar_one_or_none()
    if txn is None:
        raise TransactionNotFoundError(transaction_id)
    return txn


async def list_transactions(
    db: AsyncSession,
    ctx: RequestContext,
    status_filter: TransactionStatus | None = None,
    kind_filter: TransactionKind | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Transaction]:
    """The member's transaction history, newest first."""
    return await ledger_service.list_for_account(
        db,
        ctx.account_id,
        status_filter=status_filter,
        kind_filter=kind_filter,
        limit=limit,
        offset=offset,
    )
