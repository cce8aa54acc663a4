"""
Balance service — the only code path that changes Account.balance_cents.

apply_delta() performs the read-modify-write as ONE conditional statement:

    UPDATE accounts
       SET balance_cents = balance_cents + :delta
     WHERE id = :account_id
       AND balance_cents + :delta >= 0
    RETURNING balance_cents

Concurrency:
  Because the check and the write happen inside the same statement, two
  concurrent mutations on one account cannot both read the old balance; the
  database serializes them on the row and the second one re-evaluates the
  WHERE clause against the updated balance. No lost updates, no overdraft,
  on SQLite and PostgreSQL alike. The CHECK constraint on the table is the
  last line of defence.

Interest accrual:
  Passing `accrued_on` turns the statement into the accrual write: it also
  adds the delta to total_interest_earned_cents, stamps
  last_interest_accrued_on, and only matches accounts not yet accrued for that
  date. The day guard and the balance change commit or fail together.

Callers must have completed verification before calling this for deposits
and withdrawals; interest is system-initiated and exempt.
"""

import logging
import uuid
from datetime import date

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.exceptions import (
    AccountNotFoundError,
    InsufficientFundsError,
    InterestAlreadyAccruedError,
)
from growthfund.models.account import Account

logger = logging.getLogger(__name__)


async def apply_delta(
    db: AsyncSession,
    account_id: uuid.UUID,
    delta_cents: int,
    accrued_on: date | None = None,
) -> int:
    """
    Apply a signed delta to an account balance and return the new balance.

    Raises:
        AccountNotFoundError: The account doesn't exist.
        InterestAlreadyAccruedError: `accrued_on` was given and the account
            has already been accrued for that date (or a later one).
        InsufficientFundsError: The resulting balance would be negative.
    """
    values: dict = {"balance_cents": Account.balance_cents + delta_cents}
    stmt = (
        update(Account)
        .where(Account.id == account_id)
        .where(Account.balance_cents + delta_cents >= 0)
    )

    if accrued_on is not None:
        values["total_interest_earned_cents"] = (
            Account.total_interest_earned_cents + delta_cents
        )
        values["last_interest_accrued_on"] = accrued_on
        stmt = stmt.where(
            or_(
                Account.last_interest_accrued_on.is_(None),
                Account.last_interest_accrued_on < accrued_on,
            )
        )

    result = await db.execute(
        stmt.values(**values)
        .returning(Account.balance_cents)
        .execution_options(synchronize_session=False)
    )
    new_balance = result.scalar_one_or_none()

    if new_balance is not None:
        logger.debug(
            "Account %s balance changed by %d to %d", account_id, delta_cents, new_balance
        )
        return new_balance

    # Nothing matched: work out which guard rejected the write
    account = await get_account_fresh(db, account_id)
    if account is None:
        raise AccountNotFoundError(account_id)

    if (
        accrued_on is not None
        and account.last_interest_accrued_on is not None
        and account.last_interest_accrued_on >= accrued_on
    ):
        raise InterestAlreadyAccruedError(account_id)

    raise InsufficientFundsError(
        account_id=account_id,
        requested_cents=-delta_cents,
        available_cents=account.balance_cents,
    )


async def get_account_fresh(
    db: AsyncSession,
    account_id: uuid.UUID,
) -> Account | None:
    """
    Load an account, overwriting any stale copy held by the session.

    apply_delta() bypasses the identity map, so reads that follow it must
    refresh from the database.
    """
    result = await db.execute(
        select(Account)
        .where(Account.id == account_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def lock_account(
    db: AsyncSession,
    account_id: uuid.UUID,
) -> Account | None:
    """
    Load an account with a row lock held until the transaction ends.

    Use this when a value computed from the balance is written back later in
    the same transaction, so no other mutation can commit in between. SQLite
    has no row locks; its writers are serialized per database instead.
    """
    result = await db.execute(
        select(Account)
        .where(Account.id == account_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
