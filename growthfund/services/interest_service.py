"""
Interest service — the daily accrual batch job.

For every account with a positive balance that has not been accrued for the
current UTC date:

    interest    = round_half_even(balance_cents * rate / 100)   (whole cents)
    new balance = balance + interest

The rate is the account's override when set, otherwise the global
`daily_interest_rate` setting (a percentage).

Exactly once per day:
  The balance change, the cumulative-interest update and the
  last_interest_accrued_on stamp are one conditional UPDATE (see
  balance_service.apply_delta). Running the job twice on the same date finds
  no eligible accounts the second time, and a concurrent second run loses the
  UPDATE race for every account the first one already handled.

Partial failure:
  Each account is accrued in its own database transaction. An error on one
  account is logged and counted, and the job moves on. The job as a whole is
  not all-or-nothing.

Interest that rounds to zero cents still stamps the accrual date but writes
no ledger record, since ledger amounts must be positive.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_EVEN

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from growthfund.exceptions import AccountNotFoundError, InterestAlreadyAccruedError
from growthfund.models.account import Account
from growthfund.models.transaction import TransactionKind
from growthfund.services import balance_service, ledger_service, settings_service

logger = logging.getLogger(__name__)


@dataclass
class AccrualSummary:
    accrual_date: date
    rate: Decimal
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    total_interest_cents: int = 0


def calculate_interest_cents(balance_cents: int, rate_percent: Decimal) -> int:
    """Interest for one day, rounded half-even to a whole cent."""
    interest = Decimal(balance_cents) * rate_percent / Decimal(100)
    return int(interest.quantize(Decimal(1), rounding=ROUND_HALF_EVEN))


async def accrue_account(
    db: AsyncSession,
    account_id: uuid.UUID,
    global_rate: Decimal,
    accrual_date: date,
) -> int:
    """
    Accrue one day of interest on one account. Returns the interest in cents.

    The row is locked before the balance is read, so a withdrawal cannot
    commit between computing the interest and applying it.
    """
    account = await balance_service.lock_account(db, account_id)
    if account is None:
        raise AccountNotFoundError(account_id)

    rate = account.interest_rate if account.interest_rate is not None else global_rate
    interest_cents = calculate_interest_cents(account.balance_cents, rate)

    new_balance = await balance_service.apply_delta(
        db, account_id, interest_cents, accrued_on=accrual_date
    )

    if interest_cents > 0:
        await ledger_service.record_completed(
            db,
            account_id=account_id,
            kind=TransactionKind.INTEREST,
            amount_cents=interest_cents,
            balance_after_cents=new_balance,
            description=f"Daily interest at {rate}% for {accrual_date.isoformat()}",
        )
    return interest_cents


async def run_interest_accrual(
    session_factory: async_sessionmaker[AsyncSession],
    now: datetime | None = None,
) -> AccrualSummary:
    """Run the accrual for the UTC date of `now` (default: the current time)."""
    run_at = now or datetime.now(timezone.utc)
    if run_at.tzinfo is not None:
        run_at = run_at.astimezone(timezone.utc)
    accrual_date = run_at.date()

    async with session_factory() as db:
        rate = await settings_service.get_daily_interest_rate(db)
        result = await db.execute(
            select(Account.id)
            .where(Account.balance_cents > 0)
            .where(
                or_(
                    Account.last_interest_accrued_on.is_(None),
                    Account.last_interest_accrued_on < accrual_date,
                )
            )
            .order_by(Account.created_at)
        )
        account_ids = list(result.scalars().all())

    summary = AccrualSummary(accrual_date=accrual_date, rate=rate)
    logger.info(
        "Accruing interest for %s at %s%%: %d eligible accounts",
        accrual_date,
        rate,
        len(account_ids),
    )

    for account_id in account_ids:
        try:
            async with session_factory() as db:
                async with db.begin():
                    interest_cents = await accrue_account(db, account_id, rate, accrual_date)
        except InterestAlreadyAccruedError:
            logger.info("Account %s already accrued for %s", account_id, accrual_date)
            summary.skipped += 1
            continue
        except Exception:
            logger.exception("Interest accrual failed for account %s", account_id)
            summary.failed += 1
            continue

        summary.processed += 1
        summary.total_interest_cents += interest_cents
        logger.debug("Account %s earned %d cents", account_id, interest_cents)

    logger.info(
        "Interest accrual for %s done: %d processed, %d skipped, %d failed, %d cents paid",
        accrual_date,
        summary.processed,
        summary.skipped,
        summary.failed,
        summary.total_interest_cents,
    )
    return summary
