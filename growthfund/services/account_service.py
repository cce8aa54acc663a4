"""
Account service — read access to fund accounts.

Accounts are created by auth_service.signup() and their balances change only
through balance_service. This module handles retrieval (scoped to the owner,
or unscoped for admins) and the balance integrity check: the cached
balance_cents compared with the balance recomputed from completed ledger
entries.
"""

import uuid
from dataclasses import dataclass

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.exceptions import AccountNotFoundError
from growthfund.models.account import Account
from growthfund.models.user import User
from growthfund.services import ledger_service


async def get_account_for_user(
    db: AsyncSession,
    user_id: uuid.UUID,
) -> Account:
    """
    Get the account owned by a user.

    Raises:
        AccountNotFoundError: If the user has no account (e.g. admins).
    """
    result = await db.execute(
        select(Account)
        .where(Account.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    account = result.scalar_one_or_none()
    if account is None:
        raise AccountNotFoundError()
    return account


async def get_balance_summary(db: AsyncSession, account: Account) -> dict:
    """
    Balance overview — cached and computed values plus interest figures.

    A `match` of False means the cached balance disagrees with the ledger and
    needs investigation.
    """
    computed_balance_cents = await ledger_service.compute_balance(db, account.id)
    return {
        "account_id": account.id,
        "balance_cents": account.balance_cents,
        "computed_balance_cents": computed_balance_cents,
        "match": account.balance_cents == computed_balance_cents,
        "total_interest_earned_cents": account.total_interest_earned_cents,
        "interest_rate": account.interest_rate,
        "last_interest_accrued_on": account.last_interest_accrued_on,
    }


# ---------------------------------------------------------------------------
# Admin read-only functions
# ---------------------------------------------------------------------------

async def admin_get_all_accounts(
    db: AsyncSession,
    limit: int = 50,
    offset: int = 0,
) -> list[Account]:
    """[ADMIN ONLY] List all accounts."""
    result = await db.execute(
        select(Account).order_by(Account.created_at).limit(limit).offset(offset)
    )
    return list(result.scalars().all())


async def admin_get_account(
    db: AsyncSession,
    account_id: uuid.UUID,
) -> Account:
    """
    [ADMIN ONLY] Get any account by ID without ownership check.

    Raises:
        AccountNotFoundError: If the account doesn't exist.
    """
    result = await db.execute(select(Account).where(Account.id == account_id))
    account = result.scalar_one_or_none()
    if account is None:
        raise AccountNotFoundError(account_id)
    return account


@dataclass
class UserDirectory:
    """One page of users plus fund-wide totals."""
    total_users: int
    total_balance_cents: int
    total_interest_earned_cents: int
    users: list[tuple[User, Account | None]]


async def admin_list_users(
    db: AsyncSession,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> UserDirectory:
    """
    [ADMIN ONLY] List users with their role and account figures, newest first.

    `search` matches a case-insensitive substring of the email or full name.
    Totals cover every account, not just the returned page.
    """
    query = select(User, Account).outerjoin(Account, Account.user_id == User.id)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.where(
            or_(
                func.lower(User.email).like(pattern),
                func.lower(User.full_name).like(pattern),
            )
        )

    rows = await db.execute(
        query.order_by(User.created_at.desc()).limit(limit).offset(offset)
    )

    totals = await db.execute(
        select(
            func.count(User.id),
            func.coalesce(func.sum(Account.balance_cents), 0),
            func.coalesce(func.sum(Account.total_interest_earned_cents), 0),
        ).select_from(User).outerjoin(Account, Account.user_id == User.id)
    )
    total_users, total_balance, total_interest = totals.one()

    return UserDirectory(
        total_users=total_users,
        total_balance_cents=total_balance,
        total_interest_earned_cents=total_interest,
        users=[(user, account) for user, account in rows.all()],
    )
