"""
Admin router — oversight and interest controls.

All endpoints require ADMIN role. Admins can view any account or transaction
but cannot move money directly; their only write actions are the interest
rate and the accrual trigger.

Endpoints:
  GET  /admin/accounts                          — List ALL accounts
  GET  /admin/accounts/{account_id}             — Get any account's details
  GET  /admin/accounts/{account_id}/balance     — Get any account's balance check
  GET  /admin/accounts/{account_id}/transactions — List any account's transactions
  GET  /admin/transactions                      — List ALL transactions
  GET  /admin/users                             — Users with roles and account totals
  GET  /admin/otp-codes                         — Recent one-time codes (values hidden)
  GET  /admin/withdrawals/analytics             — Withdrawal reasons and feedback
  POST /admin/interest/run                      — Run today's interest accrual
  GET  /admin/settings/interest-rate            — Current daily rate
  PUT  /admin/settings/interest-rate            — Change the daily rate

By consolidating all admin routes in one router, we avoid route-ordering
conflicts with the member routers' parameterized paths.
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from growthfund.database import get_db, get_session_factory
from growthfund.dependencies import require_admin
from growthfund.models.app_setting import DAILY_INTEREST_RATE_KEY
from growthfund.models.transaction import TransactionKind, TransactionStatus
from growthfund.models.user import User
from growthfund.schemas.account import AccountResponse, BalanceResponse
from growthfund.schemas.admin import (
    AdminUserResponse,
    CodeMonitorResponse,
    CodeSummaryResponse,
    FeedbackEntryResponse,
    InterestRateResponse,
    InterestRateUpdateRequest,
    InterestRunResponse,
    UserDirectoryResponse,
    WithdrawalAnalyticsResponse,
)
from growthfund.schemas.transaction import TransactionResponse
from growthfund.models.one_time_code import CodeStatus
from growthfund.services import (
    account_service,
    feedback_service,
    interest_service,
    ledger_service,
    otp_service,
    settings_service,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Account admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/accounts",
    response_model=list[AccountResponse],
    summary="[Admin] List all accounts",
)
async def admin_list_all_accounts(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.admin_get_all_accounts(db, limit=limit, offset=offset)


@router.get(
    "/accounts/{account_id}",
    response_model=AccountResponse,
    summary="[Admin] Get any account's details",
)
async def admin_get_account(
    account_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.admin_get_account(db, account_id)


@router.get(
    "/accounts/{account_id}/balance",
    response_model=BalanceResponse,
    summary="[Admin] Get any account's balance",
)
async def admin_get_balance(
    account_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Cached and computed balance for integrity verification."""
    account = await account_service.admin_get_account(db, account_id)
    return await account_service.get_balance_summary(db, account)


@router.get(
    "/accounts/{account_id}/transactions",
    response_model=list[TransactionResponse],
    summary="[Admin] List any account's transactions",
)
async def admin_list_account_transactions(
    account_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    account = await account_service.admin_get_account(db, account_id)
    return await ledger_service.list_for_account(
        db, account.id, limit=limit, offset=offset
    )


# ---------------------------------------------------------------------------
# Transaction admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/transactions",
    response_model=list[TransactionResponse],
    summary="[Admin] List ALL transactions",
)
async def admin_list_all_transactions(
    status: TransactionStatus | None = Query(None, description="Filter by status"),
    type: TransactionKind | None = Query(None, description="Filter by type"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Org-wide audit trail, newest first."""
    return await ledger_service.list_all(
        db,
        status_filter=status,
        kind_filter=type,
        limit=limit,
        offset=offset,
    )


# ---------------------------------------------------------------------------
# User, code and withdrawal oversight
# ---------------------------------------------------------------------------

@router.get(
    "/users",
    response_model=UserDirectoryResponse,
    summary="[Admin] List users with roles and balances",
)
async def admin_list_users(
    search: str | None = Query(None, max_length=255, description="Match email or name"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    directory = await account_service.admin_list_users(
        db, search=search, limit=limit, offset=offset
    )
    users = [
        AdminUserResponse(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            user_type=user.user_type,
            email_verified=user.email_verified,
            is_active=user.is_active,
            account_id=account.id if account else None,
            balance_cents=account.balance_cents if account else 0,
            total_interest_earned_cents=account.total_interest_earned_cents if account else 0,
            created_at=user.created_at,
        )
        for user, account in directory.users
    ]
    return UserDirectoryResponse(
        total_users=directory.total_users,
        total_balance_cents=directory.total_balance_cents,
        total_interest_earned_cents=directory.total_interest_earned_cents,
        users=users,
    )


@router.get(
    "/otp-codes",
    response_model=CodeMonitorResponse,
    summary="[Admin] Monitor recent one-time codes",
)
async def admin_monitor_codes(
    limit: int = Query(100, ge=1, le=500),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Recent codes with their status. Code values are never returned."""
    records = await otp_service.list_recent_codes(db, limit=limit)
    codes = [
        CodeSummaryResponse(
            id=record.id,
            email=record.email,
            purpose=record.purpose,
            status=otp_service.code_status(record),
            attempts_remaining=record.attempts_remaining,
            user_id=record.user_id,
            created_at=record.created_at,
            expires_at=record.expires_at,
        )
        for record in records
    ]
    return CodeMonitorResponse(
        total=len(codes),
        verified=sum(1 for c in codes if c.status is CodeStatus.VERIFIED),
        expired=sum(1 for c in codes if c.status is CodeStatus.EXPIRED),
        pending=sum(1 for c in codes if c.status is CodeStatus.PENDING),
        codes=codes,
    )


@router.get(
    "/withdrawals/analytics",
    response_model=WithdrawalAnalyticsResponse,
    summary="[Admin] Withdrawal reasons and feedback",
)
async def admin_withdrawal_analytics(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    analytics = await feedback_service.get_withdrawal_analytics(db)
    return WithdrawalAnalyticsResponse(
        total=analytics.total,
        by_reason=analytics.by_reason,
        by_reinvest_plan=analytics.by_reinvest_plan,
        recent_feedback=[
            FeedbackEntryResponse.model_validate(entry)
            for entry in analytics.recent_feedback
        ],
    )


# ---------------------------------------------------------------------------
# Interest endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/interest/run",
    response_model=InterestRunResponse,
    summary="[Admin] Run today's interest accrual",
)
async def admin_run_interest(
    admin: User = Depends(require_admin),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """
    Accrue one day of interest on every eligible account.

    Safe to call repeatedly: accounts already accrued for today's UTC date
    are left untouched. The same job runs from the `growthfund-jobs` CLI.
    """
    summary = await interest_service.run_interest_accrual(session_factory)
    return InterestRunResponse(
        accrual_date=summary.accrual_date,
        rate=summary.rate,
        processed=summary.processed,
        skipped=summary.skipped,
        failed=summary.failed,
        total_interest_paid_cents=summary.total_interest_cents,
    )


@router.get(
    "/settings/interest-rate",
    response_model=InterestRateResponse,
    summary="[Admin] Get the daily interest rate",
)
async def admin_get_interest_rate(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    rate = await settings_service.get_daily_interest_rate(db)
    setting = await settings_service.get_setting(db, DAILY_INTEREST_RATE_KEY)
    if setting is None:
        return InterestRateResponse(daily_rate=rate)
    return InterestRateResponse(
        daily_rate=rate,
        updated_at=setting.updated_at,
        updated_by=setting.updated_by,
    )


@router.put(
    "/settings/interest-rate",
    response_model=InterestRateResponse,
    summary="[Admin] Set the daily interest rate",
)
async def admin_set_interest_rate(
    request: InterestRateUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Rate in percent per day, 0 to 100. Takes effect on the next accrual run."""
    setting = await settings_service.set_daily_interest_rate(
        db, request.daily_rate, updated_by=admin.id
    )
    return InterestRateResponse(
        daily_rate=request.daily_rate,
        updated_at=setting.updated_at,
        updated_by=setting.updated_by,
    )
