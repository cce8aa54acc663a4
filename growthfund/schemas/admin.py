"""Pydantic schemas for administrator endpoints."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from growthfund.models.one_time_code import CodePurpose, CodeStatus
from growthfund.models.user import UserType
from growthfund.models.withdrawal_feedback import ReinvestPlan, WithdrawalReason


class InterestRateUpdateRequest(BaseModel):
    """Request body for PUT /admin/settings/interest-rate."""
    daily_rate: Decimal = Field(
        ge=0,
        le=100,
        max_digits=9,
        decimal_places=6,
        description="Daily rate in percent (0.05 = 0.05% per day)",
    )


class InterestRateResponse(BaseModel):
    daily_rate: Decimal
    updated_at: datetime | None = None
    updated_by: uuid.UUID | None = None


class InterestRunResponse(BaseModel):
    """Summary returned by the accrual trigger."""
    accrual_date: date
    rate: Decimal
    processed: int
    skipped: int
    failed: int
    total_interest_paid_cents: int


# ---------------------------------------------------------------------------
# User directory
# ---------------------------------------------------------------------------

class AdminUserResponse(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str
    user_type: UserType
    email_verified: bool
    is_active: bool
    account_id: uuid.UUID | None
    balance_cents: int
    total_interest_earned_cents: int
    created_at: datetime


class UserDirectoryResponse(BaseModel):
    """Totals cover every user; `users` is the requested page."""
    total_users: int
    total_balance_cents: int
    total_interest_earned_cents: int
    users: list[AdminUserResponse]


# ---------------------------------------------------------------------------
# One-time code monitoring
# ---------------------------------------------------------------------------

class CodeSummaryResponse(BaseModel):
    """A stored code without its value."""
    id: uuid.UUID
    email: str
    purpose: CodePurpose
    status: CodeStatus
    attempts_remaining: int
    user_id: uuid.UUID | None
    created_at: datetime
    expires_at: datetime


class CodeMonitorResponse(BaseModel):
    """Counts are over the returned window of recent codes."""
    total: int
    verified: int
    expired: int
    pending: int
    codes: list[CodeSummaryResponse]


# ---------------------------------------------------------------------------
# Withdrawal analytics
# ---------------------------------------------------------------------------

class FeedbackEntryResponse(BaseModel):
    transaction_id: uuid.UUID
    reason: WithdrawalReason
    reinvest_plan: ReinvestPlan | None
    experience_feedback: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class WithdrawalAnalyticsResponse(BaseModel):
    """Feedback from completed withdrawals only."""
    total: int
    by_reason: dict[str, int]
    by_reinvest_plan: dict[str, int]
    recent_feedback: list[FeedbackEntryResponse]
