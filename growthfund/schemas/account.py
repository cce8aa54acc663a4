"""
Pydantic schemas for account endpoints.

All monetary amounts are integer cents; rates are daily percentages.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel


class AccountResponse(BaseModel):
    """Public representation of a fund account."""
    id: uuid.UUID
    user_id: uuid.UUID
    balance_cents: int
    interest_rate: Decimal | None
    total_interest_earned_cents: int
    last_interest_accrued_on: date | None
    created_at: datetime

    model_config = {"from_attributes": True}


class BalanceResponse(BaseModel):
    """
    Balance overview — includes both cached and computed values.

    `match` is False when the cached balance disagrees with the sum of
    completed ledger entries, which would indicate a data integrity issue.
    """
    account_id: uuid.UUID
    balance_cents: int
    computed_balance_cents: int
    match: bool
    total_interest_earned_cents: int
    interest_rate: Decimal | None
    last_interest_accrued_on: date | None
