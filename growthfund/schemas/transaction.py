"""
Pydantic schemas for the deposit/withdrawal workflow.

All monetary amounts are in integer cents (e.g., $10.50 = 1050).
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from growthfund.models.transaction import TransactionKind, TransactionStatus
from growthfund.models.withdrawal_feedback import ReinvestPlan, WithdrawalReason


class WithdrawalFeedbackRequest(BaseModel):
    """Why the member is withdrawing; shown to admins in aggregate."""
    reason: WithdrawalReason
    reinvest_plan: ReinvestPlan | None = None
    experience_feedback: str | None = Field(None, max_length=2000)


class InitiateTransactionRequest(BaseModel):
    """Request body for POST /transactions/initiate."""
    amount_cents: int = Field(description="Amount in cents; the minimum and maximum are enforced server-side")
    type: Literal["deposit", "withdrawal"]
    feedback: WithdrawalFeedbackRequest | None = None

    @model_validator(mode="after")
    def feedback_only_for_withdrawals(self):
        if self.feedback is not None and self.type != "withdrawal":
            raise ValueError("Feedback can only be given for withdrawals")
        return self


class InitiateTransactionResponse(BaseModel):
    transaction_id: uuid.UUID
    status: TransactionStatus
    expires_in_seconds: int


class VerifyTransactionRequest(BaseModel):
    """Request body for POST /transactions/verify."""
    transaction_id: uuid.UUID
    code: str = Field(min_length=6, max_length=6, pattern=r"^\d{6}$")


class TransactionResponse(BaseModel):
    """Public representation of a ledger entry."""
    id: uuid.UUID
    account_id: uuid.UUID
    kind: TransactionKind
    amount_cents: int
    status: TransactionStatus
    balance_after_cents: int | None
    description: str | None
    failure_reason: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class VerifyTransactionResponse(BaseModel):
    success: bool
    new_balance_cents: int
    transaction: TransactionResponse


class ResendCodeResponse(BaseModel):
    success: bool
    expires_in_seconds: int
