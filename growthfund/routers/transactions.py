"""
Transactions router — OTP-confirmed deposits and withdrawals.

Member endpoints (scoped to the authenticated member's account):
  POST /transactions/initiate                   — Start a deposit or withdrawal, email a code
  POST /transactions/verify                     — Submit the code and apply the transaction
  POST /transactions/{transaction_id}/resend-code — Issue a fresh code after the cool-down
  GET  /transactions                            — List transactions (with filters)
  GET  /transactions/{transaction_id}           — Get a single transaction

Admin endpoints are in the dedicated admin router (growthfund/routers/admin.py).
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.database import get_db
from growthfund.dependencies import RequestContext, get_request_context
from growthfund.models.transaction import TransactionKind, TransactionStatus
from growthfund.schemas.transaction import (
    InitiateTransactionRequest,
    InitiateTransactionResponse,
    ResendCodeResponse,
    TransactionResponse,
    VerifyTransactionRequest,
    VerifyTransactionResponse,
)
from growthfund.services import otp_service, transaction_service
from growthfund.services.notifications import EmailDispatcher, get_dispatcher

router = APIRouter()


@router.post(
    "/initiate",
    response_model=InitiateTransactionResponse,
    status_code=201,
    summary="Start a deposit or withdrawal",
)
async def initiate_transaction(
    request: InitiateTransactionRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
    dispatcher: EmailDispatcher = Depends(get_dispatcher),
):
    """
    Record a PENDING transaction and email a 6-digit code to the member.

    Withdrawals larger than the current balance are rejected immediately and
    leave no record. A withdrawal may carry `feedback` (reason, future plans,
    comments). All amounts are in **integer cents**.
    """
    txn, code = await transaction_service.initiate_transaction(
        db=db,
        ctx=ctx,
        kind=TransactionKind(request.type),
        amount_cents=request.amount_cents,
        dispatcher=dispatcher,
        feedback=request.feedback.model_dump() if request.feedback else None,
    )
    return InitiateTransactionResponse(
        transaction_id=txn.id,
        status=txn.status,
        expires_in_seconds=otp_service.seconds_until_expiry(code),
    )


@router.post(
    "/verify",
    response_model=VerifyTransactionResponse,
    summary="Confirm a pending transaction with its code",
)
async def verify_transaction(
    request: VerifyTransactionRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Apply a pending transaction once its code checks out.

    A wrong code leaves the transaction pending; an expired code, too many
    wrong codes, or a withdrawal the balance no longer covers mark it failed.
    """
    txn, new_balance = await transaction_service.verify_transaction(
        db=db,
        ctx=ctx,
        transaction_id=request.transaction_id,
        submitted_code=request.code,
    )
    return VerifyTransactionResponse(
        success=True,
        new_balance_cents=new_balance,
        transaction=TransactionResponse.model_validate(txn),
    )


@router.post(
    "/{transaction_id}/resend-code",
    response_model=ResendCodeResponse,
    summary="Send a fresh code for a pending transaction",
)
async def resend_code(
    transaction_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
    dispatcher: EmailDispatcher = Depends(get_dispatcher),
):
    code = await transaction_service.resend_transaction_code(
        db=db,
        ctx=ctx,
        transaction_id=transaction_id,
        dispatcher=dispatcher,
    )
    return ResendCodeResponse(
        success=True,
        expires_in_seconds=otp_service.seconds_until_expiry(code),
    )


@router.get(
    "",
    response_model=list[TransactionResponse],
    summary="List your transactions",
)
async def list_transactions(
    status: TransactionStatus | None = Query(None, description="Filter by status: pending, completed, failed"),
    type: TransactionKind | None = Query(None, description="Filter by type: deposit, withdrawal, interest"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """List the member's transactions, newest first."""
    return await transaction_service.list_transactions(
        db=db,
        ctx=ctx,
        status_filter=status,
        kind_filter=type,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get a single transaction",
)
async def get_transaction(
    transaction_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.get_transaction(db, ctx, transaction_id)
