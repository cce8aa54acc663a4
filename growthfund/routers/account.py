"""
Account router — the authenticated member's own fund account.

Endpoints:
  GET /account  — Balance, interest figures and the ledger integrity check
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.database import get_db
from growthfund.dependencies import RequestContext, get_request_context
from growthfund.schemas.account import BalanceResponse
from growthfund.services import account_service

router = APIRouter()


@router.get(
    "",
    response_model=BalanceResponse,
    summary="Get your fund account",
)
async def get_account(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Return the cached balance next to the balance recomputed from completed
    ledger entries. `match` should always be true.
    """
    account = await account_service.get_account_for_user(db, ctx.user_id)
    return await account_service.get_balance_summary(db, account)
