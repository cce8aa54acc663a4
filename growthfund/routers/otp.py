"""
OTP router — standalone one-time codes for account-level actions.

Endpoints (unauthenticated, keyed by email):
  POST /otp/send    — Issue a code for registration, login or password reset
  POST /otp/verify  — Check a submitted code

Deposit and withdrawal codes never go through here; /transactions issues
them and binds each one to its pending transaction.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.config import settings
from growthfund.database import get_db
from growthfund.exceptions import ResendTooSoonError
from growthfund.models.one_time_code import CodePurpose
from growthfund.schemas.otp import (
    SendCodeRequest,
    SendCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from growthfund.services import auth_service, otp_service
from growthfund.services.notifications import EmailDispatcher, get_dispatcher

router = APIRouter()


@router.post(
    "/send",
    response_model=SendCodeResponse,
    summary="Send a one-time code",
)
async def send_code(
    request: SendCodeRequest,
    db: AsyncSession = Depends(get_db),
    dispatcher: EmailDispatcher = Depends(get_dispatcher),
):
    """
    Issue a 6-digit code for (email, type) and email it.

    Any earlier unverified code for the same pair stops working. Requests
    within the resend cool-down of the previous code get a 429.
    """
    purpose = CodePurpose(request.type)
    now = datetime.now(timezone.utc)

    active = await otp_service.get_active_code(db, request.email, purpose)
    if active is not None:
        wait = otp_service.seconds_until_resend(
            now, active.created_at, settings.OTP_RESEND_COOLDOWN_SECONDS
        )
        if wait > 0:
            raise ResendTooSoonError(wait)

    code = await otp_service.issue_code(db, request.email, purpose, now=now)
    await dispatcher.send_code(code.email, code.code, purpose, request.user_name)

    return SendCodeResponse(
        success=True,
        expires_in_seconds=otp_service.seconds_until_expiry(code, now),
    )


@router.post(
    "/verify",
    response_model=VerifyCodeResponse,
    summary="Verify a one-time code",
)
async def verify_code(
    request: VerifyCodeRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Check a code. A verified code can't be used again.

    Verifying a registration code marks the matching user's email verified.
    """
    purpose = CodePurpose(request.type)
    result = await otp_service.verify_code(db, request.email, purpose, request.code)
    otp_service.raise_for_result(result)

    if purpose is CodePurpose.REGISTRATION:
        await auth_service.mark_email_verified(db, request.email)

    return VerifyCodeResponse(success=True)
