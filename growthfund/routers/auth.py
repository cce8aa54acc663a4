"""
Authentication router — signup and login endpoints.

Together with /otp and /webhooks these are the only endpoints that don't
require a JWT token.

Endpoints:
  POST /auth/signup  — Register a new member, open their fund account, get a token
  POST /auth/login   — Authenticate and get a token

Plaintext passwords exist only in memory during request processing; they are
hashed before any database operation and never logged.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.database import get_db
from growthfund.schemas.auth import (
    UserSignupRequest,
    UserLoginRequest,
    TokenResponse,
    SignupResponse,
)
from growthfund.services import auth_service

router = APIRouter()


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new member",
)
async def signup(
    request: UserSignupRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new fund member.

    Creates a User and their Account (zero balance) in a single atomic
    transaction. The email starts unverified; prove ownership with a
    registration code via /otp/send and /otp/verify.

    - **email**: Must be a valid email format and not already registered
    - **password**: Minimum 8 characters
    - **full_name**: Required
    """
    user, account, token = await auth_service.signup(
        db=db,
        email=request.email,
        password=request.password,
        full_name=request.full_name,
    )

    return SignupResponse(
        user_id=user.id,
        account_id=account.id,
        email=user.email,
        user_type=user.user_type.value,
        email_verified=user.email_verified,
        token=token,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: UserLoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email and password.

    Returns a JWT bearer token for the Authorization header:

        Authorization: Bearer <token>
    """
    _, token = await auth_service.login(
        db=db,
        email=request.email,
        password=request.password,
    )
    return TokenResponse(token=token)
