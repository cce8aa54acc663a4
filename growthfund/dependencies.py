"""
FastAPI dependencies for authentication, authorization and request context.

Dependency chain:

  get_current_user (JWT -> User)
      ├── get_request_context (User -> RequestContext)  [MEMBER role]
      └── require_admin (User -> User)                  [ADMIN role]

RequestContext is the explicit, request-scoped identity handed to every
orchestrator call: who is acting, on which account, and where their codes
are sent. Services never look up "the current user" on their own.

Admins have no fund account and are blocked from member money endpoints;
they use the read-only /admin/* endpoints plus the interest controls.
"""

import uuid
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.database import get_db
from growthfund.models.account import Account
from growthfund.models.user import User, UserType
from growthfund.security import decode_access_token


# Where to look for the token: the "Authorization: Bearer <token>" header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


@dataclass(frozen=True)
class RequestContext:
    """The authenticated member a request acts for."""
    user_id: uuid.UUID
    account_id: uuid.UUID
    email: str
    full_name: str


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Extract and validate the JWT token, then return the corresponding User.

    Raises:
        HTTPException 401: If the token is invalid or the user doesn't exist.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
        user_id_str: str | None = payload.get("sub")
        if user_id_str is None:
            raise credentials_exception
        user_id = uuid.UUID(user_id_str)
    except (JWTError, ValueError):
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise credentials_exception

    return user


async def get_request_context(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RequestContext:
    """
    Build the request context for a member endpoint.

    Raises:
        HTTPException 403: If the user is an admin.
        HTTPException 404: If the member has no fund account.
    """
    if user.user_type == UserType.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin accounts cannot access member fund endpoints. "
                   "Use /admin/* endpoints instead.",
        )

    result = await db.execute(select(Account.id).where(Account.user_id == user.id))
    account_id = result.scalar_one_or_none()

    if account_id is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Fund account not found",
        )

    return RequestContext(
        user_id=user.id,
        account_id=account_id,
        email=user.email,
        full_name=user.full_name,
    )


async def require_admin(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require the authenticated user to have the ADMIN role.

    Raises:
        HTTPException 403: If the user is not an admin.
    """
    if user.user_type != UserType.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
