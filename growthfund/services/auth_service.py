"""
Authentication service — signup and login business logic.

Signup flow:
  1. Check if email is already registered
  2. Hash the password with Argon2id
  3. Create User + Account (zero balance) in a single database transaction
  4. Return a JWT token so the user is immediately logged in

Login flow:
  1. Look up user by email
  2. Verify password against stored hash
  3. Return a JWT token

Email ownership is proven separately with a registration code
(POST /otp/send + POST /otp/verify), which flips User.email_verified.

Login returns the same error for "wrong password" and "email not found"
to prevent user enumeration.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.exceptions import DuplicateEmailError, InvalidCredentialsError
from growthfund.models.account import Account
from growthfund.models.user import User, UserType
from growthfund.security import hash_password, verify_password, create_access_token
from growthfund.services.otp_service import normalize_email

logger = logging.getLogger(__name__)


async def signup(
    db: AsyncSession,
    email: str,
    password: str,
    full_name: str,
) -> tuple[User, Account, str]:
    """
    Register a new member and open their fund account.

    Both records are created in one transaction — if either fails, neither
    is persisted.

    Returns:
        Tuple of (User, Account, JWT token string).

    Raises:
        DuplicateEmailError: If the email is already registered.
    """
    email = normalize_email(email)

    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise DuplicateEmailError(email)

    user = User(
        email=email,
        hashed_password=hash_password(password),
        full_name=full_name,
        user_type=UserType.MEMBER,
    )
    db.add(user)
    # Flush to get user.id assigned for the account FK
    await db.flush()

    account = Account(user_id=user.id, balance_cents=0)
    db.add(account)
    await db.flush()

    token = create_access_token(data={"sub": str(user.id)})
    logger.info("Registered user %s with account %s", user.id, account.id)
    return user, account, token


async def login(
    db: AsyncSession,
    email: str,
    password: str,
) -> tuple[User, str]:
    """
    Authenticate a user and return a JWT token.

    Raises:
        InvalidCredentialsError: If email doesn't exist or password is wrong.
    """
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    user = result.scalar_one_or_none()

    # Same error for every case so emails cannot be enumerated
    if not user:
        raise InvalidCredentialsError()

    if not verify_password(password, user.hashed_password):
        raise InvalidCredentialsError()

    if not user.is_active:
        raise InvalidCredentialsError()

    token = create_access_token(data={"sub": str(user.id)})
    return user, token


async def mark_email_verified(db: AsyncSession, email: str) -> bool:
    """Flag the user owning `email` as verified. Returns False if there is none."""
    result = await db.execute(
        update(User)
        .where(User.email == normalize_email(email))
        .values(email_verified=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0
