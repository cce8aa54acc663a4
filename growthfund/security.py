"""
Security utilities: password hashing, JWT tokens, and webhook signatures.

This module centralizes all cryptographic operations so they're easy to
audit and update. Three concerns are handled here:

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - passlib's CryptContext provides high-level Argon2id operations

2. JWT TOKENS
   - After login, the user receives a signed JWT containing their user ID
   - Signed with SECRET_KEY using HS256, expiring after
     ACCESS_TOKEN_EXPIRE_MINUTES

3. WEBHOOK SIGNATURES (Stripe)
   - The payment gateway signs each event as
       Stripe-Signature: t=<unix timestamp>,v1=<hex hmac>
     where the HMAC-SHA256 covers "<timestamp>.<raw body>" keyed by the
     shared webhook secret
   - The stripe SDK checks the header; signatures older than
     WEBHOOK_TOLERANCE_SECONDS are rejected to limit replay
"""

from datetime import datetime, timedelta, timezone

import stripe
from jose import jwt
from passlib.context import CryptContext

from growthfund.config import settings


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """
    Hash a plaintext password using Argon2id.

    Returns:
        An Argon2 hash string (e.g., "$argon2id$v=19$m=65536,t=3,p=4$...").
    """
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a stored Argon2 hash."""
    return pwd_context.verify(plain_password, hashed_password)


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    The token payload contains:
      - "sub": The subject (user ID as string)
      - "exp": Expiration timestamp

    Args:
        data: Dictionary of claims to encode (must include "sub").
        expires_delta: Optional custom expiration time. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


# ---------------------------------------------------------------------------
# 3. Webhook Signatures
# ---------------------------------------------------------------------------


def verify_webhook_signature(
    payload: bytes,
    signature_header: str,
    secret: str,
    tolerance_seconds: int,
) -> bool:
    """
    Check a "t=...,v1=..." signature header against the raw request body.

    Any v1 entry may match (the gateway sends several while rotating
    secrets). Returns False for malformed headers, stale timestamps and
    mismatched signatures.

    The body is only authenticated here; parsing it is left to the caller so
    a signed but malformed event can be acknowledged instead of crashing.
    """
    try:
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"),
            signature_header,
            secret,
            tolerance_seconds,
        )
    except (UnicodeDecodeError, stripe.SignatureVerificationError):
        return False
    return True
