"""
One-time code service — issue, verify and purge email verification codes.

Codes are 6 decimal digits drawn uniformly from 000000-999999 with the
`secrets` module, valid for OTP_TTL_SECONDS (10 minutes).

Rules per (email, purpose) pair:
  - Issuing a code deletes every earlier unverified code for the pair, so
    only the most recently issued code can ever be accepted.
  - Verification only looks at that latest unverified record:
      * none                  -> NOT_FOUND
      * past its expiry       -> EXPIRED (record purged)
      * wrong value           -> MISMATCH (record kept, one attempt consumed)
      * wrong value, last try -> EXHAUSTED (record purged)
      * right value           -> VALID (record marked verified, every other
                                 code for the email purged)

Single use:
  The "mark verified" step is a conditional UPDATE on verified = false. If two
  requests race with the same correct code, only one UPDATE matches a row;
  the loser sees NOT_FOUND.

Resend policy:
  The store never refuses to issue. Callers decide with can_resend(), a pure
  function of the stored issuance time and the cool-down window.

Timestamps:
  SQLite hands DateTime(timezone=True) values back without tzinfo; they are
  written as UTC, so naive values read back are treated as UTC.
"""

import enum
import hmac
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.config import settings
from growthfund.exceptions import (
    CodeAttemptsExceededError,
    CodeExpiredError,
    CodeMismatchError,
    CodeNotFoundError,
)
from growthfund.models.one_time_code import CodePurpose, CodeStatus, OneTimeCode

logger = logging.getLogger(__name__)

CODE_LENGTH = 6


class VerificationResult(str, enum.Enum):
    VALID = "valid"
    EXPIRED = "expired"
    MISMATCH = "mismatch"
    NOT_FOUND = "not_found"
    EXHAUSTED = "exhausted"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _now(now: datetime | None) -> datetime:
    return _as_utc(now) if now is not None else datetime.now(timezone.utc)


def generate_code() -> str:
    """Return a uniformly random 6-digit string, leading zeros allowed."""
    return f"{secrets.randbelow(10 ** CODE_LENGTH):0{CODE_LENGTH}d}"


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Resend policy (pure functions)
# ---------------------------------------------------------------------------

def seconds_until_resend(
    now: datetime,
    issued_at: datetime,
    cooldown_seconds: int,
) -> int:
    """Seconds left before a resend is allowed; 0 when it already is."""
    elapsed = (_as_utc(now) - _as_utc(issued_at)).total_seconds()
    remaining = cooldown_seconds - elapsed
    if remaining <= 0:
        return 0
    # Round up so "1 second left" is never reported as 0
    return int(remaining) + (0 if remaining == int(remaining) else 1)


def can_resend(now: datetime, issued_at: datetime, cooldown_seconds: int) -> bool:
    return seconds_until_resend(now, issued_at, cooldown_seconds) == 0


def seconds_until_expiry(code: OneTimeCode, now: datetime | None = None) -> int:
    remaining = (_as_utc(code.expires_at) - _now(now)).total_seconds()
    return max(0, int(remaining))


# ---------------------------------------------------------------------------
# Store operations
# ---------------------------------------------------------------------------

async def issue_code(
    db: AsyncSession,
    email: str,
    purpose: CodePurpose,
    user_id: uuid.UUID | None = None,
    now: datetime | None = None,
) -> OneTimeCode:
    """
    Create a new code for (email, purpose), replacing any unverified ones.

    The caller is responsible for delivering it (see notifications.py).
    """
    email = normalize_email(email)
    issued_at = _now(now)

    await db.execute(
        delete(OneTimeCode)
        .where(OneTimeCode.email == email)
        .where(OneTimeCode.purpose == purpose)
        .where(OneTimeCode.verified.is_(False))
    )

    record = OneTimeCode(
        email=email,
        purpose=purpose,
        code=generate_code(),
        expires_at=issued_at + timedelta(seconds=settings.OTP_TTL_SECONDS),
        attempts_remaining=settings.OTP_MAX_ATTEMPTS,
        user_id=user_id,
        created_at=issued_at,
    )
    db.add(record)
    await db.flush()

    logger.info("Issued %s code %s for %s", purpose.value, record.id, email)
    return record


async def get_active_code(
    db: AsyncSession,
    email: str,
    purpose: CodePurpose,
) -> OneTimeCode | None:
    """Return the most recently issued unverified code for the pair, if any."""
    result = await db.execute(
        select(OneTimeCode)
        .where(OneTimeCode.email == normalize_email(email))
        .where(OneTimeCode.purpose == purpose)
        .where(OneTimeCode.verified.is_(False))
        .order_by(OneTimeCode.created_at.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def verify_code(
    db: AsyncSession,
    email: str,
    purpose: CodePurpose,
    submitted_code: str,
    now: datetime | None = None,
    code_id: uuid.UUID | None = None,
) -> VerificationResult:
    """
    Check a submitted code against the latest unverified code for the pair.

    Args:
        code_id: When given, the latest record must be this one. A caller
                 bound to a specific code (a pending transaction) gets
                 NOT_FOUND once that code has been superseded.
    """
    email = normalize_email(email)
    checked_at = _now(now)

    record = await get_active_code(db, email, purpose)
    if record is None or (code_id is not None and record.id != code_id):
        return VerificationResult.NOT_FOUND

    if checked_at > _as_utc(record.expires_at):
        await db.execute(delete(OneTimeCode).where(OneTimeCode.id == record.id))
        logger.info("Code %s for %s expired", record.id, email)
        return VerificationResult.EXPIRED

    if not hmac.compare_digest(record.code, submitted_code.strip()):
        # Decrement against the stored count so concurrent guesses each spend one
        decremented = await db.execute(
            update(OneTimeCode)
            .where(OneTimeCode.id == record.id)
            .where(OneTimeCode.verified.is_(False))
            .where(OneTimeCode.attempts_remaining > 1)
            .values(attempts_remaining=OneTimeCode.attempts_remaining - 1)
            .returning(OneTimeCode.attempts_remaining)
            .execution_options(synchronize_session=False)
        )
        if decremented.scalar_one_or_none() is not None:
            return VerificationResult.MISMATCH

        await db.execute(
            delete(OneTimeCode)
            .where(OneTimeCode.id == record.id)
            .where(OneTimeCode.verified.is_(False))
        )
        logger.warning("Code %s for %s purged after too many attempts", record.id, email)
        return VerificationResult.EXHAUSTED

    claimed = await db.execute(
        update(OneTimeCode)
        .where(OneTimeCode.id == record.id)
        .where(OneTimeCode.verified.is_(False))
        .values(verified=True)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount == 0:
        return VerificationResult.NOT_FOUND

    await db.execute(
        delete(OneTimeCode)
        .where(OneTimeCode.email == email)
        .where(OneTimeCode.id != record.id)
    )
    logger.info("Code %s for %s verified", record.id, email)
    return VerificationResult.VALID


def raise_for_result(result: VerificationResult) -> None:
    """Translate a non-VALID verification result into its domain error."""
    if result is VerificationResult.VALID:
        return
    if result is VerificationResult.EXPIRED:
        raise CodeExpiredError()
    if result is VerificationResult.MISMATCH:
        raise CodeMismatchError()
    if result is VerificationResult.EXHAUSTED:
        raise CodeAttemptsExceededError()
    raise CodeNotFoundError()


async def purge_expired_codes(db: AsyncSession, now: datetime | None = None) -> int:
    """Delete every unverified code past its expiry. Returns the count."""
    result = await db.execute(
        delete(OneTimeCode)
        .where(OneTimeCode.verified.is_(False))
        .where(OneTimeCode.expires_at < _now(now))
    )
    purged = result.rowcount or 0
    logger.info("Purged %d expired codes", purged)
    return purged


# ---------------------------------------------------------------------------
# Monitoring
# ---------------------------------------------------------------------------

def code_status(record: OneTimeCode, now: datetime | None = None) -> CodeStatus:
    """Verified wins over expired; an unverified code past expiry is expired."""
    if record.verified:
        return CodeStatus.VERIFIED
    if _now(now) > _as_utc(record.expires_at):
        return CodeStatus.EXPIRED
    return CodeStatus.PENDING


async def list_recent_codes(db: AsyncSession, limit: int = 100) -> list[OneTimeCode]:
    """The most recently issued codes, newest first."""
    result = await db.execute(
        select(OneTimeCode)
        .order_by(OneTimeCode.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
