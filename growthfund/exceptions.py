"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like InsufficientFundsError)
without importing HTTP concepts. The handlers registered here translate them
into a stable JSON shape:

    {"detail": "<user-facing message>", "error_type": "<stable code>", ...}

Exception hierarchy:
    FundAPIError (base)
    ├── InvalidAmountError          — amount outside the allowed range
    ├── InsufficientFundsError      — withdrawal would make the balance negative
    ├── CodeExpiredError            — one-time code submitted after expiry
    ├── CodeMismatchError           — wrong code, retry allowed
    ├── CodeNotFoundError           — no active code for (email, purpose)
    ├── CodeAttemptsExceededError   — too many wrong codes, record purged
    ├── ResendTooSoonError          — resend requested inside the cool-down
    ├── TransactionNotFoundError
    ├── TransactionNotPendingError  — verify/resend on a finalized transaction
    ├── AccountNotFoundError
    ├── InterestAlreadyAccruedError — accrual guard for the current day
    ├── DuplicateEmailError
    ├── InvalidCredentialsError
    ├── InvalidWebhookError         — bad signature or malformed gateway event
    └── ExternalServiceError        — a backing service is unreachable

Raw database errors are never shown to users: SQLAlchemyError is logged and
answered with the same generic body as ExternalServiceError.
"""

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class FundAPIError(Exception):
    """Base exception for all GrowthFund domain errors."""

    status_code: int = 400
    error_type: str = "error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)

    def extra_content(self) -> dict:
        """Additional fields merged into the JSON error body."""
        return {}


# ---------------------------------------------------------------------------
# Validation and balance errors
# ---------------------------------------------------------------------------

class InvalidAmountError(FundAPIError):
    """Raised when an amount is outside the configured minimum and maximum."""

    status_code = 422
    error_type = "invalid_amount"

    def __init__(self, amount_cents: int, minimum_cents: int, maximum_cents: int):
        self.amount_cents = amount_cents
        self.minimum_cents = minimum_cents
        self.maximum_cents = maximum_cents
        super().__init__(
            f"Invalid amount: must be between {minimum_cents} and {maximum_cents} cents"
        )

    def extra_content(self) -> dict:
        return {
            "minimum_cents": self.minimum_cents,
            "maximum_cents": self.maximum_cents,
        }


class InsufficientFundsError(FundAPIError):
    """
    Raised when a withdrawal would cause a negative balance.

    Attributes:
        account_id: The account that lacks sufficient funds.
        requested_cents: The amount the user tried to withdraw.
        available_cents: The balance at the moment of the check.
    """

    status_code = 422  # the request was valid but business rules reject it
    error_type = "insufficient_funds"

    def __init__(
        self,
        account_id: uuid.UUID,
        requested_cents: int,
        available_cents: int,
    ):
        self.account_id = account_id
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__(
            f"Insufficient balance: requested {requested_cents} cents, "
            f"available {available_cents} cents"
        )

    def extra_content(self) -> dict:
        return {
            "requested_cents": self.requested_cents,
            "available_cents": self.available_cents,
        }


# ---------------------------------------------------------------------------
# One-time code errors
# ---------------------------------------------------------------------------

class CodeExpiredError(FundAPIError):
    status_code = 400
    error_type = "otp_expired"

    def __init__(self):
        super().__init__("OTP code has expired. Please request a new code.")


class CodeMismatchError(FundAPIError):
    status_code = 400
    error_type = "invalid_otp"

    def __init__(self):
        super().__init__("Invalid OTP code. Please try again.")


class CodeNotFoundError(FundAPIError):
    status_code = 400
    error_type = "otp_not_found"

    def __init__(self):
        super().__init__("No OTP found. Please request a new code.")


class CodeAttemptsExceededError(FundAPIError):
    status_code = 400
    error_type = "otp_attempts_exceeded"

    def __init__(self):
        super().__init__("Too many invalid attempts. Please request a new code.")


class ResendTooSoonError(FundAPIError):
    """Raised when a new code is requested before the resend cool-down ends."""

    status_code = 429
    error_type = "resend_too_soon"

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Please wait {retry_after_seconds} seconds before requesting a new code"
        )

    def extra_content(self) -> dict:
        return {"retry_after_seconds": self.retry_after_seconds}


# ---------------------------------------------------------------------------
# Resource and state errors
# ---------------------------------------------------------------------------

class TransactionNotFoundError(FundAPIError):
    status_code = 404
    error_type = "transaction_not_found"

    def __init__(self, transaction_id: uuid.UUID):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class TransactionNotPendingError(FundAPIError):
    """Raised when verifying or resending for an already finalized transaction."""

    status_code = 409
    error_type = "transaction_not_pending"

    def __init__(self, transaction_id: uuid.UUID, status: str):
        self.transaction_id = transaction_id
        self.status = status
        super().__init__(f"Transaction {transaction_id} is already {status}")


class AccountNotFoundError(FundAPIError):
    status_code = 404
    error_type = "account_not_found"

    def __init__(self, account_id: uuid.UUID | None = None):
        self.account_id = account_id
        if account_id is None:
            super().__init__("Account not found")
        else:
            super().__init__(f"Account {account_id} not found")


class InterestAlreadyAccruedError(FundAPIError):
    status_code = 409
    error_type = "interest_already_accrued"

    def __init__(self, account_id: uuid.UUID):
        self.account_id = account_id
        super().__init__(f"Interest already accrued today for account {account_id}")


class DuplicateEmailError(FundAPIError):
    status_code = 409
    error_type = "duplicate_email"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class InvalidCredentialsError(FundAPIError):
    status_code = 401
    error_type = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid email or password")


class InvalidWebhookError(FundAPIError):
    status_code = 400
    error_type = "invalid_webhook"


class ExternalServiceError(FundAPIError):
    status_code = 503
    error_type = "external_service_error"

    def __init__(self, detail: str = "Service temporarily unavailable"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Called once during app creation in main.py.
    """

    @app.exception_handler(FundAPIError)
    async def fund_api_error_handler(
        request: Request, exc: FundAPIError
    ) -> JSONResponse:
        content = {"detail": exc.detail, "error_type": exc.error_type}
        content.update(exc.extra_content())
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(
        request: Request, exc: SQLAlchemyError
    ) -> JSONResponse:
        logger.exception("Database error on %s %s", request.method, request.url.path)
        fallback = ExternalServiceError()
        return JSONResponse(
            status_code=fallback.status_code,
            content={"detail": fallback.detail, "error_type": fallback.error_type},
        )
