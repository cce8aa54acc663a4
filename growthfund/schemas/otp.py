"""
Pydantic schemas for the standalone one-time code endpoints.

Only account-level purposes are accepted here; deposit and withdrawal codes
are issued and checked through /transactions, which binds each code to its
transaction.
"""

from typing import Literal

from pydantic import BaseModel, EmailStr, Field

AccountCodePurpose = Literal["registration", "login", "password_reset"]


class SendCodeRequest(BaseModel):
    """Request body for POST /otp/send."""
    email: EmailStr
    type: AccountCodePurpose
    user_name: str | None = Field(None, max_length=200)


class SendCodeResponse(BaseModel):
    success: bool
    expires_in_seconds: int


class VerifyCodeRequest(BaseModel):
    """Request body for POST /otp/verify."""
    email: EmailStr
    code: str = Field(min_length=6, max_length=6, pattern=r"^\d{6}$")
    type: AccountCodePurpose


class VerifyCodeResponse(BaseModel):
    success: bool
