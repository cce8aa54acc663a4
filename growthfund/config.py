"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env
file as a fallback. Secrets (JWT key, email API key, webhook secret) stay out
of source code.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from growthfund.config import settings
    print(settings.OTP_TTL_SECONDS)
"""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the GrowthFund API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "GrowthFund API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    # "standard" or "json"
    LOG_FORMAT: str = "standard"

    # --- Database ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./growthfund.db"

    # --- Authentication ---
    # REQUIRED: No default, forces the developer to set a real secret
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- One-time codes ---
    OTP_TTL_SECONDS: int = 600
    # A resend is allowed once this many seconds have passed since issuance
    OTP_RESEND_COOLDOWN_SECONDS: int = 60
    OTP_MAX_ATTEMPTS: int = 5

    # --- Transactions ---
    # Minimum deposit/withdrawal in cents ($10.00)
    MIN_TRANSACTION_CENTS: int = 1000
    # Maximum deposit/withdrawal in cents ($1,000,000.00)
    MAX_TRANSACTION_CENTS: int = 100_000_000

    # --- Interest ---
    # Daily rate as a percentage: 0.05 means 0.05% per day
    DEFAULT_DAILY_INTEREST_RATE: Decimal = Decimal("0.05")

    # --- Email delivery (Resend-compatible HTTP API) ---
    # Delivery is disabled (logged only) when no API key is configured
    RESEND_API_KEY: str | None = None
    RESEND_API_URL: str = "https://api.resend.com/emails"
    EMAIL_FROM: str = "GrowthFund <onboarding@resend.dev>"
    EMAIL_TIMEOUT_SECONDS: float = 5.0

    # --- Payment gateway webhooks ---
    PAYMENT_WEBHOOK_SECRET: str | None = None
    WEBHOOK_TOLERANCE_SECONDS: int = 300

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
