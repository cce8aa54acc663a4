"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — logging setup, table creation, engine disposal
  2. CORS middleware — allows frontend origins to make cross-origin requests
  3. Exception handlers — maps domain errors to HTTP responses
  4. Router registration — mounts all API endpoint groups

Running locally:
    uvicorn growthfund.main:app --reload

The interest accrual is triggered by POST /admin/interest/run or by the
`growthfund-jobs accrue-interest` command from a scheduler.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from growthfund import models  # noqa: F401  (registers every table on Base.metadata)
from growthfund.config import settings
from growthfund.database import engine, Base
from growthfund.exceptions import register_exception_handlers
from growthfund.logging import setup_logging
from growthfund.routers import account, admin, auth, otp, transactions, webhooks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      Configures logging and creates all database tables if they don't
      exist. In production, schema changes would go through migrations.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield
    # --- Shutdown ---
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Money market fund API with OTP-confirmed deposits and withdrawals "
                "and daily interest accrual",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(account.router, prefix="/account", tags=["Account"])
app.include_router(transactions.router, prefix="/transactions", tags=["Transactions"])
app.include_router(otp.router, prefix="/otp", tags=["One-Time Codes"])
app.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness check for load balancers and orchestrators."""
    return {"status": "ok", "version": settings.APP_VERSION}
