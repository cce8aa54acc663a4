"""
Settings service — read and write administrator-managed configuration.

Only the daily interest rate lives here today. Reads fall back to
DEFAULT_DAILY_INTEREST_RATE when the row is missing or unparseable.
"""

import logging
import uuid
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.config import settings
from growthfund.models.app_setting import AppSetting, DAILY_INTEREST_RATE_KEY

logger = logging.getLogger(__name__)

MAX_DAILY_RATE = Decimal("100")


async def get_setting(db: AsyncSession, key: str) -> AppSetting | None:
    result = await db.execute(select(AppSetting).where(AppSetting.key == key))
    return result.scalar_one_or_none()


async def get_daily_interest_rate(db: AsyncSession) -> Decimal:
    """Current daily rate as a percentage (0.05 means 0.05% per day)."""
    setting = await get_setting(db, DAILY_INTEREST_RATE_KEY)
    if setting is None:
        return settings.DEFAULT_DAILY_INTEREST_RATE

    try:
        rate = Decimal(setting.value)
    except InvalidOperation:
        logger.error(
            "Stored %s %r is not a number; using default %s",
            DAILY_INTEREST_RATE_KEY,
            setting.value,
            settings.DEFAULT_DAILY_INTEREST_RATE,
        )
        return settings.DEFAULT_DAILY_INTEREST_RATE
    return rate


async def set_daily_interest_rate(
    db: AsyncSession,
    rate: Decimal,
    updated_by: uuid.UUID | None = None,
) -> AppSetting:
    """Create or update the daily rate. Range checks happen in the schema."""
    setting = await get_setting(db, DAILY_INTEREST_RATE_KEY)
    if setting is None:
        setting = AppSetting(key=DAILY_INTEREST_RATE_KEY, value=str(rate), updated_by=updated_by)
        db.add(setting)
    else:
        setting.value = str(rate)
        setting.updated_by = updated_by

    await db.flush()
    await db.refresh(setting)
    logger.info("Daily interest rate set to %s%% by %s", rate, updated_by)
    return setting
