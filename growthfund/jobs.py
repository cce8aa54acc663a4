"""
Operator command line for scheduled and one-off jobs.

Usage:
    growthfund-jobs accrue-interest            # run from a daily scheduler
    growthfund-jobs purge-codes                # delete expired one-time codes
    growthfund-jobs promote-admin EMAIL        # provision an administrator

Each command opens its own engine from DATABASE_URL and disposes of it when
done, so it can run next to the API server.
"""

import argparse
import asyncio
import logging
import sys

from sqlalchemy import update

from growthfund import models  # noqa: F401
from growthfund.config import settings
from growthfund.database import AsyncSessionLocal, Base, engine
from growthfund.logging import setup_logging
from growthfund.models.user import User, UserType
from growthfund.services import interest_service, otp_service
from growthfund.services.otp_service import normalize_email

logger = logging.getLogger(__name__)


async def _prepare() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def accrue_interest() -> int:
    await _prepare()
    try:
        summary = await interest_service.run_interest_accrual(AsyncSessionLocal)
    finally:
        await engine.dispose()
    print(
        f"{summary.accrual_date}: {summary.processed} processed, "
        f"{summary.skipped} skipped, {summary.failed} failed, "
        f"{summary.total_interest_cents} cents paid at {summary.rate}%"
    )
    return 1 if summary.failed else 0


async def purge_codes() -> int:
    await _prepare()
    try:
        async with AsyncSessionLocal() as session:
            purged = await otp_service.purge_expired_codes(session)
            await session.commit()
    finally:
        await engine.dispose()
    print(f"Codes purged: {purged}")
    return 0


async def promote_admin(email: str) -> int:
    await _prepare()
    try:
        async with AsyncSessionLocal() as session:
            result = await session.execute(
                update(User)
                .where(User.email == normalize_email(email))
                .values(user_type=UserType.ADMIN)
            )
            await session.commit()
    finally:
        await engine.dispose()
    print(f"Rows updated: {result.rowcount}")
    return 0 if result.rowcount else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="growthfund-jobs", description=__doc__.splitlines()[1])
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("accrue-interest", help="Accrue today's interest on every eligible account")
    subparsers.add_parser("purge-codes", help="Delete expired unverified one-time codes")

    promote = subparsers.add_parser("promote-admin", help="Give an existing user the ADMIN role")
    promote.add_argument("email")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    if args.command == "accrue-interest":
        return asyncio.run(accrue_interest())
    if args.command == "purge-codes":
        return asyncio.run(purge_codes())
    return asyncio.run(promote_admin(args.email))


if __name__ == "__main__":
    sys.exit(main())
