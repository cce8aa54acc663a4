"""
Database engine, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - engine: The async database engine
  - AsyncSessionLocal: Factory for creating async database sessions
  - Base: Declarative base class that all ORM models inherit from
  - get_db(): FastAPI dependency that provides a session per request
  - get_session_factory(): FastAPI dependency for work that manages its own
    transactions (the interest accrual job commits once per account)

Session lifecycle:
  Each API request gets its own session via get_db(). The session commits on
  success and on domain errors (so failure markings and OTP attempt counters
  persist), and rolls back on any other exception.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from growthfund.config import settings
from growthfund.exceptions import FundAPIError


# echo=True in debug mode logs all SQL statements
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
)

# expire_on_commit=False prevents lazy-load errors after commit in async code
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


async def get_db():
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except FundAPIError:
            # Business rule rejections (expired code, insufficient funds...)
            # still commit, so failed transactions and consumed attempts
            # are recorded.
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency returning the session factory itself."""
    return AsyncSessionLocal
