"""Async engine and per-request sessions for the reconciliation database."""

import os
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

LOCAL_DATABASE_URL = "postgresql+asyncpg://peachrecon:dev_password_change_in_prod@db:5432/peachrecon_dev"


def async_database_url(raw: str | None) -> str:
    """Point a Postgres URL at the asyncpg driver; empty falls back to the local stack."""
    if not raw:
        return LOCAL_DATABASE_URL
    for scheme in ("postgres://", "postgresql://"):
        if raw.startswith(scheme):
            return "postgresql+asyncpg://" + raw[len(scheme):]
    return raw


DATABASE_URL = async_database_url(os.getenv("DATABASE_URL"))

engine = create_async_engine(DATABASE_URL, pool_pre_ping=True)

# Loaded reconciliations stay readable after commit for building responses
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield one session per request.

    Workflows commit their own writes; anything left pending is committed
    when the handler returns and rolled back if it raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
