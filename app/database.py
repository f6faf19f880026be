"""Database Connection and Session Management"""

import re
import ssl
from typing import Any, AsyncGenerator, Dict, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from app.config import settings


def build_async_url(raw_url: str) -> Tuple[str, Dict[str, Any]]:
    """
    Convert a postgresql:// URL into an asyncpg URL plus connect args.

    asyncpg takes ssl=SSLContext instead of the libpq sslmode query parameter,
    so sslmode is stripped and turned into a non-verifying context.
    """
    url = raw_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    connect_args: Dict[str, Any] = {}

    if re.search(r"[?&]sslmode=(require|required|verify-full)", url, re.I):
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ctx
        url = re.sub(r"[?&]sslmode=[^&]+", "", url, flags=re.I)
    else:
        url = re.sub(r"[?&]sslmode=[^&]+", "", url, flags=re.I)

    url = url.replace("?&", "?")
    if "?" not in url and "&" in url:
        url = url.replace("&", "?", 1)
    return url.rstrip("?"), connect_args


database_url, connect_args = build_async_url(settings.DATABASE_URL)

if settings.is_test:
    # Each test runs on its own event loop; pooled asyncpg connections cannot cross loops
    pool_options: Dict[str, Any] = {"poolclass": NullPool}
else:
    pool_options = {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
    }

engine = create_async_engine(
    database_url,
    connect_args=connect_args,
    echo=settings.DEBUG and settings.is_development,
    future=True,
    **pool_options,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped database session.

    Commits when the endpoint returns normally, rolls back on any exception.
    Services that need durable intermediate writes (student-code compaction)
    commit on their own.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create tables from model metadata (development only; use Alembic elsewhere)"""
    import app.models  # noqa: F401  registers every table on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
