"""Database configuration and session management."""
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from assessment_platform.core.config import settings


def _connect_args(database_url: str) -> Dict[str, Any]:
    """Server-side timeouts only make sense for PostgreSQL."""
    if not database_url.startswith("postgresql"):
        return {}
    return {
        "server_settings": {
            "jit": "off",
            "statement_timeout": str(settings.DATABASE_STATEMENT_TIMEOUT_MS),
            "lock_timeout": str(settings.DATABASE_LOCK_TIMEOUT_MS),
        },
        "command_timeout": settings.DATABASE_STATEMENT_TIMEOUT_MS / 1000,
    }


# Create async engine
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    poolclass=NullPool,
    future=True,
    connect_args=_connect_args(settings.DATABASE_URL),
)

# Create session factory
async_session_maker = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get async database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Initialize database tables."""
    from assessment_platform.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
