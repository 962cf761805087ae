"""
Async database layer: engine, session factory, declarative Base and the
FastAPI session dependency.
"""
from typing import AsyncIterator

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from src.config import settings


def async_database_url(url: str) -> str:
    """postgresql:// URLs are served through asyncpg."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


engine = create_async_engine(
    async_database_url(settings.DATABASE_URL),
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    echo=settings.ENV == "development",
    connect_args={
        "statement_cache_size": 0,  # Disable prepared statements for pgbouncer compatibility
    },
)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

Base = declarative_base()


def load_models() -> MetaData:
    """Imports every model module so Base.metadata knows all tables."""
    import src.catalog.models  # noqa: F401
    import src.metrics.models  # noqa: F401
    return Base.metadata


# Dependency for FastAPI
async def get_session() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session
