"""Async database session and engine (SQLAlchemy 2.0 + asyncpg)."""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from snapshot_engine.config import get_settings

settings = get_settings()

# Async engine; use same URL as Alembic (postgresql+asyncpg://...)
engine = create_async_engine(
    settings.database_url,
    echo=settings.sql_echo,
    future=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Declarative base for all models."""

    pass
