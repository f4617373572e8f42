"""Async engine, session factory and transaction helpers."""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from recovery_plans.config import configure_logging, settings
from recovery_plans.errors import ValidationError
from recovery_plans.models.db import Base


def build_engine(database_url: str | None = None) -> AsyncEngine:
    """Engine for the configured database; also sets up console logging."""
    configure_logging()
    return create_async_engine(database_url or settings.database_url, echo=settings.debug)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session(factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with factory() as session:
        yield session


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back and re-raise on any error."""
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise


def as_uuid(value: uuid.UUID | str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(value)
    except ValueError:
        raise ValidationError(f"Malformed identifier {value!r}") from None
