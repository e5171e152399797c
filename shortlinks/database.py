"""Database engine, connection pool and session factory for shortlinks.

This module builds the SQLAlchemy async engine backed by PostgreSQL
(asyncpg) and the session factory handed to request handlers. Nothing here
is created at import time: the application lifespan owns the engine and
passes the session factory to whoever needs it.

Flow Diagram — Store Operation
==============================
::
    ┌─────────────┐
    │  Handler    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ sessions()  │
    │ borrow conn │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ one query   │
    │ + commit    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ close,      │
    │ return conn │
    └─────────────┘

How to Use
===========
**Step 1 — Create on startup**::
    engine = create_engine(settings)
    sessions = create_session_factory(engine)
    await init_db(engine)

**Step 2 — Borrow a session per query**::
    async with sessions() as session:
        result = await session.execute(select(Link))

**Step 3 — Dispose on shutdown**::
    await close_db(engine)

Key Behaviours
===============
- Pool is bounded by ``DB_POOL_SIZE`` plus ``DB_MAX_OVERFLOW``.
- Connections are pinged before checkout.
- Tables are created on startup when ``CREATE_TABLES`` is set.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    create_engine():  Pooled async engine from settings.
    create_session_factory():  Session factory bound to an engine.
    init_db():  Creates all tables.
    close_db():  Disposes the engine.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortlinks.config import Settings

__all__ = ["Base", "SessionFactory", "create_engine", "create_session_factory", "init_db", "close_db"]

SessionFactory = async_sessionmaker[AsyncSession]


class Base(DeclarativeBase):
    pass


def create_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.SQL_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> SessionFactory:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    # Models must be registered on Base.metadata before create_all.
    import shortlinks.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
