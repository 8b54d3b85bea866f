"""
PicHealth API — Database Session Management
============================================

What:  Async SQLAlchemy engine, session factory and declarative Base for the
       scan / summary log tables.
How:   One async engine with connection pooling; `session_scope()` yields a
       session that commits on success and rolls back on error.
Who:   Used by ScanLogService and by the /health endpoint.
When:  Engine is created at module import; a session is opened per log write.

The log store is best-effort: nothing in the request path waits on it for
correctness, so a database outage degrades logging only.

Connection Pooling Strategy:
    pool_size=10, max_overflow=5: log writes are short single INSERTs
    pool_pre_ping: validates connections before use (catches stale connections)
    pool_recycle=3600: recycles connections every hour
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from pichealth.config import settings


# ── Engine Configuration ──────────────────────────────────────────────────
_engine_options = {
    "pool_pre_ping": settings.db_pool_pre_ping,
    # SQL echo only when debugging
    "echo": settings.log_level == "DEBUG",
}
# SQLite (tests) picks its own pool class, which takes no sizing arguments
if not settings.database_url.startswith("sqlite"):
    _engine_options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=3600,
    )

engine = create_async_engine(settings.database_url, **_engine_options)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: returned rows stay readable after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


# ── Session Scope ─────────────────────────────────────────────────────────
@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """
    Transactional session for one unit of work.

    How it works:
        1. Opens a session from the factory
        2. Yields it to the caller
        3. On success: commits
        4. On error: rolls back and re-raises
        5. Always: closes the session (returns the connection to the pool)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Close all pooled connections. Called from the lifespan on shutdown."""
    await engine.dispose()
