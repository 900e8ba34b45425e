"""Async SQLAlchemy database engine and session management.

Provides the persistent store layer with:
- Connection pooling for server databases (pool_size/max_overflow)
- One unit of work per scope: session_scope() commits on success and
  rolls back on error; get_session() wraps it for FastAPI routes
- get_session_factory() for long-lived handlers (WebSocket) that must
  not pin a pooled connection for their whole lifetime
- SQLite (aiosqlite) by default, PostgreSQL via asyncpg
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import get_settings


# ---------------------------------------------------------------------------
# Engine & session factory
# ---------------------------------------------------------------------------

def build_engine(database_url: str, **overrides) -> AsyncEngine:
    """Create an async engine with pool settings suited to the backend.

    SQLite does not take pool sizing arguments, so they are only passed
    for server databases.
    """
    settings = get_settings()
    kwargs = {"echo": settings.db_echo}
    if not database_url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
        )
    kwargs.update(overrides)
    return create_async_engine(database_url, **kwargs)


engine = build_engine(get_settings().database_url)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Open a session, commit if the block succeeds, roll back if it raises.

    Used directly by scripts and tests; routes go through get_session().
    """
    async with (factory or async_session_factory)() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session.

        @router.get("/tasks")
        async def list_tasks(tasks: TaskRepository = Depends(get_task_repository)):
            ...
    """
    async with session_scope() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for handlers that open short sessions themselves."""
    return async_session_factory


# ---------------------------------------------------------------------------
# Lifecycle hooks
# ---------------------------------------------------------------------------

async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create tables from models (dev/test; no migrations)."""
    from core.models.base import Base
    import verticals.accounts.models.db_models  # noqa: F401
    import verticals.tasks.models.db_models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db(bind: AsyncEngine | None = None) -> None:
    """Drop all tables (used by the seed script)."""
    from core.models.base import Base
    import verticals.accounts.models.db_models  # noqa: F401
    import verticals.tasks.models.db_models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def close_db(bind: AsyncEngine | None = None) -> None:
    """Release pooled connections (app shutdown, end of a script)."""
    await (bind or engine).dispose()
