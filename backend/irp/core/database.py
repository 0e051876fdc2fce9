"""
Async database access.

The engine and session factory are built on first use so tests can swap
them (``_engine``/``_async_session_local``) before anything connects.
"""
import json

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from typing import AsyncGenerator, Optional, Dict, Any

from irp.core.config import settings

Base = declarative_base()

_engine: Optional[AsyncEngine] = None
_async_session_local: Optional[async_sessionmaker[AsyncSession]] = None

ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


def get_database_url() -> str:
    """DATABASE_URL with a plain scheme mapped to its async driver"""
    db_url = settings.DATABASE_URL
    for plain, async_scheme in ASYNC_DRIVERS.items():
        if db_url.startswith(plain):
            return async_scheme + db_url[len(plain):]
    return db_url


def json_serializer(value: Any) -> str:
    """JSON columns keep non-ASCII text as-is so text matching sees real characters"""
    return json.dumps(value, ensure_ascii=False)


def _engine_options(db_url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"json_serializer": json_serializer}
    if db_url.startswith("sqlite"):
        # One connection per checkout; aiosqlite runs each on its own thread
        options.update(connect_args={"check_same_thread": False}, poolclass=NullPool)
    else:
        options["pool_pre_ping"] = True
    return options


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        db_url = get_database_url()
        _engine = create_async_engine(db_url, echo=settings.DB_ECHO, **_engine_options(db_url))
    return _engine


def get_session_local() -> async_sessionmaker[AsyncSession]:
    """Session factory shared by requests, the recorder and the health check"""
    global _async_session_local
    if _async_session_local is None:
        _async_session_local = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _async_session_local


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Commits leftovers only when the handler left pending changes, and rolls
    back on any error so a failed request never half-writes.
    """
    async with get_session_local()() as session:
        try:
            yield session
            if session.new or session.dirty or session.deleted:
                await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_db() -> bool:
    """True when the database answers a trivial query"""
    async with get_session_local()() as session:
        await session.execute(text("SELECT 1"))
    return True


async def init_db():
    """Create missing tables for every registered model"""
    import irp.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    global _engine, _async_session_local
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _async_session_local = None
