"""
CampusQA persistence: async engine, session factory and the request session.

Services own their transactions (the accept and like flows commit or roll back
as a unit), so the request dependency only finishes what a handler left
pending.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from typing import AsyncGenerator, Optional

from app.core.config import settings

Base = declarative_base()

# Built on first use so importing models never opens a connection
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_database_url() -> str:
    """DATABASE_URL with plain postgresql:// mapped to the asyncpg driver"""
    db_url = settings.DATABASE_URL
    if db_url.startswith("postgresql://"):
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return db_url


def get_engine() -> AsyncEngine:
    """
    Shared engine for the question, answer and user tables.

    SQLite (development, tests) gets a NullPool so every session owns its
    connection; PostgreSQL gets a pool sized by DB_POOL_SIZE / DB_MAX_OVERFLOW.
    """
    global _engine
    if _engine is None:
        db_url = get_database_url()

        if db_url.startswith("sqlite"):
            _engine = create_async_engine(
                db_url,
                echo=settings.DB_ECHO,
                connect_args={"check_same_thread": False},
                poolclass=NullPool,
            )
        else:
            _engine = create_async_engine(
                db_url,
                echo=settings.DB_ECHO,
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_recycle=1800,
                pool_pre_ping=True,
            )
    return _engine


def get_session_local() -> async_sessionmaker[AsyncSession]:
    """Session factory; objects stay readable after commit for response building"""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request; leftovers are committed, failures rolled back"""
    session_factory = get_session_local()
    async with session_factory() as session:
        try:
            yield session
            if session.new or session.dirty or session.deleted:
                await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    """Create the CampusQA tables if they do not exist"""
    from app import models  # noqa: F401  register tables on the metadata

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Dispose the engine on shutdown"""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
