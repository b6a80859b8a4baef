from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from typing import Optional

from hivecommunity.core.config import settings

# Create base class for models (can be defined before engine)
Base = declarative_base()

# Lazy engine initialization - create on first use to avoid import-time issues
_engine: Optional[AsyncEngine] = None


def get_database_url(url: Optional[str] = None) -> str:
    """Get properly formatted database URL"""
    db_url = url or settings.DATABASE_URL
    if db_url.startswith("postgresql://"):
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://")
    return db_url


def build_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> AsyncEngine:
    """
    Create a new async engine.

    Connection pooling strategy:
    - SQLite: NullPool (required for thread safety)
    - PostgreSQL Development: NullPool (simpler debugging)
    - PostgreSQL Production: default QueuePool with pre-ping
    """
    db_url = get_database_url(url)
    echo = settings.DB_ECHO if echo is None else echo

    if "sqlite" in db_url:
        engine = create_async_engine(
            db_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=NullPool,
        )
        _begin_immediate(engine)
        return engine
    if settings.is_dev_mode():
        return create_async_engine(db_url, echo=echo, poolclass=NullPool)
    return create_async_engine(db_url, echo=echo, pool_pre_ping=True)


def _begin_immediate(engine: AsyncEngine) -> None:
    """Take the SQLite write lock when a transaction starts.

    Concurrent transactions then queue on the lock instead of failing on
    upgrade, so a writer always sees the state its predecessor committed.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_engine() -> AsyncEngine:
    """Get or create the application engine (lazy initialization)"""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


async def init_db(engine: Optional[AsyncEngine] = None):
    """Create the record tables if missing"""
    import hivecommunity.models  # noqa: F401  register models on Base.metadata

    eng = engine or get_engine()
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connection"""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
