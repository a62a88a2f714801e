"""
Evalify Quiz Attempt Service
Database connection and session management
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine
)
from sqlalchemy.pool import StaticPool

from .models import Base
from ...config import get_settings

# Configure logging
logger = logging.getLogger(__name__)

# Global variables
async_engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[async_sessionmaker] = None


def get_async_database_url(database_url: str) -> str:
    """Convert sync database URL to async version"""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def create_async_engine_instance(database_url: Optional[str] = None) -> AsyncEngine:
    """Create asynchronous SQLAlchemy engine"""
    settings = get_settings()
    database_url = get_async_database_url(database_url or settings.database_url)

    engine_kwargs = {
        "echo": settings.DB_ECHO,
    }

    if database_url.startswith("sqlite"):
        # SQLite specific configuration
        engine_kwargs.update({
            "poolclass": StaticPool,
            "connect_args": {
                "check_same_thread": False,
                "timeout": 20
            }
        })
    else:
        # PostgreSQL specific configuration
        engine_kwargs.update({
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_timeout": 30,
            "pool_recycle": 3600,
            "pool_pre_ping": True
        })

    engine = create_async_engine(database_url, **engine_kwargs)
    if engine.dialect.name == "sqlite":
        setup_sqlite_pragmas(engine)
    return engine


def setup_sqlite_pragmas(engine: AsyncEngine):
    """Enforce foreign keys on every SQLite connection"""

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async def init_database(database_url: Optional[str] = None):
    """Initialize database engine and create tables"""
    global async_engine, AsyncSessionLocal

    logger.info("Initializing database connections...")

    try:
        async_engine = create_async_engine_instance(database_url)

        AsyncSessionLocal = async_sessionmaker(
            bind=async_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=True
        )

        await create_tables()

        logger.info("✅ Database initialized successfully")

    except Exception as e:
        logger.error(f"❌ Database initialization failed: {e}")
        raise


async def create_tables():
    """Create database tables"""
    try:
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("✅ Database tables created successfully")

    except Exception as e:
        logger.error(f"❌ Table creation failed: {e}")
        raise


def get_session_factory() -> async_sessionmaker:
    if not AsyncSessionLocal:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return AsyncSessionLocal


# Session management functions
@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Get async database session with automatic cleanup"""
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# Health check functions
async def check_database_health() -> dict:
    """Check database connection health"""
    try:
        async with get_async_session() as session:
            result = await session.execute(text("SELECT 1"))
            if result.scalar() == 1:
                return {"status": "healthy", "database": "connected"}
            return {"status": "unhealthy", "database": "query_failed"}

    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return {"status": "unhealthy", "database": "connection_failed"}


# Cleanup functions
async def close_database_connections():
    """Close all database connections"""
    global async_engine, AsyncSessionLocal

    if async_engine:
        await async_engine.dispose()
        async_engine = None
        AsyncSessionLocal = None
        logger.info("✅ Async database engine disposed")


# Transaction helpers
@asynccontextmanager
async def database_transaction(
    session_factory: Optional[async_sessionmaker] = None
) -> AsyncGenerator[AsyncSession, None]:
    """Context manager for database transactions with automatic rollback on error"""
    factory = session_factory or get_session_factory()
    async with factory() as session:
        async with session.begin():
            yield session


# Export main functions
__all__ = [
    "init_database",
    "get_session_factory",
    "get_async_session",
    "check_database_health",
    "close_database_connections",
    "database_transaction",
]
