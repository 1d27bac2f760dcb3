"""
Database connection management
"""
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from healthdash.config import settings
from healthdash.database.tables import metadata
from healthdash.utils.url_builder import build_async_url, is_sqlite_url, requires_ssl

logger = logging.getLogger(__name__)

# Global database objects
engine: Optional[AsyncEngine] = None
async_session: Optional[sessionmaker] = None


def init_database(database_url: Optional[str] = None) -> bool:
    """
    Initialize database connection

    Args:
        database_url: Overrides settings.DATABASE_URL when given

    Returns:
        True if initialization successful, False otherwise
    """
    global engine, async_session

    database_url = database_url if database_url is not None else settings.DATABASE_URL
    if not database_url:
        logger.warning("DATABASE_URL not set, database features will be unavailable")
        engine = None
        async_session = None
        return False

    try:
        async_database_url = build_async_url(database_url)

        if is_sqlite_url(async_database_url):
            # aiosqlite connections are tied to a thread; don't pool them
            engine = create_async_engine(
                async_database_url,
                poolclass=NullPool,
                connect_args={"check_same_thread": False},
                echo=False,
            )
        else:
            connect_args = {
                "server_settings": {
                    "application_name": "healthdash_backend",
                    "tcp_keepalives_idle": "600",
                    "tcp_keepalives_interval": "30",
                    "tcp_keepalives_count": "3",
                },
                "command_timeout": 60,
                "timeout": 20,
            }

            if requires_ssl(database_url, settings.DATABASE_SSLMODE):
                connect_args["ssl"] = True

            engine = create_async_engine(
                async_database_url,
                pool_pre_ping=True,
                pool_size=10,
                max_overflow=20,
                pool_recycle=3600,
                pool_timeout=30,
                connect_args=connect_args,
                echo=False,
            )

        async_session = sessionmaker(
            bind=engine,
            expire_on_commit=False,
            class_=AsyncSession
        )

        logger.info("Database engine initialized (%s)", engine.dialect.name)
        return True

    except Exception:
        logger.exception("Failed to initialize database engine")
        engine = None
        async_session = None
        return False


async def create_schema() -> None:
    """Create any missing tables"""
    if engine is None:
        return
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Database schema ready")


async def dispose_database() -> None:
    if engine is not None:
        await engine.dispose()
        logger.info("Database engine disposed")


def get_session() -> Optional[sessionmaker]:
    """
    Get database session maker

    Returns:
        Session maker or None if not initialized
    """
    return async_session


def is_initialized() -> bool:
    """
    Check if database is initialized

    Returns:
        True if initialized, False otherwise
    """
    return engine is not None and async_session is not None


def require_session() -> sessionmaker:
    """Session maker, or 503 when the database isn't configured"""
    if not is_initialized():
        raise HTTPException(status_code=503, detail="Database not configured")
    return async_session
