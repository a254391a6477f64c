import logging
from collections.abc import AsyncGenerator
from typing import Any

from dotenv import load_dotenv
from fastapi import Depends
from fastapi_users.db import SQLAlchemyUserDatabase
from sqlalchemy import event, inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cryptotrack.core.config import Settings, settings

from .models import User, metadata

load_dotenv()

logger = logging.getLogger(__name__)


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> AsyncEngine:
    """Turn on foreign key enforcement for every new SQLite connection.

    SQLite ignores REFERENCES clauses (and so ON DELETE CASCADE) unless the
    pragma is set per connection.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def build_engine(url: str, config: Settings = settings) -> AsyncEngine:
    """Create the async engine, sizing the connection pool for server databases.

    SQLite drivers manage their own pool (a single static connection for
    in-memory databases), so pool options are only passed for other backends.
    """
    engine_kwargs: dict[str, Any] = {"echo": config.DB_ECHO}
    if make_url(url).get_backend_name() == "sqlite":
        return enable_sqlite_foreign_keys(create_async_engine(url, **engine_kwargs))

    engine_kwargs.update(
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_timeout=config.DB_POOL_TIMEOUT,
        pool_recycle=config.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )
    return create_async_engine(url, **engine_kwargs)


engine = build_engine(settings.DATABASE_URL)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


# Dependency to get the session factory; repositories open their own transactions
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return async_session_maker


# Dependency to get the raw SQLAlchemy AsyncSession
async def get_db_session(
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker),
) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


# Dependency to get the FastAPI Users database adapter
async def get_user_db(
    session: AsyncSession = Depends(get_db_session),
) -> SQLAlchemyUserDatabase[User, Any]:
    yield SQLAlchemyUserDatabase(session, User)


async def check_database_health(
    session_maker: async_sessionmaker[AsyncSession] = async_session_maker,
    skip_table_check: bool = False,
) -> bool:
    """
    Check if the database connection is working and all required tables exist.
    Returns True if healthy, raises an exception if not.
    """
    try:
        async with session_maker() as session:
            await session.execute(text("SELECT 1"))
            logger.info("Database connection successful")

            if skip_table_check:
                return True

            expected_tables = set(metadata.tables.keys())

            connection = await session.connection()
            existing_tables = set(
                await connection.run_sync(
                    lambda sync_conn: inspect(sync_conn).get_table_names()
                )
            )

            missing_tables = expected_tables - existing_tables

            if missing_tables:
                logger.error(f"Missing required tables: {missing_tables}")
                raise RuntimeError(
                    f"Database migration required. Missing tables: {missing_tables}"
                )

            logger.info(f"All required tables present: {expected_tables}")
            return True

    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        raise
