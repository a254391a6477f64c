import os

# Settings are read at import time; never let tests reach a real database.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("SECRET", "test-secret")

from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cryptotrack.db import enable_sqlite_foreign_keys, get_session_maker
from cryptotrack.main import app
from cryptotrack.models import metadata
from cryptotrack.repositories.conversation_repository import ConversationRepository
from cryptotrack.services.messaging_service import MessagingService

# Use an in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# Master fixture: a fresh database per test, tables created and dropped around it
@pytest.fixture(scope="function")
async def db_test_session_manager() -> (
    AsyncGenerator[async_sessionmaker[AsyncSession], None]
):
    test_engine = enable_sqlite_foreign_keys(create_async_engine(TEST_DATABASE_URL))
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield async_sessionmaker(test_engine, expire_on_commit=False)

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture(scope="function")
def conversation_repository(
    db_test_session_manager: async_sessionmaker[AsyncSession],
) -> ConversationRepository:
    return ConversationRepository(db_test_session_manager)


@pytest.fixture(scope="function")
def messaging_service(
    conversation_repository: ConversationRepository,
) -> MessagingService:
    return MessagingService(conversation_repository=conversation_repository)


# Fixture for the FastAPI app with the session factory overridden
@pytest.fixture(scope="function")
def test_app(
    db_test_session_manager: async_sessionmaker[AsyncSession],
) -> FastAPI:
    app.dependency_overrides[get_session_maker] = lambda: db_test_session_manager
    yield app
    app.dependency_overrides.clear()


# Fixture for the async test client
@pytest.fixture(scope="function")
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        yield client
