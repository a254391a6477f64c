import pytest
from httpx import AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cryptotrack.core.config import Settings
from cryptotrack.db import build_engine, check_database_health
from cryptotrack.services.migration_service import ensure_sqlite_directory
from tests.test_helpers import register_and_login

pytestmark = pytest.mark.asyncio


async def test_health_endpoint(test_client: AsyncClient):
    response = await test_client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data


async def test_register_login_and_use_bearer_token(test_client: AsyncClient):
    _, headers = await register_and_login(test_client, email="trader@example.com")

    response = await test_client.get("/messages/unread", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"unread_count": 0}


async def test_login_with_wrong_password_fails(test_client: AsyncClient):
    await register_and_login(test_client, email="hodler@example.com")

    response = await test_client.post(
        "/auth/jwt/login",
        data={"username": "hodler@example.com", "password": "wrong-password"},
    )

    assert response.status_code == 400


async def test_invalid_token_is_rejected(test_client: AsyncClient):
    response = await test_client.get(
        "/messages/conversations", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401


async def test_database_health_with_tables(
    db_test_session_manager: async_sessionmaker[AsyncSession],
):
    assert await check_database_health(db_test_session_manager) is True


async def test_database_health_reports_missing_tables():
    empty_engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    session_maker = async_sessionmaker(empty_engine, expire_on_commit=False)
    try:
        with pytest.raises(RuntimeError, match="Missing tables"):
            await check_database_health(session_maker)
        assert await check_database_health(session_maker, skip_table_check=True)
    finally:
        await empty_engine.dispose()


async def test_build_engine_sqlite_skips_pool_options_and_enforces_foreign_keys():
    config = Settings(
        SECRET="s", DATABASE_URL="sqlite+aiosqlite:///:memory:", DB_POOL_SIZE=3
    )

    sqlite_engine = build_engine("sqlite+aiosqlite:///:memory:", config)
    try:
        assert sqlite_engine.url.get_backend_name() == "sqlite"
        assert sqlite_engine.echo is False
        async with sqlite_engine.connect() as conn:
            foreign_keys = (await conn.execute(text("PRAGMA foreign_keys"))).scalar()
        assert foreign_keys == 1
    finally:
        await sqlite_engine.dispose()


def test_ensure_sqlite_directory_creates_parent(tmp_path):
    db_file = tmp_path / "nested" / "data" / "cryptotrack.db"

    ensure_sqlite_directory(f"sqlite+aiosqlite:///{db_file}")

    assert db_file.parent.is_dir()
    assert not db_file.exists()


def test_ensure_sqlite_directory_ignores_memory_and_server_urls(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    ensure_sqlite_directory("sqlite+aiosqlite:///:memory:")
    ensure_sqlite_directory("postgresql+asyncpg://user:pw@localhost/cryptotrack")

    assert list(tmp_path.iterdir()) == []


def test_settings_reports_missing_variables(monkeypatch):
    monkeypatch.delenv("SECRET", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    with pytest.raises(ValueError, match="SECRET"):
        Settings(_env_file=None)


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("DB_POOL_SIZE", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    config = Settings(_env_file=None, SECRET="s", DATABASE_URL="sqlite://")

    assert config.ALGORITHM == "HS256"
    assert config.DB_POOL_SIZE == 10
    assert config.DB_POOL_TIMEOUT == 2.0
    assert config.LOG_LEVEL == "INFO"
    assert Settings.get_required_fields() == ["SECRET", "DATABASE_URL"]


async def test_logout_route_accepts_bearer_token(test_client: AsyncClient):
    _, headers = await register_and_login(test_client)

    response = await test_client.post("/auth/jwt/logout", headers=headers)

    assert response.status_code == 204
