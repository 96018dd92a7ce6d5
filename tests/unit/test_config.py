"""Unit tests for settings and application database lifecycle."""

import pytest

from bookapp.core.config import Settings
from bookapp.core.database import Database
from bookapp.main import create_app


def test_postgres_url_uses_asyncpg():
    settings = Settings(_env_file=None, database_url="postgresql://u:p@db:5432/app")
    assert settings.async_database_url == "postgresql+asyncpg://u:p@db:5432/app"


def test_async_urls_are_left_alone():
    settings = Settings(_env_file=None, database_url="sqlite+aiosqlite:///app.db")
    assert settings.async_database_url == "sqlite+aiosqlite:///app.db"


def test_cors_lists_parse_csv():
    settings = Settings(
        _env_file=None,
        cors_allow_origins="https://a.example, https://b.example,",
    )
    assert settings.cors_allow_origins == ["https://a.example", "https://b.example"]


@pytest.mark.parametrize("length", [3, 33])
def test_code_length_is_bounded(length):
    with pytest.raises(ValueError):
        Settings(_env_file=None, invitation_code_length=length)


def test_short_internal_token_rejected_in_production():
    with pytest.raises(ValueError):
        Settings(_env_file=None, environment="production", internal_api_token="short")


@pytest.mark.asyncio
async def test_lifespan_creates_and_disposes_database(tmp_path):
    settings = Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'app.db'}",
    )
    app = create_app(settings)

    async with app.router.lifespan_context(app):
        assert isinstance(app.state.database, Database)
        assert app.state.database.engine.url.drivername == "sqlite+aiosqlite"


@pytest.mark.asyncio
async def test_lifespan_keeps_injected_database(database: Database, settings: Settings):
    app = create_app(settings, database=database)

    async with app.router.lifespan_context(app):
        assert app.state.database is database

    # Still usable: the app did not own it
    async with database.engine.connect():
        pass
