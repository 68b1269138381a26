import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import inspect

from userstore.__main__ import bootstrap, main
from userstore.core import Settings, get_settings
from userstore.db import ping


@pytest.mark.asyncio
async def test_ping_round_trips_value(engine):
    assert await ping(engine) == 150
    assert await ping(engine, value=7) == 7


@pytest.mark.asyncio
async def test_schema_exposes_exactly_the_user_columns(engine):
    async with engine.connect() as conn:
        columns = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_columns("users"))

    by_name = {column["name"]: column for column in columns}
    assert list(by_name) == ["id", "name", "email", "note", "is_active"]
    assert by_name["name"]["nullable"] is False
    assert by_name["email"]["nullable"] is False
    assert by_name["note"]["nullable"] is True
    assert by_name["name"]["type"].length == 255


@pytest.mark.asyncio
async def test_bootstrap_creates_schema_and_pings(settings: Settings):
    assert await bootstrap(settings) == 150


def test_main_returns_error_code_on_storage_failure(tmp_path, monkeypatch):
    monkeypatch.setenv("USERSTORE__DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'nope' / 'users.db'}")
    get_settings.cache_clear()
    try:
        assert main() == 1
    finally:
        get_settings.cache_clear()


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("USERSTORE__UNIQUE_EMAIL", "true")
    monkeypatch.setenv("USERSTORE__ID_STRATEGY", "memory")

    settings = Settings(_env_file=None)

    assert settings.unique_email is True
    assert settings.id_strategy == "memory"
    assert settings.pool_size == 5


def test_settings_reject_unknown_id_strategy():
    with pytest.raises(PydanticValidationError):
        Settings(_env_file=None, id_strategy="uuid")
