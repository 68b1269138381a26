from pathlib import Path

import pytest
import pytest_asyncio

from userstore.core import Settings
from userstore.db import create_engine, create_schema
from userstore.services import UserStore


def sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a fresh SQLite file, isolated from any .env file."""
    return Settings(_env_file=None, database_url=sqlite_url(tmp_path / "users.db"))


@pytest_asyncio.fixture()
async def engine(settings: Settings):
    """Async engine with the users table already created."""
    engine = create_engine(settings)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def store(settings: Settings, engine) -> UserStore:
    return UserStore.from_settings(settings, engine=engine)


@pytest.fixture()
def store_factory(settings: Settings, engine):
    """Builds stores sharing the test database but with overridden settings."""

    def _build(**overrides) -> UserStore:
        return UserStore.from_settings(settings.model_copy(update=overrides), engine=engine)

    return _build
