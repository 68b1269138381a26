from loguru import logger
from sqlalchemy import BigInteger, literal, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from userstore.core.config import Settings
from userstore.exceptions import StorageError
from userstore.models import Base


def create_engine(settings: Settings) -> AsyncEngine:
    """Builds the async engine described by the settings."""
    url = make_url(settings.database_url)
    options: dict = {"echo": settings.echo}

    # SQLite uses its own single-file pools; sizing only applies to server databases.
    if url.get_backend_name() != "sqlite":
        options.update(pool_size=settings.pool_size, max_overflow=0, pool_pre_ping=True)

    logger.debug(f"Creating engine for {url.render_as_string(hide_password=True)}")
    return create_async_engine(url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Records returned to callers must stay readable after the session closes.
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Creates the users table if it does not already exist."""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except (SQLAlchemyError, OSError) as exc:
        logger.error(f"Schema creation failed: {exc}")
        raise StorageError("Could not create the users table.") from exc


async def ping(engine: AsyncEngine, value: int = 150) -> int:
    """
    Round-trips a bound integer through the database and returns it.
    Used as a connectivity check at startup.
    """
    try:
        async with engine.connect() as conn:
            echoed = await conn.scalar(select(literal(value, BigInteger)))
    except (SQLAlchemyError, OSError) as exc:
        logger.error(f"Database ping failed: {exc}")
        raise StorageError("Database is not reachable.") from exc

    if echoed != value:
        raise StorageError(f"Database ping returned {echoed!r}, expected {value!r}.")
    return echoed
