"""
Bootstrap check: create the users table if needed and verify the database answers.

    python -m userstore
"""

import asyncio
import sys

from loguru import logger

from userstore.core import Settings, configure_logging, get_settings
from userstore.db import create_engine, create_schema, ping
from userstore.exceptions import StorageError


async def bootstrap(settings: Settings) -> int:
    engine = create_engine(settings)
    try:
        await create_schema(engine)
        echoed = await ping(engine)
        logger.info(f"Database ready: ping returned {echoed}")
    finally:
        await engine.dispose()
    return echoed


def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level)
    try:
        asyncio.run(bootstrap(settings))
    except StorageError as exc:
        logger.error(f"Bootstrap failed: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
