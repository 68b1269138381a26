"""
Id-generation strategies for new users.

The store asks its strategy for an id inside the creating transaction:
- DatabaseSequence returns None and the table's own sequence assigns the id.
- MonotonicIdGenerator hands out ids from an in-process counter, which keeps
  id assignment deterministic and independent of the backend.
"""

import asyncio
from typing import Protocol

from sqlalchemy import BigInteger, bindparam, func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from userstore.models import User

_SQLITE_SEQUENCE = text("SELECT seq FROM sqlite_sequence WHERE name = :table")
_POSTGRES_SEQUENCE = text("SELECT pg_sequence_last_value(pg_get_serial_sequence(:table, 'id')::regclass)")
# Only ever moves the sequence forward.
_POSTGRES_ADVANCE = text(
    "SELECT setval(pg_get_serial_sequence(:table, 'id'), :value) "
    "WHERE :value > COALESCE(pg_sequence_last_value(pg_get_serial_sequence(:table, 'id')::regclass), 0)"
).bindparams(bindparam("value", type_=BigInteger))


class IdGenerator(Protocol):
    async def next_id(self, session: AsyncSession) -> int | None:
        """Returns the id for the next user, or None to let the database assign it."""
        ...


class DatabaseSequence:
    async def next_id(self, session: AsyncSession) -> int | None:
        return None


async def sequence_high_water_mark(session: AsyncSession) -> int:
    """
    Returns the highest id the users table has ever held, including rows that
    were deleted since. Combines max(id) with the table's own sequence, which
    remembers ids of deleted rows.
    """
    max_id = await session.scalar(select(func.max(User.id))) or 0

    dialect = session.get_bind().dialect.name
    sequence_value = None
    if dialect == "sqlite":
        sequence_value = await session.scalar(_SQLITE_SEQUENCE, {"table": User.__tablename__})
    elif dialect == "postgresql":
        sequence_value = await session.scalar(_POSTGRES_SEQUENCE, {"table": User.__tablename__})

    return max(max_id, sequence_value or 0)


class MonotonicIdGenerator:
    """
    In-process id counter.

    Seeded lazily from the table's high-water mark (unless a start value is
    given) and incremented under a lock, so concurrent creates never receive
    the same id and ids of deleted users are never handed out again. An id is
    consumed even if the insert using it fails.

    Explicit ids move the database sequence forward too: SQLite does this for
    AUTOINCREMENT tables by itself, PostgreSQL needs a setval.
    """

    def __init__(self, start: int | None = None):
        self._last = start
        self._lock = asyncio.Lock()

    async def next_id(self, session: AsyncSession) -> int | None:
        async with self._lock:
            if self._last is None:
                self._last = await sequence_high_water_mark(session)
            self._last += 1
            next_id = self._last

        if session.get_bind().dialect.name == "postgresql":
            await session.execute(_POSTGRES_ADVANCE, {"table": User.__tablename__, "value": next_id})
        return next_id
