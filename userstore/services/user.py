import asyncio
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, TypeVar
from weakref import WeakValueDictionary

from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from userstore.core.config import Settings
from userstore.db import DatabaseSequence, IdGenerator, MonotonicIdGenerator, create_engine, create_session_factory
from userstore.exceptions import NotFoundError, StorageError, ValidationError
from userstore.repositories import UserRepository
from userstore.schemas import UserCreate, UserFilter, UserResponse, UserUpdate


M = TypeVar("M", bound=BaseModel)


def _to_validation_error(exc: PydanticValidationError) -> ValidationError:
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "user"
        errors.append(f"{field}: {error['msg']}")
    return ValidationError("Invalid user data: " + "; ".join(errors), errors)


def _validate(schema: type[M], data: dict[str, Any]) -> M:
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise _to_validation_error(exc) from exc


class UserStore:
    """
    Durable, constraint-enforcing storage for User records.

    Each operation runs in its own session. Mutations run inside a single
    transaction that commits on success and rolls back on any exception,
    cancellation included, so a failed or abandoned call leaves no trace.

    Locks are asyncio locks bound to one event loop. Share a single store
    between coroutines; separate stores (other threads, loops or processes)
    do not coordinate with each other, so on a SQLite file or with the
    in-memory id strategy only one store should write at a time.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        id_generator: IdGenerator | None = None,
        unique_email: bool = False,
        serialize_writes: bool = False,
        list_batch_size: int = 100,
    ):
        self._session_factory = session_factory
        self._id_generator = id_generator or DatabaseSequence()
        self._unique_email = unique_email
        self._list_batch_size = list_batch_size
        self._engine: AsyncEngine | None = None

        # Lock order: write lock, then email lock, then record lock.
        self._write_lock = asyncio.Lock() if serialize_writes else None
        self._email_lock = asyncio.Lock()
        self._record_locks: WeakValueDictionary[int, asyncio.Lock] = WeakValueDictionary()

    @classmethod
    def from_settings(cls, settings: Settings, engine: AsyncEngine | None = None) -> "UserStore":
        """
        Builds a store from settings. When no engine is passed the store
        creates one and disposes of it in close().
        """
        owned = engine is None
        engine = engine or create_engine(settings)
        id_generator = MonotonicIdGenerator() if settings.id_strategy == "memory" else DatabaseSequence()

        store = cls(
            create_session_factory(engine),
            id_generator=id_generator,
            unique_email=settings.unique_email,
            # SQLite allows one writer per database file.
            serialize_writes=engine.dialect.name == "sqlite",
            list_batch_size=settings.list_batch_size,
        )
        if owned:
            store._engine = engine
        return store

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    # --- 1. CREATION ---

    async def create(self, name: str, email: str, note: str | None = None, is_active: bool = True) -> UserResponse:
        """
        Validates and persists a new user; the id is assigned here.

        Raises:
            ValidationError: A field is empty, too long, or the email is taken
                             while unique emails are enforced.
            StorageError: The database failed; nothing was written.
        """
        payload = _validate(UserCreate, {"name": name, "email": email, "note": note, "is_active": is_active})

        async with self._storage_errors("create"):
            async with self._write_guard(lock_email=self._unique_email):
                async with self._transaction() as session:
                    repo = UserRepository(session)

                    if self._unique_email and await repo.get_by_email(payload.email):
                        raise ValidationError("User with this email already exists.", ["email: already in use"])

                    user_id = await self._id_generator.next_id(session)
                    created_user = await repo.create(payload.model_dump(), user_id=user_id)
                    result = UserResponse.model_validate(created_user)

        logger.info(f"Created user {result.id}")
        return result

    # --- 2. RETRIEVAL ---

    async def get_by_id(self, user_id: int) -> UserResponse:
        """Raises NotFoundError if no user has this id."""
        async with self._storage_errors("get"):
            async with self._session_factory() as session:
                user = await UserRepository(session).get_by_id(user_id)
                result = UserResponse.model_validate(user) if user else None

        if result is None:
            logger.debug(f"User {user_id} not found")
            raise NotFoundError(user_id)
        return result

    # --- 3. MUTATION ---

    async def update(self, user_id: int, changes: UserUpdate | None = None, /, **fields: Any) -> UserResponse:
        """
        Applies a partial update. Fields may be given as a UserUpdate, as
        keyword arguments, or both (keywords win). Unspecified fields keep
        their stored value and the id can never be changed.
        """
        data = changes.changes() if changes is not None else {}
        update_data = _validate(UserUpdate, {**data, **fields}).changes()
        check_email = self._unique_email and "email" in update_data

        async with self._storage_errors("update"):
            async with self._write_guard(user_id, lock_email=check_email):
                async with self._transaction() as session:
                    repo = UserRepository(session)

                    if check_email:
                        holder = await repo.get_by_email(update_data["email"])
                        if holder and holder.id != user_id:
                            raise ValidationError("User with this email already exists.", ["email: already in use"])

                    updated_user = await repo.update(user_id, update_data)
                    if updated_user is None:
                        logger.warning(f"Update of missing user {user_id}")
                        raise NotFoundError(user_id)
                    result = UserResponse.model_validate(updated_user)

        logger.info(f"Updated user {user_id}: {sorted(update_data)}")
        return result

    async def deactivate(self, user_id: int) -> None:
        """Soft-removes a user. Deactivating an inactive user is a no-op."""
        await self.update(user_id, is_active=False)

    async def delete(self, user_id: int) -> None:
        """
        Permanently removes a user. Not part of the normal lifecycle; prefer
        deactivate(). The id is never reassigned.
        """
        async with self._storage_errors("delete"):
            async with self._write_guard(user_id):
                async with self._transaction() as session:
                    deleted = await UserRepository(session).delete(user_id)
                    if not deleted:
                        logger.warning(f"Delete of missing user {user_id}")
                        raise NotFoundError(user_id)

        logger.info(f"Deleted user {user_id}")

    # --- 4. ENUMERATION ---

    async def count(self, filter: UserFilter | None = None, *, active_only: bool = False) -> int:
        active_only = active_only or (filter is not None and filter.active_only)
        async with self._storage_errors("count"):
            async with self._session_factory() as session:
                return await UserRepository(session).count(active_only=active_only)

    async def list(self, filter: UserFilter | None = None, *, active_only: bool = False) -> AsyncIterator[UserResponse]:
        """
        Lazily yields users in ascending id order.

        Every call starts a new scan, so the sequence can be iterated again.
        Rows are streamed in batches; abandon early iterations with
        contextlib.aclosing() to release the connection promptly.
        """
        active_only = active_only or (filter is not None and filter.active_only)
        logger.debug(f"Listing users (active_only={active_only})")

        async with self._storage_errors("list"):
            async with self._session_factory() as session:
                repo = UserRepository(session)
                async for user in repo.scan(active_only=active_only, batch_size=self._list_batch_size):
                    yield UserResponse.model_validate(user)

    # --- 5. INTERNALS ---

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            async with session.begin():
                yield session

    @asynccontextmanager
    async def _write_guard(self, user_id: int | None = None, *, lock_email: bool = False) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            if self._write_lock is not None:
                await stack.enter_async_context(self._write_lock)
            if lock_email:
                await stack.enter_async_context(self._email_lock)
            if user_id is not None:
                await stack.enter_async_context(self._record_lock(user_id))
            yield

    def _record_lock(self, user_id: int) -> asyncio.Lock:
        lock = self._record_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._record_locks[user_id] = lock
        return lock

    @asynccontextmanager
    async def _storage_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except (SQLAlchemyError, OSError) as exc:
            logger.exception(f"Storage failure during user {operation}")
            raise StorageError(f"User {operation} failed: {exc}") from exc
