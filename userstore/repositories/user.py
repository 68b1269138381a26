from collections.abc import AsyncIterator
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from userstore.db.utils import apply_dict_updates
from userstore.models import User


class UserRepository:
    """
    Data access for the users table.
    Every method works inside the caller's session and transaction; none of
    them commits.
    """

    # The primary key is assigned by the store's id strategy or the database, never by field data.
    _PROTECTED_FIELDS = {"id"}

    def __init__(self, session: AsyncSession):
        self.session = session

    # --- 1. LOOKUPS ---

    async def get_by_id(self, user_id: int, *, for_update: bool = False) -> User | None:
        """Retrieves a User by their primary ID, optionally locking the row."""
        return await self.session.get(User, user_id, with_for_update=for_update)

    async def get_by_email(self, email: str) -> User | None:
        """Retrieves the lowest-id User holding this email. Emails are not unique at the table level."""
        stmt = select(User).where(User.email == email).order_by(User.id).limit(1)
        return (await self.session.scalars(stmt)).first()

    # --- 2. MUTATIONS ---

    async def create(self, create_data: dict[str, Any], user_id: int | None = None) -> User:
        """
        Creates a new User record and flushes it so the id is populated.

        Args:
            create_data: Validated field values (name, email, note, is_active).
            user_id: Explicit id from the store's id strategy; None lets the
                     database sequence assign it.
        """
        user = User(**{key: value for key, value in create_data.items() if key not in self._PROTECTED_FIELDS})
        if user_id is not None:
            user.id = user_id
        self.session.add(user)
        await self.session.flush()
        return user

    async def update(self, user_id: int, update_data: dict[str, Any]) -> User | None:
        """
        Applies the supplied fields to a locked row. Fields absent from
        update_data keep their stored value.
        """
        user_to_update = await self.get_by_id(user_id, for_update=True)
        if not user_to_update:
            return None

        changed = apply_dict_updates(
            entity=user_to_update, update_data=update_data, excluded_attrs=self._PROTECTED_FIELDS
        )
        if changed:
            await self.session.flush()
            await self.session.refresh(user_to_update)

        return user_to_update

    async def delete(self, user_id: int) -> bool:
        """Removes the row. Returns False if it did not exist."""
        user_to_delete = await self.get_by_id(user_id, for_update=True)
        if not user_to_delete:
            return False

        await self.session.delete(user_to_delete)
        await self.session.flush()
        return True

    # --- 3. ENUMERATION ---

    async def scan(self, active_only: bool = False, batch_size: int = 100) -> AsyncIterator[User]:
        """
        Streams users in ascending id order, fetching batch_size rows per
        round trip instead of loading the whole table.
        """
        stmt = self._filtered(select(User), active_only).order_by(User.id).execution_options(yield_per=batch_size)
        result = await self.session.stream_scalars(stmt)
        async for user in result:
            yield user

    async def count(self, active_only: bool = False) -> int:
        stmt = self._filtered(select(func.count()).select_from(User), active_only)
        return await self.session.scalar(stmt) or 0

    @staticmethod
    def _filtered(stmt: Select, active_only: bool) -> Select:
        if active_only:
            stmt = stmt.where(User.is_active.is_(True))
        return stmt
