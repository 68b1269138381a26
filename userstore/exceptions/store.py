"""
Error taxonomy raised by the UserStore.

Callers catch ``UserStoreError`` to handle every store failure, or one of the
concrete subclasses to react to a specific kind:

- ValidationError: the input violates a field constraint (caller error, do not retry).
- NotFoundError: the referenced user id does not exist (caller error).
- StorageError: the database failed; the operation had no effect and may be retried.
"""

from collections.abc import Sequence


class UserStoreError(Exception):
    """Base class for all errors raised by the user store."""


class ValidationError(UserStoreError):
    def __init__(self, message: str, errors: Sequence[str] | None = None):
        super().__init__(message)
        self.errors: list[str] = list(errors) if errors else [message]


class NotFoundError(UserStoreError):
    def __init__(self, user_id: int):
        super().__init__(f"User with ID {user_id} not found.")
        self.user_id = user_id


class StorageError(UserStoreError):
    """The underlying database rejected or failed the operation."""
