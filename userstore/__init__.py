from .exceptions import NotFoundError, StorageError, UserStoreError, ValidationError
from .schemas import UserCreate, UserFilter, UserResponse, UserUpdate
from .services import UserStore

__all__ = [
    "NotFoundError",
    "StorageError",
    "UserCreate",
    "UserFilter",
    "UserResponse",
    "UserStore",
    "UserStoreError",
    "UserUpdate",
    "ValidationError",
]
