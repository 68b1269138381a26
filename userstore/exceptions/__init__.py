from .store import NotFoundError, StorageError, UserStoreError, ValidationError

__all__ = ["NotFoundError", "StorageError", "UserStoreError", "ValidationError"]
