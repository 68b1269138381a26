from .base import Base
from .definitions import TEXT_MAX_LENGTH, User

__all__ = ["Base", "TEXT_MAX_LENGTH", "User"]
