from .user import UserCreate, UserFilter, UserResponse, UserUpdate

__all__ = ["UserCreate", "UserFilter", "UserResponse", "UserUpdate"]
