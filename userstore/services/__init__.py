from .user import UserStore

__all__ = ["UserStore"]
