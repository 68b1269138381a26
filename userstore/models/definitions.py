from sqlalchemy import Boolean, Integer, String, true
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

# Upper bound shared by every text column of the users table.
TEXT_MAX_LENGTH = 255


class User(Base):
    """
    The User Table (users).
    The only entity of the store: five columns, no relationships.

    Retiring a user is done by clearing 'is_active'; rows are only removed
    by an explicit delete, and their ids are never handed out again.
    """

    __tablename__ = "users"
    # SQLite reuses the highest rowid after a delete unless AUTOINCREMENT is declared.
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment="Unique User ID.")

    name: Mapped[str] = mapped_column(
        String(TEXT_MAX_LENGTH), nullable=False, comment="User's display name (not required to be unique)."
    )

    email: Mapped[str] = mapped_column(
        String(TEXT_MAX_LENGTH),
        nullable=False,
        index=True,
        comment="User's email address. Uniqueness is a store option, not a table constraint.",
    )

    note: Mapped[str | None] = mapped_column(
        String(TEXT_MAX_LENGTH), nullable=True, comment="Free-form note about the user."
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
        comment="Cleared when the user is deactivated instead of deleted.",
    )

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, name={self.name!r}, email={self.email!r}, is_active={self.is_active!r})"
