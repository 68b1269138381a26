"""
Pydantic schemas defining the contract between callers and the UserStore.

The users table declares its constraints in SQL (NOT NULL, VARCHAR(255),
DEFAULT TRUE). These schemas restate them so every mutation is checked before
it reaches the database, whatever backend is in use.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, model_validator

from userstore.models import TEXT_MAX_LENGTH

# --- Input Schemas (Commands) ---


class UserCreate(BaseModel):
    """
    Schema for user creation. The id is never part of the input; the store
    assigns it.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=TEXT_MAX_LENGTH, description="User's display name")
    # No format check: the column is plain text.
    email: str = Field(..., min_length=1, max_length=TEXT_MAX_LENGTH, description="User's email address")
    note: str | None = Field(default=None, max_length=TEXT_MAX_LENGTH, description="Optional free-form note")
    is_active: StrictBool = Field(default=True, description="Whether the user is active")


class UserUpdate(BaseModel):
    """
    Schema for partial updates. Only the fields that were explicitly supplied
    are applied; 'note' may be supplied as None to clear it.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=TEXT_MAX_LENGTH, description="New display name")
    email: str | None = Field(default=None, min_length=1, max_length=TEXT_MAX_LENGTH, description="New email")
    note: str | None = Field(default=None, max_length=TEXT_MAX_LENGTH, description="New note, or None to clear")
    is_active: StrictBool | None = Field(default=None, description="New activity flag")

    @model_validator(mode="after")
    def _require_fields(self) -> "UserUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be supplied for an update.")

        for required in ("name", "email", "is_active"):
            if required in self.model_fields_set and getattr(self, required) is None:
                raise ValueError(f"'{required}' cannot be set to null.")
        return self

    def changes(self) -> dict[str, Any]:
        """Returns only the explicitly supplied fields."""
        return self.model_dump(exclude_unset=True)


class UserFilter(BaseModel):
    """Selection applied when enumerating users."""

    active_only: bool = Field(default=False, description="Skip deactivated users")


# --- Output Schema (Domain Object) ---


class UserResponse(BaseModel):
    """
    A stored user record, detached from any database session.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int = Field(..., description="User ID")
    name: str = Field(..., description="User's display name")
    email: str = Field(..., description="User's email address")
    note: str | None = Field(default=None, description="Optional free-form note")
    is_active: bool = Field(..., description="Whether the user is active")
