import pytest
from pydantic import ValidationError as PydanticValidationError

from userstore.db import apply_dict_updates
from userstore.models import User
from userstore.schemas import UserCreate, UserResponse, UserUpdate


def test_user_create_defaults():
    data = UserCreate(name="Alice", email="a@x.com")

    assert data.is_active is True
    assert data.note is None


def test_user_create_does_not_validate_email_format():
    """The column is plain text; any non-empty string is accepted."""
    assert UserCreate(name="Alice", email="not-an-email").email == "not-an-email"


def test_user_create_rejects_caller_supplied_id():
    with pytest.raises(PydanticValidationError):
        UserCreate(id=5, name="Alice", email="a@x.com")


def test_user_update_requires_a_field():
    with pytest.raises(PydanticValidationError):
        UserUpdate()


def test_user_update_tracks_only_supplied_fields():
    assert UserUpdate(note=None).changes() == {"note": None}
    assert UserUpdate(is_active=False).changes() == {"is_active": False}


@pytest.mark.parametrize("field", ["name", "email", "is_active"])
def test_user_update_rejects_null_for_required_fields(field):
    with pytest.raises(PydanticValidationError):
        UserUpdate(**{field: None})


def test_user_response_reads_orm_attributes():
    user = User(id=3, name="Alice", email="a@x.com", note=None, is_active=True)

    response = UserResponse.model_validate(user)

    assert response.model_dump() == {"id": 3, "name": "Alice", "email": "a@x.com", "note": None, "is_active": True}


def test_apply_dict_updates_skips_excluded_and_unchanged():
    user = User(id=1, name="Alice", email="a@x.com", is_active=True)

    changed = apply_dict_updates(user, {"id": 9, "name": "Alice", "email": "b@x.com"}, {"id"})

    assert changed == {"email"}
    assert user.id == 1
    assert user.email == "b@x.com"
