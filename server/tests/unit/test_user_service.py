"""Unit tests for user service."""

from uuid import uuid4

import pytest

from tour_catalog.core.exceptions import ConflictError, NotFoundError, ValidationError
from tour_catalog.models.user import UserRole
from tour_catalog.schemas.user import CreateUserRequest
from tour_catalog.services.user_service import UserService


@pytest.mark.asyncio
async def test_create_user(test_session):
    """Test creating a user lower-cases the email and fills defaults."""
    service = UserService(test_session)

    user = await service.create_user(CreateUserRequest(name="Ayla Cornell", email="Ayla@Example.com"))

    assert user.email == "ayla@example.com"
    assert user.role == UserRole.USER.value
    assert user.photo == "default.jpg"
    assert user.version == 1


@pytest.mark.asyncio
async def test_create_user_from_mapping(test_session):
    """Test a raw user document is validated and stored."""
    service = UserService(test_session)

    user = await service.create_user({"name": "Steve Williams", "email": "steve@example.com", "role": "guide"})

    assert user.role == UserRole.GUIDE.value
    assert (await service.get_user_by_email("STEVE@example.com")).id == user.id


@pytest.mark.asyncio
async def test_create_user_invalid_mapping(test_session):
    """Test an invalid user document lists every violation."""
    with pytest.raises(ValidationError) as exc_info:
        await UserService(test_session).create_user({"email": "nobody", "role": "pilot"})

    assert set(exc_info.value.fields) == {"name", "email", "role"}


@pytest.mark.asyncio
async def test_create_user_duplicate_email(test_session):
    """Test emails are unique regardless of case."""
    service = UserService(test_session)
    await service.create_user({"name": "Ayla Cornell", "email": "ayla@example.com"})

    with pytest.raises(ConflictError):
        await service.create_user({"name": "Another Ayla", "email": "AYLA@example.com"})


@pytest.mark.asyncio
async def test_get_user_by_id_or_raise(test_session):
    with pytest.raises(NotFoundError) as exc_info:
        await UserService(test_session).get_user_by_id_or_raise(uuid4())

    assert exc_info.value.problem_details["resource_type"] == "user"
