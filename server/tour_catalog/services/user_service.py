"""User service for the users tours and reviews refer to."""

import logging
from collections.abc import Mapping
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, NotFoundError
from ..models.user import User
from ..schemas.user import CreateUserRequest
from .validation import validate_request

logger = logging.getLogger(__name__)


class UserService:
    """Service for user-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_user(self, request: CreateUserRequest | Mapping[str, Any]) -> User:
        """
        Create a new user.

        Raises:
            ValidationError: If a raw mapping fails validation
            ConflictError: If a user with the same email already exists
        """
        request = validate_request(CreateUserRequest, request)

        email = request.email.lower()
        existing = await self.get_user_by_email(email)
        if existing:
            raise ConflictError(
                detail=f"User with email '{email}' already exists",
                conflicting_resource={"id": str(existing.id), "email": existing.email}
            )

        user = User(
            name=request.name,
            email=email,
            photo=request.photo,
            role=request.role.value,
            password_changed_at=request.password_changed_at,
        )

        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(detail=f"User with email '{email}' already exists")

        logger.info(
            "User created successfully",
            extra={"user_id": str(user.id), "role": user.role}
        )
        return user

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID."""
        stmt = select(User).where(User.id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        stmt = select(User).where(User.email == email.lower())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_id_or_raise(self, user_id: UUID) -> User:
        """
        Get user by ID or raise NotFoundError.

        Raises:
            NotFoundError: If user not found
        """
        user = await self.get_user_by_id(user_id)
        if not user:
            logger.warning("User not found", extra={"user_id": str(user_id)})
            raise NotFoundError(resource_type="user", resource_id=str(user_id))
        return user
