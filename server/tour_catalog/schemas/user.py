"""User-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.user import UserRole


class CreateUserRequest(BaseModel):
    """Request schema for creating a user."""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    email: str = Field(..., max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", description="Email address")
    photo: str = Field("default.jpg", max_length=255, description="Profile photo reference")
    role: UserRole = Field(UserRole.USER, description="User role")
    password_changed_at: datetime | None = Field(None, description="Last password change")


class GuideSummary(BaseModel):
    """
    Populated guide shape embedded in tour reads.

    Internal bookkeeping (``version``, ``password_changed_at``) is not part
    of this schema and therefore never leaves the catalog.
    """

    id: UUID = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")
    photo: str = Field(..., description="Profile photo reference")
    role: UserRole = Field(..., description="User role")

    model_config = ConfigDict(from_attributes=True)
