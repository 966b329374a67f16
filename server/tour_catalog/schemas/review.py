"""Review-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CreateReviewRequest(BaseModel):
    """Request schema for creating a review."""

    tour_id: UUID = Field(..., description="Reviewed tour")
    user_id: UUID = Field(..., description="Reviewing user")
    review: str = Field(..., min_length=1, description="Review text")
    rating: float = Field(..., ge=1, le=5, description="Rating between 1 and 5")


class Review(BaseModel):
    """Review response schema."""

    id: UUID = Field(..., description="Unique review ID")
    tour_id: UUID = Field(..., description="Reviewed tour")
    user_id: UUID = Field(..., description="Reviewing user")
    review: str = Field(..., description="Review text")
    rating: float = Field(..., description="Rating between 1 and 5")
    created_at: datetime = Field(..., description="Creation time")

    model_config = ConfigDict(from_attributes=True)
