"""Common Pydantic schemas."""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator


class Violation(BaseModel):
    """Validation error violation."""

    path: str = Field(..., description="Name of the invalid field")
    message: str = Field(..., description="Validation error message")


class Problem(BaseModel):
    """RFC 9457 Problem Details payload."""

    type: Optional[str] = Field(None, description="Problem type URI")
    title: str = Field(..., description="Short human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: Optional[str] = Field(None, description="Human-readable explanation")
    instance: Optional[str] = Field(None, description="URI reference for this occurrence")
    violations: Optional[List[Violation]] = Field(None, description="Validation errors")


class GeoPoint(BaseModel):
    """GeoJSON point with a human-readable address."""

    type: Literal["Point"] = Field("Point", description="GeoJSON geometry type")
    coordinates: List[float] = Field(
        ...,
        min_length=2,
        max_length=2,
        description="Longitude then latitude"
    )
    address: Optional[str] = Field(None, description="Street address")
    description: Optional[str] = Field(None, description="Place description")

    @field_validator("coordinates")
    @classmethod
    def validate_coordinates(cls, v: List[float]) -> List[float]:
        """Validate longitude and latitude ranges."""
        lng, lat = v
        if not -180 <= lng <= 180:
            raise ValueError("Longitude must be between -180 and 180")
        if not -90 <= lat <= 90:
            raise ValueError("Latitude must be between -90 and 90")
        return v

    @property
    def lng(self) -> float:
        return self.coordinates[0]

    @property
    def lat(self) -> float:
        return self.coordinates[1]


class Location(GeoPoint):
    """Tour stop: a point visited on a given day."""

    day: Optional[int] = Field(None, ge=0, description="Day of the tour the stop is visited")


class PaginatedResponse(BaseModel):
    """Base class for page-numbered responses."""

    page: int = Field(..., ge=1, description="Current page (1-based)")
    limit: int = Field(..., ge=1, description="Page size")
    has_next_page: bool = Field(False, description="Whether another page follows")
