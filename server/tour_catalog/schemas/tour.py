"""Tour-related Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import (
    BaseModel,
    Field,
    SerializerFunctionWrapHandler,
    ValidationInfo,
    computed_field,
    field_validator,
    model_serializer,
    model_validator,
)

from ..core.derivations import derive_slug, round_rating
from ..models.tour import DEFAULT_RATINGS_AVERAGE, Difficulty
from .common import GeoPoint, Location, PaginatedResponse
from .review import Review
from .user import GuideSummary

NAME_MIN_LENGTH = 10
NAME_MAX_LENGTH = 40

SORTABLE_FIELDS = {
    "name",
    "duration",
    "max_group_size",
    "ratings_average",
    "ratings_quantity",
    "price",
    "created_at",
}


class CreateTourRequest(BaseModel):
    """
    Request schema for creating a tour.

    Every rule is checked in one pass so a rejected document reports all
    of its invalid fields at once.
    """

    name: str = Field(..., description="Tour name, unique, 10 to 40 characters")
    duration: int = Field(..., gt=0, description="Duration in days")
    max_group_size: int = Field(..., gt=0, description="Maximum group size")
    difficulty: Difficulty = Field(..., description="Difficulty: easy, medium or difficult")
    ratings_average: float = Field(DEFAULT_RATINGS_AVERAGE, allow_inf_nan=False, description="Average rating, 1 to 5")
    ratings_quantity: int = Field(0, ge=0, description="Number of ratings")
    price: float = Field(..., ge=0, allow_inf_nan=False, description="Regular price")
    # Declared after price: the discount check reads the validated price
    price_discount: float | None = Field(
        None,
        ge=0,
        allow_inf_nan=False,
        description="Discounted price, below the regular price"
    )
    summary: str = Field(..., min_length=1, description="Short summary")
    description: str | None = Field(None, description="Long description")
    image_cover: str = Field(..., min_length=1, description="Cover image reference")
    images: list[str] = Field(default_factory=list, description="Image references")
    start_dates: list[datetime] = Field(default_factory=list, description="Start dates, in order")
    secret_tour: bool = Field(False, description="Hide from default retrieval")
    start_location: GeoPoint | None = Field(None, description="Where the tour starts")
    locations: list[Location] = Field(default_factory=list, description="Stops along the tour")
    guides: list[UUID] = Field(default_factory=list, description="Guide user IDs, in order")

    @field_validator("name", "summary", "description", mode="before")
    @classmethod
    def trim_text(cls, v: Any) -> Any:
        """Strip surrounding whitespace before length checks."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("name")
    @classmethod
    def validate_name_length(cls, v: str) -> str:
        """Validate name length after trimming, and that the name yields a slug."""
        if len(v) < NAME_MIN_LENGTH:
            raise ValueError(f"A tour name must have at least {NAME_MIN_LENGTH} characters")
        if len(v) > NAME_MAX_LENGTH:
            raise ValueError(f"A tour name must have at most {NAME_MAX_LENGTH} characters")
        if not derive_slug(v):
            raise ValueError("A tour name must contain at least one letter or digit")
        return v

    @field_validator("ratings_average")
    @classmethod
    def validate_ratings_average(cls, v: float) -> float:
        """Round to one decimal, then check the bounds on the rounded value."""
        v = round_rating(v)
        if not 1 <= v <= 5:
            raise ValueError("Rating must be between 1.0 and 5.0")
        return v

    @field_validator("price_discount")
    @classmethod
    def validate_price_discount(cls, v: float | None, info: ValidationInfo) -> float | None:
        """Validate the discount stays below the regular price."""
        price = info.data.get("price")
        if v is not None and price is not None and v >= price:
            raise ValueError(f"Discount price ({v}) should be below the regular price ({price})")
        return v


class UpdateTourRequest(BaseModel):
    """
    Request schema for partially updating a tour.

    Only the fields that are set are applied; the merged document is then
    validated in full against CreateTourRequest.
    """

    name: str | None = None
    duration: int | None = None
    max_group_size: int | None = None
    difficulty: Difficulty | None = None
    ratings_average: float | None = Field(None, allow_inf_nan=False)
    ratings_quantity: int | None = None
    price: float | None = Field(None, allow_inf_nan=False)
    price_discount: float | None = Field(None, allow_inf_nan=False)
    summary: str | None = None
    description: str | None = None
    image_cover: str | None = None
    images: list[str] | None = None
    start_dates: list[datetime] | None = None
    secret_tour: bool | None = None
    start_location: GeoPoint | None = None
    locations: list[Location] | None = None
    guides: list[UUID] | None = None


class ListToursRequest(BaseModel):
    """Request schema for listing tours."""

    difficulty: Difficulty | None = Field(None, description="Filter by difficulty")
    price_min: float | None = Field(None, ge=0, description="Minimum price")
    price_max: float | None = Field(None, ge=0, description="Maximum price")
    ratings_average_min: float | None = Field(None, ge=1, le=5, description="Minimum average rating")
    duration_max: int | None = Field(None, gt=0, description="Maximum duration in days")
    sort: str = Field("-created_at", description="Comma-separated fields, '-' prefix for descending")
    page: int = Field(1, ge=1, description="Page number (1-based)")
    limit: int | None = Field(None, ge=1, description="Results per page")

    @field_validator("sort")
    @classmethod
    def validate_sort(cls, v: str) -> str:
        """Validate that every sort key names an orderable field."""
        keys = [key.strip() for key in v.split(",") if key.strip()]
        if not keys:
            raise ValueError("Sort must name at least one field")
        for key in keys:
            if key.lstrip("-") not in SORTABLE_FIELDS:
                raise ValueError(f"Cannot sort by '{key.lstrip('-')}'; allowed: {sorted(SORTABLE_FIELDS)}")
        return ",".join(keys)

    @property
    def sort_keys(self) -> list[tuple[str, bool]]:
        """Sort keys as (field, descending) pairs."""
        return [(key.lstrip("-"), key.startswith("-")) for key in self.sort.split(",")]


class DistanceUnit(str, Enum):
    """Distance unit enumeration."""
    MILES = "mi"
    KILOMETERS = "km"


class _CentredRequest(BaseModel):
    """Point given either as ``lat``/``lng`` or as a ``"lat,lng"`` string."""

    lat: float = Field(..., ge=-90, le=90, description="Latitude")
    lng: float = Field(..., ge=-180, le=180, description="Longitude")
    unit: DistanceUnit = Field(DistanceUnit.MILES, description="Distance unit")

    @model_validator(mode="before")
    @classmethod
    def split_latlng(cls, data: Any) -> Any:
        """Accept a combined ``latlng`` value."""
        if isinstance(data, dict) and "latlng" in data:
            data = dict(data)
            parts = [part.strip() for part in str(data.pop("latlng")).split(",")]
            if len(parts) != 2 or not all(parts):
                raise ValueError("Please provide latitude and longitude in the format lat,lng")
            data.setdefault("lat", parts[0])
            data.setdefault("lng", parts[1])
        return data


class ToursWithinRequest(_CentredRequest):
    """Request schema for a proximity search around a point."""

    distance: float = Field(..., gt=0, description="Search radius in the given unit")


class DistancesRequest(_CentredRequest):
    """Request schema for distances from a point to every tour start."""


class TourDistance(BaseModel):
    """Distance from an origin to a tour's start location."""

    id: UUID = Field(..., description="Tour ID")
    name: str = Field(..., description="Tour name")
    distance: float = Field(..., ge=0, description="Distance in the requested unit")


class Tour(BaseModel):
    """Tour response schema."""

    id: UUID = Field(..., description="Unique tour ID")
    name: str = Field(..., description="Tour name")
    slug: str = Field(..., description="URL-friendly slug")
    duration: int = Field(..., description="Duration in days")
    max_group_size: int = Field(..., description="Maximum group size")
    difficulty: Difficulty = Field(..., description="Difficulty")
    ratings_average: float = Field(..., description="Average rating")
    ratings_quantity: int = Field(..., description="Number of ratings")
    price: float = Field(..., description="Regular price")
    price_discount: float | None = Field(None, description="Discounted price")
    summary: str = Field(..., description="Short summary")
    description: str | None = Field(None, description="Long description")
    image_cover: str = Field(..., description="Cover image reference")
    images: list[str] = Field(default_factory=list, description="Image references")
    start_dates: list[datetime] = Field(default_factory=list, description="Start dates")
    secret_tour: bool = Field(False, description="Hidden from default retrieval")
    start_location: GeoPoint | None = Field(None, description="Where the tour starts")
    locations: list[Location] = Field(default_factory=list, description="Stops along the tour")
    guides: list[GuideSummary] | list[UUID] = Field(
        default_factory=list,
        description="Populated guides, or raw guide IDs when population is off"
    )
    reviews: list[Review] | None = Field(None, description="Reviews, when requested")
    created_at: datetime | None = Field(None, description="Creation time, when requested")

    @model_serializer(mode="wrap")
    def _omit_unrequested(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        """Leave reviews and created_at out of the output unless they were read."""
        data = handler(self)
        for field in ("reviews", "created_at"):
            if field in data and data[field] is None:
                del data[field]
        return data

    @computed_field
    @property
    def duration_weeks(self) -> float:
        """Duration in weeks."""
        return self.duration / 7


class TourListResponse(PaginatedResponse):
    """Response schema for tour listings."""

    items: list[Tour] = Field(..., description="Tours on this page")
