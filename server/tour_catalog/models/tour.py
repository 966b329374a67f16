"""Tour model definition."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Float, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, validates

from ..core.database import Base
from ..core.derivations import derive_slug, round_rating


class Difficulty(str, Enum):
    """Tour difficulty enumeration."""
    EASY = "easy"
    MEDIUM = "medium"
    DIFFICULT = "difficult"


DEFAULT_RATINGS_AVERAGE = 4.5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Tour(Base):
    """Tour entity representing a tour offering."""

    __tablename__ = "tours"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4
    )

    # Identity
    name: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    # Shape of the tour
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    max_group_size: Mapped[int] = mapped_column(Integer, nullable=False)
    difficulty: Mapped[Difficulty] = mapped_column(String(20), nullable=False)

    # Ratings
    ratings_average: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=DEFAULT_RATINGS_AVERAGE
    )
    ratings_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Pricing
    price: Mapped[float] = mapped_column(Float, nullable=False)
    price_discount: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Presentation
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_cover: Mapped[str] = mapped_column(String(255), nullable=False)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Scheduling (ISO 8601 strings, ordered)
    start_dates: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    secret_tour: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # GeoJSON points
    start_location: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    locations: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    # Denormalised start location coordinates backing proximity queries
    start_location_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    start_location_lng: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Weak references to users.id, in guide order
    guides: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("ratings_average >= 1 AND ratings_average <= 5", name="ck_tour_ratings_average_range"),
        CheckConstraint("ratings_quantity >= 0", name="ck_tour_ratings_quantity_non_negative"),
        CheckConstraint("duration > 0", name="ck_tour_duration_positive"),
        CheckConstraint("max_group_size > 0", name="ck_tour_max_group_size_positive"),
        CheckConstraint("price >= 0", name="ck_tour_price_non_negative"),
        CheckConstraint(
            "price_discount IS NULL OR price_discount < price",
            name="ck_tour_price_discount_below_price"
        ),
    )

    @validates("name")
    def _derive_slug_from_name(self, key: str, value: str) -> str:
        """Trim the name and keep the slug in step with it."""
        value = value.strip()
        self.slug = derive_slug(value)
        return value

    @validates("ratings_average")
    def _round_ratings_average(self, key: str, value: float) -> float:
        return round_rating(value)

    @validates("start_location")
    def _index_start_location(self, key: str, value: dict[str, Any] | None) -> dict[str, Any] | None:
        """Mirror the GeoJSON coordinates into the indexed lat/lng columns."""
        if value and value.get("coordinates"):
            lng, lat = value["coordinates"]
            self.start_location_lng = lng
            self.start_location_lat = lat
        else:
            self.start_location_lng = None
            self.start_location_lat = None
        return value

    @property
    def duration_weeks(self) -> float:
        """Tour length in weeks; computed, never stored."""
        return self.duration / 7

    def __repr__(self) -> str:
        return f"<Tour(id={self.id}, name='{self.name}', slug='{self.slug}')>"


# Declared after the class so the descending column expression can be referenced
Index("ix_tours_price_ratings_average", Tour.price, Tour.ratings_average.desc())
Index("ix_tours_start_location", Tour.start_location_lat, Tour.start_location_lng)
