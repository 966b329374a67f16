"""Tour service for business logic operations."""

import logging
from collections.abc import Mapping
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import Select, and_, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.derivations import derive_slug
from ..core.exceptions import ConflictError, NotFoundError
from ..core.observability import metrics_collector
from ..models.review import Review
from ..models.tour import Tour
from ..schemas.review import Review as ReviewRead
from ..schemas.tour import (
    CreateTourRequest,
    DistancesRequest,
    ListToursRequest,
    TourDistance,
    TourListResponse,
    ToursWithinRequest,
    UpdateTourRequest,
)
from ..schemas.tour import Tour as TourRead
from .geo import bounding_box, central_angle, distance_in_unit, radius_in_radians
from .guide_lookup import GuideLookup
from .query import DEFAULT_QUERY_OPTIONS, QueryTimer, TourQueryOptions, apply_visibility
from .review_service import ReviewService
from .validation import validate_request

logger = logging.getLogger(__name__)

# Stored columns that map one-to-one onto CreateTourRequest fields
_SCALAR_FIELDS = (
    "duration",
    "max_group_size",
    "ratings_average",
    "ratings_quantity",
    "price",
    "price_discount",
    "summary",
    "description",
    "image_cover",
    "secret_tour",
)

# Stored as JSON documents
_DOCUMENT_FIELDS = ("images", "start_dates", "start_location", "locations", "guides")


class TourService:
    """Service for tour-related operations."""

    def __init__(self, db: AsyncSession, guide_lookup: Optional[GuideLookup] = None):
        self.db = db
        self.guide_lookup = guide_lookup or GuideLookup(db)
        self.review_service = ReviewService(db)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_tour(self, request: CreateTourRequest | Mapping[str, Any]) -> Tour:
        """
        Create a new tour.

        Args:
            request: Tour creation request, or a raw document to validate

        Returns:
            Created tour entity

        Raises:
            ValidationError: If the document violates any field rule
            ConflictError: If a tour with the same name or slug already exists
        """
        request = validate_request(CreateTourRequest, request)

        await self._ensure_unique(request.name)

        tour = Tour()
        self._apply(tour, request)

        try:
            self.db.add(tour)
            await self.db.commit()
            await self.db.refresh(tour)
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(
                "Tour creation failed due to integrity constraint",
                extra={"tour_name": request.name, "error": str(e)}
            )
            await self._ensure_unique(request.name)
            # Some other constraint violation
            raise ConflictError(detail="Tour creation failed due to constraint violation")

        metrics_collector.record_tour_created(tour.difficulty)
        logger.info(
            "Tour created successfully",
            extra={
                "tour_id": str(tour.id),
                "slug": tour.slug,
                "tour_name": tour.name
            }
        )

        return tour

    async def update_tour(
        self,
        tour_id: UUID,
        request: UpdateTourRequest | Mapping[str, Any],
        options: TourQueryOptions = DEFAULT_QUERY_OPTIONS,
    ) -> Tour:
        """
        Apply a partial update.

        The patch is merged into the stored document and the result is
        validated as a whole, so cross-field rules such as the discount
        bound hold after updates too. A changed name re-derives the slug.

        Raises:
            NotFoundError: If the tour does not exist or is hidden by ``options``
            ValidationError: If the merged document violates any field rule
            ConflictError: If the new name or slug is already taken
        """
        patch = validate_request(UpdateTourRequest, request).model_dump(exclude_unset=True)

        stmt = apply_visibility(select(Tour).where(Tour.id == tour_id), options)
        tour = (await self.db.execute(stmt)).scalar_one_or_none()
        if not tour:
            raise NotFoundError(resource_type="tour", resource_id=str(tour_id))

        merged = {**self._document(tour), **patch}
        validated = validate_request(CreateTourRequest, merged)

        if validated.name != tour.name:
            await self._ensure_unique(validated.name, exclude_id=tour.id)

        self._apply(tour, validated)

        try:
            await self.db.commit()
            await self.db.refresh(tour)
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(
                "Tour update failed due to integrity constraint",
                extra={"tour_id": str(tour_id), "error": str(e)}
            )
            raise ConflictError(detail="Tour update failed due to constraint violation")

        logger.info(
            "Tour updated successfully",
            extra={
                "tour_id": str(tour.id),
                "fields": sorted(patch),
                "slug": tour.slug
            }
        )

        return tour

    async def delete_tour(self, tour_id: UUID) -> None:
        """
        Delete a tour and its reviews.

        Deletion is by ID alone; secret tours can be deleted too.

        Raises:
            NotFoundError: If the tour does not exist
        """
        tour = (await self.db.execute(select(Tour).where(Tour.id == tour_id))).scalar_one_or_none()
        if not tour:
            raise NotFoundError(resource_type="tour", resource_id=str(tour_id))

        await self.db.execute(delete(Review).where(Review.tour_id == tour_id))
        await self.db.delete(tour)
        await self.db.commit()

        metrics_collector.record_tour_deleted()
        logger.info("Tour deleted", extra={"tour_id": str(tour_id)})

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def get_tour_by_id(
        self,
        tour_id: UUID,
        options: TourQueryOptions = DEFAULT_QUERY_OPTIONS,
    ) -> Optional[TourRead]:
        """
        Get tour by ID.

        Args:
            tour_id: Tour ID to search for
            options: Visibility and population options

        Returns:
            Tour if found and visible, None otherwise
        """
        with QueryTimer("get_by_id"):
            stmt = apply_visibility(select(Tour).where(Tour.id == tour_id), options)
            tour = (await self.db.execute(stmt)).scalar_one_or_none()
            if not tour:
                return None
            return (await self._to_read([tour], options))[0]

    async def get_tour_by_slug(
        self,
        slug: str,
        options: TourQueryOptions = DEFAULT_QUERY_OPTIONS,
    ) -> Optional[TourRead]:
        """
        Get tour by slug.

        Args:
            slug: Tour slug to search for
            options: Visibility and population options

        Returns:
            Tour if found and visible, None otherwise
        """
        with QueryTimer("get_by_slug"):
            stmt = apply_visibility(select(Tour).where(Tour.slug == slug), options)
            tour = (await self.db.execute(stmt)).scalar_one_or_none()
            if not tour:
                return None
            return (await self._to_read([tour], options))[0]

    async def get_tour_or_raise(
        self,
        tour_id: UUID,
        options: TourQueryOptions = DEFAULT_QUERY_OPTIONS,
    ) -> TourRead:
        """
        Get tour by ID or raise NotFoundError.

        Raises:
            NotFoundError: If tour not found or hidden by ``options``
        """
        tour = await self.get_tour_by_id(tour_id, options)
        if not tour:
            logger.warning(
                "Tour not found",
                extra={"tour_id": str(tour_id)}
            )
            raise NotFoundError(
                resource_type="tour",
                resource_id=str(tour_id)
            )
        return tour

    async def list_tours(
        self,
        request: ListToursRequest | Mapping[str, Any] | None = None,
        options: TourQueryOptions = DEFAULT_QUERY_OPTIONS,
    ) -> TourListResponse:
        """
        List tours with filters, sorting and page-number pagination.

        Args:
            request: Filters, sort keys and page
            options: Visibility and population options

        Returns:
            One page of tours
        """
        request = validate_request(ListToursRequest, request)
        limit = min(request.limit or settings.default_page_size, settings.max_page_size)

        with QueryTimer("list"):
            stmt = apply_visibility(self._filtered(select(Tour), request), options)

            for field, descending in request.sort_keys:
                column = getattr(Tour, field)
                stmt = stmt.order_by(column.desc() if descending else column.asc())
            # Stable order across pages
            stmt = stmt.order_by(Tour.id)

            # Fetch one extra to determine if there's a next page
            stmt = stmt.offset((request.page - 1) * limit).limit(limit + 1)

            tours = list((await self.db.execute(stmt)).scalars())
            has_next_page = len(tours) > limit
            tours = tours[:limit]

            items = await self._to_read(tours, options)

        logger.info(
            "Tour listing completed",
            extra={
                "total_found": len(items),
                "page": request.page,
                "has_next_page": has_next_page,
                "include_secret": options.include_secret
            }
        )

        return TourListResponse(
            items=items,
            page=request.page,
            limit=limit,
            has_next_page=has_next_page
        )

    async def count_tours(
        self,
        request: ListToursRequest | Mapping[str, Any] | None = None,
        options: TourQueryOptions = DEFAULT_QUERY_OPTIONS,
    ) -> int:
        """Count tours matching the filters of ``request`` (sort and page are ignored)."""
        request = validate_request(ListToursRequest, request)

        with QueryTimer("count"):
            stmt = apply_visibility(self._filtered(select(func.count(Tour.id)), request), options)
            return (await self.db.execute(stmt)).scalar_one()

    async def top_tours(
        self,
        limit: int = 5,
        options: TourQueryOptions = DEFAULT_QUERY_OPTIONS,
    ) -> list[TourRead]:
        """Best-rated tours, cheapest first among equal ratings."""
        response = await self.list_tours(
            ListToursRequest(sort="-ratings_average,price", limit=limit),
            options
        )
        return response.items

    async def tours_within(
        self,
        request: ToursWithinRequest | Mapping[str, Any],
        options: TourQueryOptions = DEFAULT_QUERY_OPTIONS,
    ) -> list[TourRead]:
        """
        Tours whose start location lies within a radius of a point.

        Args:
            request: Centre, radius and unit (``mi`` or ``km``)
            options: Visibility and population options

        Returns:
            Matching tours, ordered by ID
        """
        request = validate_request(ToursWithinRequest, request)
        radius = radius_in_radians(request.distance, request.unit)

        with QueryTimer("within"):
            stmt = apply_visibility(self._near(request.lat, request.lng, radius), options)
            stmt = stmt.order_by(Tour.id)
            candidates = (await self.db.execute(stmt)).scalars()

            tours = [
                tour for tour in candidates
                if central_angle(request.lat, request.lng, tour.start_location_lat, tour.start_location_lng) <= radius
            ]
            items = await self._to_read(tours, options)

        logger.info(
            "Proximity search completed",
            extra={
                "total_found": len(items),
                "distance": request.distance,
                "unit": request.unit.value
            }
        )
        return items

    async def distances(
        self,
        request: DistancesRequest | Mapping[str, Any],
        options: TourQueryOptions = DEFAULT_QUERY_OPTIONS,
    ) -> list[TourDistance]:
        """
        Distance from a point to the start of every located tour, nearest first.

        Args:
            request: Origin and unit (``mi`` or ``km``)
            options: Visibility options; population options do not apply

        Returns:
            Tour ID, name and distance in the requested unit
        """
        request = validate_request(DistancesRequest, request)

        with QueryTimer("distances"):
            stmt = select(Tour.id, Tour.name, Tour.start_location_lat, Tour.start_location_lng).where(
                Tour.start_location_lat.is_not(None),
                Tour.start_location_lng.is_not(None)
            )
            stmt = apply_visibility(stmt, options)
            rows = (await self.db.execute(stmt)).all()

        results = [
            TourDistance(
                id=row.id,
                name=row.name,
                distance=distance_in_unit(
                    request.lat, request.lng, row.start_location_lat, row.start_location_lng, request.unit
                )
            )
            for row in rows
        ]
        results.sort(key=lambda item: item.distance)
        return results

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _ensure_unique(self, name: str, exclude_id: Optional[UUID] = None) -> None:
        """
        Raise ConflictError if another tour, secret or not, holds the name or its slug.
        """
        stmt = select(Tour).where(or_(Tour.name == name, Tour.slug == derive_slug(name)))
        if exclude_id is not None:
            stmt = stmt.where(Tour.id != exclude_id)

        existing_tour = (await self.db.execute(stmt.limit(1))).scalar_one_or_none()
        if existing_tour:
            logger.warning(
                "Tour name already in use",
                extra={
                    "tour_name": name,
                    "existing_tour_id": str(existing_tour.id)
                }
            )
            raise ConflictError(
                detail=f"Tour with name '{name}' already exists",
                conflicting_resource={
                    "id": str(existing_tour.id),
                    "slug": existing_tour.slug,
                    "name": existing_tour.name
                }
            )

    @staticmethod
    def _apply(tour: Tour, request: CreateTourRequest) -> None:
        """Copy a validated document onto the entity."""
        # Name assignment re-derives the slug
        tour.name = request.name
        tour.difficulty = request.difficulty.value
        for field in _SCALAR_FIELDS:
            setattr(tour, field, getattr(request, field))

        document = request.model_dump(mode="json", include=set(_DOCUMENT_FIELDS))
        for field in _DOCUMENT_FIELDS:
            setattr(tour, field, document[field])

    @staticmethod
    def _document(tour: Tour) -> dict[str, Any]:
        """The stored tour as a CreateTourRequest-shaped mapping."""
        document = {field: getattr(tour, field) for field in _SCALAR_FIELDS + _DOCUMENT_FIELDS}
        document["name"] = tour.name
        document["difficulty"] = tour.difficulty
        return document

    @staticmethod
    def _filtered(stmt: Select, request: ListToursRequest) -> Select:
        conditions = []

        if request.difficulty:
            conditions.append(Tour.difficulty == request.difficulty.value)

        if request.price_min is not None:
            conditions.append(Tour.price >= request.price_min)

        if request.price_max is not None:
            conditions.append(Tour.price <= request.price_max)

        if request.ratings_average_min is not None:
            conditions.append(Tour.ratings_average >= request.ratings_average_min)

        if request.duration_max is not None:
            conditions.append(Tour.duration <= request.duration_max)

        if conditions:
            stmt = stmt.where(and_(*conditions))
        return stmt

    @staticmethod
    def _near(lat: float, lng: float, radius: float) -> Select:
        """Tours whose start lies in the bounding box of the spherical cap."""
        lat_min, lat_max, lng_min, lng_max = bounding_box(lat, lng, radius)

        stmt = select(Tour).where(
            Tour.start_location_lat.is_not(None),
            Tour.start_location_lng.is_not(None),
            Tour.start_location_lat.between(lat_min, lat_max)
        )
        if lng_min is not None:
            stmt = stmt.where(Tour.start_location_lng.between(lng_min, lng_max))
        return stmt

    async def _to_read(self, tours: list[Tour], options: TourQueryOptions) -> list[TourRead]:
        """Shape entities for callers, populating references as ``options`` ask."""
        resolved = {}
        if options.populate_guides:
            resolved = await self.guide_lookup.resolve(
                guide_id for tour in tours for guide_id in tour.guides
            )

        reviews = {}
        if options.populate_reviews:
            reviews = await self.review_service.list_reviews_for_tours([tour.id for tour in tours])

        items = []
        for tour in tours:
            document = self._document(tour)
            document.update(
                id=tour.id,
                slug=tour.slug,
                guides=GuideLookup.populate(tour.guides, resolved) if options.populate_guides else tour.guides,
                reviews=[ReviewRead.model_validate(review) for review in reviews.get(tour.id, [])]
                if options.populate_reviews else None,
                created_at=tour.created_at if options.include_created_at else None,
            )
            items.append(TourRead.model_validate(document))
        return items
