"""Review service: the reverse side of the tour-review relationship."""

import logging
from collections.abc import Mapping
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..core.observability import metrics_collector
from ..models.review import Review
from ..models.tour import DEFAULT_RATINGS_AVERAGE, Tour
from ..schemas.review import CreateReviewRequest
from .user_service import UserService
from .validation import validate_request

logger = logging.getLogger(__name__)


class ReviewService:
    """Service for review-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_service = UserService(db)

    async def create_review(self, request: CreateReviewRequest | Mapping[str, Any]) -> Review:
        """
        Create a review and refresh the reviewed tour's rating statistics.

        Raises:
            ValidationError: If a raw mapping fails validation
            NotFoundError: If the tour or the user does not exist
        """
        request = validate_request(CreateReviewRequest, request)

        await self._get_tour_or_raise(request.tour_id)
        await self.user_service.get_user_by_id_or_raise(request.user_id)

        review = Review(
            tour_id=request.tour_id,
            user_id=request.user_id,
            review=request.review,
            rating=request.rating,
        )
        self.db.add(review)
        await self.db.flush()

        await self.recalculate_ratings(request.tour_id)
        await self.db.commit()
        await self.db.refresh(review)

        metrics_collector.record_review_created()
        logger.info(
            "Review created successfully",
            extra={
                "review_id": str(review.id),
                "tour_id": str(review.tour_id),
                "rating": review.rating
            }
        )
        return review

    async def list_reviews_for_tour(self, tour_id: UUID) -> list[Review]:
        """All reviews whose tour reference is ``tour_id``, oldest first."""
        stmt = (
            select(Review)
            .where(Review.tour_id == tour_id)
            .order_by(Review.created_at, Review.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def list_reviews_for_tours(self, tour_ids: list[UUID]) -> dict[UUID, list[Review]]:
        """Reviews of several tours with one query, grouped by tour."""
        grouped: dict[UUID, list[Review]] = {tour_id: [] for tour_id in tour_ids}
        if not tour_ids:
            return grouped

        stmt = (
            select(Review)
            .where(Review.tour_id.in_(tour_ids))
            .order_by(Review.created_at, Review.id)
        )
        result = await self.db.execute(stmt)
        for review in result.scalars():
            grouped[review.tour_id].append(review)
        return grouped

    async def get_review_by_id(self, review_id: UUID) -> Optional[Review]:
        """Get review by ID."""
        stmt = select(Review).where(Review.id == review_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_review(self, review_id: UUID) -> None:
        """
        Delete a review and refresh the tour's rating statistics.

        Raises:
            NotFoundError: If the review does not exist
        """
        review = await self.get_review_by_id(review_id)
        if not review:
            raise NotFoundError(resource_type="review", resource_id=str(review_id))

        tour_id = review.tour_id
        await self.db.delete(review)
        await self.db.flush()

        await self.recalculate_ratings(tour_id)
        await self.db.commit()

        logger.info(
            "Review deleted",
            extra={"review_id": str(review_id), "tour_id": str(tour_id)}
        )

    async def recalculate_ratings(self, tour_id: UUID) -> Tour:
        """
        Recompute ratings_quantity and ratings_average from the stored reviews.

        Without reviews the tour falls back to 0 ratings and the default average.
        Changes are flushed, not committed.
        """
        tour = await self._get_tour_or_raise(tour_id)

        stmt = select(func.count(Review.id), func.avg(Review.rating)).where(Review.tour_id == tour_id)
        count, average = (await self.db.execute(stmt)).one()

        tour.ratings_quantity = count
        # Assignment goes through the model's rounding
        tour.ratings_average = float(average) if count else DEFAULT_RATINGS_AVERAGE
        await self.db.flush()

        logger.debug(
            "Tour ratings recalculated",
            extra={
                "tour_id": str(tour_id),
                "ratings_quantity": tour.ratings_quantity,
                "ratings_average": tour.ratings_average
            }
        )
        return tour

    async def _get_tour_or_raise(self, tour_id: UUID) -> Tour:
        stmt = select(Tour).where(Tour.id == tour_id)
        tour = (await self.db.execute(stmt)).scalar_one_or_none()
        if not tour:
            raise NotFoundError(resource_type="tour", resource_id=str(tour_id))
        return tour
