"""Resolution of tour guide references into guide summaries."""

import logging
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.observability import metrics_collector
from ..models.user import User
from ..schemas.user import GuideSummary

logger = logging.getLogger(__name__)


class GuideLookup:
    """Resolve guide IDs to GuideSummary records with a single query per call."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, guide_ids: Iterable[UUID | str]) -> dict[UUID, GuideSummary]:
        """
        Look up every distinct guide ID in one query.

        Args:
            guide_ids: Guide IDs, possibly repeated

        Returns:
            Mapping of guide ID to summary, for the IDs that exist
        """
        wanted = {UUID(str(guide_id)) for guide_id in guide_ids}
        if not wanted:
            return {}

        stmt = select(User).where(User.id.in_(list(wanted)))
        result = await self.db.execute(stmt)
        found = {user.id: GuideSummary.model_validate(user) for user in result.scalars()}

        missing = wanted - found.keys()
        if missing:
            logger.warning(
                "Guide references did not resolve",
                extra={"missing_guide_ids": sorted(str(guide_id) for guide_id in missing)}
            )
            metrics_collector.record_unresolved_guides(len(missing))

        return found

    @staticmethod
    def populate(guide_ids: Iterable[UUID | str], resolved: dict[UUID, GuideSummary]) -> list[GuideSummary]:
        """
        Replace guide IDs by their summaries, keeping order.

        IDs without a summary are left out of the result.
        """
        populated = []
        for guide_id in guide_ids:
            summary = resolved.get(UUID(str(guide_id)))
            if summary is not None:
                populated.append(summary)
        return populated
