#!/usr/bin/env python3
"""Load or remove development data for the tour catalog."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from uuid import UUID

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import delete

from tour_catalog.bootstrap import shutdown, startup
from tour_catalog.core.database import session_scope
from tour_catalog.models import Review, Tour, User
from tour_catalog.schemas.review import CreateReviewRequest
from tour_catalog.schemas.user import CreateUserRequest
from tour_catalog.services import ReviewService, TourService, UserService

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path(__file__).parent / "data" / "dev-data.json"


def run_migrations() -> None:
    """Bring the schema up to date with Alembic."""
    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def import_data(path: Path) -> None:
    """Create the users, tours and reviews described in ``path``."""
    data = json.loads(path.read_text(encoding="utf-8"))

    async with session_scope() as db:
        user_service = UserService(db)
        tour_service = TourService(db)
        review_service = ReviewService(db)

        # Data files refer to users by key; stored tours refer to them by ID
        user_ids: dict[str, UUID] = {}
        for entry in data.get("users", []):
            key = entry.pop("key")
            user = await user_service.create_user(CreateUserRequest(**entry))
            user_ids[key] = user.id

        tour_ids: dict[str, UUID] = {}
        for entry in data.get("tours", []):
            entry["guides"] = [user_ids[key] for key in entry.get("guides", [])]
            tour = await tour_service.create_tour(entry)
            tour_ids[tour.slug] = tour.id

        for entry in data.get("reviews", []):
            await review_service.create_review(
                CreateReviewRequest(
                    tour_id=tour_ids[entry["tour"]],
                    user_id=user_ids[entry["user"]],
                    review=entry["review"],
                    rating=entry["rating"],
                )
            )

    logger.info(
        "Development data imported",
        extra={
            "users": len(user_ids),
            "tours": len(tour_ids),
            "reviews": len(data.get("reviews", [])),
        }
    )


async def delete_data() -> None:
    """Remove every review, tour and user."""
    async with session_scope() as db:
        await db.execute(delete(Review))
        await db.execute(delete(Tour))
        await db.execute(delete(User))
        await db.commit()

    logger.info("All catalog data deleted")


async def main(args: argparse.Namespace) -> None:
    """Entry point."""
    await startup(create_schema=not args.migrate)
    try:
        if args.delete:
            await delete_data()
        if args.import_path:
            await import_data(args.import_path)
    finally:
        await shutdown()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--import",
        dest="import_path",
        nargs="?",
        const=DEFAULT_DATA_FILE,
        type=Path,
        help="Import development data (defaults to scripts/data/dev-data.json)",
    )
    parser.add_argument("--delete", action="store_true", help="Delete all catalog data first")
    parser.add_argument("--migrate", action="store_true", help="Run Alembic migrations instead of create_all")
    args = parser.parse_args(argv)
    if not (args.import_path or args.delete or args.migrate):
        parser.error("nothing to do: pass --import, --delete and/or --migrate")
    return args


if __name__ == "__main__":
    arguments = parse_args()
    if arguments.migrate:
        # Alembic drives its own event loop, so it runs before ours starts
        run_migrations()
    asyncio.run(main(arguments))
