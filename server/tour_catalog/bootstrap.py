"""Startup and shutdown wiring for processes that use the tour catalog."""

import logging

from .core.config import settings
from .core.database import close_db, engine, init_db
from .core.observability import instrument_sqlalchemy, setup_structured_logging, setup_tracing

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure structlog and the standard library logging it sits beside."""
    setup_structured_logging()

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


async def startup(create_schema: bool = True) -> None:
    """
    Prepare the catalog for use.

    Sets up logging and tracing, instruments the engine, and creates the
    tables and indexes when ``create_schema`` is true (deployments that run
    migrations pass False).
    """
    configure_logging()
    logger.info("Starting tour catalog", extra={"environment": settings.environment})

    try:
        setup_tracing("tour-catalog")
        instrument_sqlalchemy(engine)
        logger.info("Observability setup completed")

        if create_schema:
            await init_db()
            logger.info("Database schema initialized")
    except Exception as e:
        logger.error(f"Failed to initialize tour catalog: {e}")
        raise

    logger.info("Tour catalog startup complete")


async def shutdown() -> None:
    """Release database connections."""
    logger.info("Shutting down tour catalog")
    await close_db()
    logger.info("Database connections closed")
