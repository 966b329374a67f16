"""Alembic environment running migrations through the async engine."""

import asyncio
import sys
from pathlib import Path

from alembic import context
from sqlalchemy.engine import Connection

# Make the tour_catalog package importable when run from the repository root
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from tour_catalog.core.database import Base, engine  # noqa: E402
from tour_catalog.models import *  # noqa: E402,F403 - register all models

target_metadata = Base.metadata


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations in 'online' mode on the application's engine."""
    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await engine.dispose()


def run_migrations_offline() -> None:
    """Emit SQL for the configured URL without connecting."""
    context.configure(
        url=str(engine.url),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
