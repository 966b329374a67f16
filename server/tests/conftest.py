"""Test configuration and fixtures."""

import os

# Must be set before the package creates its engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio

from tour_catalog.core.database import build_engine, build_session_factory, drop_db, init_db
from tour_catalog.models import *  # noqa: F403 - Import all models
from tour_catalog.models.user import UserRole
from tour_catalog.schemas.user import CreateUserRequest
from tour_catalog.services.user_service import UserService

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = build_engine(TEST_DATABASE_URL)
    await init_db(engine)

    yield engine

    await drop_db(engine)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = build_session_factory(test_engine)

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def guides(test_session):
    """Two guides with sensitive bookkeeping set."""
    from datetime import datetime, timezone

    service = UserService(test_session)
    lead = await service.create_user(
        CreateUserRequest(
            name="Lourdes Browning",
            email="lourdes@example.com",
            role=UserRole.LEAD_GUIDE,
            photo="user-2.jpg",
            password_changed_at=datetime(2026, 1, 15, tzinfo=timezone.utc),
        )
    )
    guide = await service.create_user(
        CreateUserRequest(
            name="Steve Williams",
            email="steve@example.com",
            role=UserRole.GUIDE,
        )
    )
    return [lead, guide]


@pytest.fixture
def sample_tour_data():
    """Sample tour document for testing."""
    return {
        "name": "The Forest Hiker",
        "duration": 5,
        "max_group_size": 25,
        "difficulty": "easy",
        "price": 397,
        "summary": "Breathtaking hike through the Canadian Banff National Park",
        "description": "Five days of lakes, larches and quiet trails.",
        "image_cover": "tour-1-cover.jpg",
        "images": ["tour-1-1.jpg", "tour-1-2.jpg"],
        "start_dates": ["2027-04-25T09:00:00Z", "2027-07-20T09:00:00Z"],
        "start_location": {
            "type": "Point",
            "coordinates": [-115.570154, 51.178456],
            "address": "224 Banff Ave, Banff, AB, Canada",
            "description": "Banff, CAN"
        },
        "locations": [
            {
                "type": "Point",
                "coordinates": [-116.214531, 51.417611],
                "description": "Banff National Park",
                "day": 1
            }
        ],
    }


@pytest.fixture
def make_tour_data(sample_tour_data):
    """Factory for tour documents with overridden fields."""
    def _make(**overrides):
        data = dict(sample_tour_data)
        data.update(overrides)
        return data
    return _make
