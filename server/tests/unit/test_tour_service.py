"""Unit tests for tour service."""

import logging
from uuid import uuid4

import pytest

from tour_catalog.core.exceptions import ConflictError, NotFoundError, ValidationError
from tour_catalog.schemas.tour import CreateTourRequest, UpdateTourRequest
from tour_catalog.services.query import TourQueryOptions
from tour_catalog.services.tour_service import TourService

WITH_SECRET = TourQueryOptions(include_secret=True)


@pytest.mark.asyncio
async def test_create_tour(test_session, sample_tour_data):
    """Test creating a tour derives the slug and fills defaults."""
    service = TourService(test_session)

    tour = await service.create_tour(CreateTourRequest(**sample_tour_data))

    assert tour.id is not None
    assert tour.name == "The Forest Hiker"
    assert tour.slug == "the-forest-hiker"
    assert tour.ratings_average == 4.5
    assert tour.ratings_quantity == 0
    assert tour.secret_tour is False
    assert tour.created_at is not None
    assert tour.start_location_lng == -115.570154
    assert tour.start_location_lat == 51.178456
    assert tour.duration_weeks == 5 / 7


@pytest.mark.asyncio
async def test_create_tour_from_mapping(test_session, make_tour_data):
    """Test raw documents are validated and the name trimmed before slugging."""
    service = TourService(test_session)

    tour = await service.create_tour(make_tour_data(name="  The Northern Lights Quest "))

    assert tour.name == "The Northern Lights Quest"
    assert tour.slug == "the-northern-lights-quest"


@pytest.mark.asyncio
async def test_create_tour_invalid_document(test_session, make_tour_data):
    """Test an invalid document is rejected with every violation and nothing is stored."""
    service = TourService(test_session)

    with pytest.raises(ValidationError) as exc_info:
        await service.create_tour(make_tour_data(name="Tiny", difficulty="extreme", price_discount=900))

    assert set(exc_info.value.fields) == {"name", "difficulty", "price_discount"}
    assert await service.count_tours(options=WITH_SECRET) == 0


@pytest.mark.asyncio
async def test_create_tour_rounds_ratings_average(test_session, make_tour_data):
    """Test a rating of 4.666 is persisted as 4.7."""
    service = TourService(test_session)

    tour = await service.create_tour(make_tour_data(ratings_average=4.666))
    await test_session.refresh(tour)

    assert tour.ratings_average == 4.7
    found = await service.get_tour_by_id(tour.id)
    assert found.ratings_average == 4.7


@pytest.mark.asyncio
async def test_create_tour_duplicate_name(test_session, sample_tour_data):
    """Test creating a tour with a duplicate name raises error."""
    service = TourService(test_session)

    await service.create_tour(sample_tour_data)

    with pytest.raises(ConflictError) as exc_info:
        await service.create_tour(sample_tour_data)

    assert exc_info.value.status_code == 409
    assert exc_info.value.problem_details["conflicting_resource"]["slug"] == "the-forest-hiker"


@pytest.mark.asyncio
async def test_create_tour_duplicate_slug(test_session, make_tour_data):
    """Test a differently written name with the same slug conflicts."""
    service = TourService(test_session)

    await service.create_tour(make_tour_data(name="The Forest Hiker"))

    with pytest.raises(ConflictError):
        await service.create_tour(make_tour_data(name="THE FOREST HIKER!"))


@pytest.mark.asyncio
async def test_duplicate_of_secret_tour_conflicts(test_session, make_tour_data):
    """Test uniqueness is checked against secret tours as well."""
    service = TourService(test_session)

    await service.create_tour(make_tour_data(secret_tour=True))

    with pytest.raises(ConflictError):
        await service.create_tour(make_tour_data())


@pytest.mark.asyncio
async def test_get_tour_by_id(test_session, sample_tour_data):
    """Test getting a tour by ID."""
    service = TourService(test_session)

    created_tour = await service.create_tour(sample_tour_data)
    found_tour = await service.get_tour_by_id(created_tour.id)

    assert found_tour is not None
    assert found_tour.id == created_tour.id
    assert found_tour.name == sample_tour_data["name"]
    assert found_tour.duration_weeks == 5 / 7
    assert [d.isoformat() for d in found_tour.start_dates] == [
        "2027-04-25T09:00:00+00:00",
        "2027-07-20T09:00:00+00:00",
    ]
    assert found_tour.start_location.address == "224 Banff Ave, Banff, AB, Canada"


@pytest.mark.asyncio
async def test_created_at_hidden_by_default(test_session, sample_tour_data):
    """Test created_at is only returned when asked for."""
    service = TourService(test_session)
    created_tour = await service.create_tour(sample_tour_data)

    default_read = await service.get_tour_by_id(created_tour.id)
    assert default_read.created_at is None

    explicit_read = await service.get_tour_by_id(created_tour.id, TourQueryOptions(include_created_at=True))
    assert explicit_read.created_at is not None


@pytest.mark.asyncio
async def test_get_tour_by_id_not_found(test_session):
    """Test getting a non-existent tour returns None."""
    service = TourService(test_session)

    tour = await service.get_tour_by_id(uuid4())
    assert tour is None


@pytest.mark.asyncio
async def test_get_tour_or_raise_not_found(test_session):
    """Test getting a non-existent tour by ID raises NotFoundError."""
    service = TourService(test_session)

    with pytest.raises(NotFoundError) as exc_info:
        await service.get_tour_or_raise(uuid4())

    assert exc_info.value.problem_details["resource_type"] == "tour"


@pytest.mark.asyncio
async def test_get_tour_by_slug(test_session, sample_tour_data):
    """Test getting a tour by slug."""
    service = TourService(test_session)

    created_tour = await service.create_tour(sample_tour_data)
    found_tour = await service.get_tour_by_slug("the-forest-hiker")

    assert found_tour is not None
    assert found_tour.id == created_tour.id
    assert found_tour.slug == "the-forest-hiker"


@pytest.mark.asyncio
async def test_secret_tours_hidden_from_default_reads(test_session, make_tour_data):
    """Test secret tours are excluded from list, get and count unless requested."""
    service = TourService(test_session)

    public = await service.create_tour(make_tour_data(name="The Forest Hiker"))
    secret = await service.create_tour(make_tour_data(name="The Secret Cove Retreat", secret_tour=True))

    listing = await service.list_tours()
    assert [tour.id for tour in listing.items] == [public.id]
    assert await service.count_tours() == 1
    assert await service.get_tour_by_id(secret.id) is None
    assert await service.get_tour_by_slug("the-secret-cove-retreat") is None

    listing = await service.list_tours(options=WITH_SECRET)
    assert {tour.id for tour in listing.items} == {public.id, secret.id}
    assert await service.count_tours(options=WITH_SECRET) == 2
    found = await service.get_tour_by_id(secret.id, WITH_SECRET)
    assert found is not None and found.secret_tour is True


@pytest.mark.asyncio
async def test_list_tours_filters(test_session, make_tour_data):
    """Test listing applies difficulty, price, rating and duration filters."""
    service = TourService(test_session)

    await service.create_tour(make_tour_data(name="The Forest Hiker", difficulty="easy", price=397, duration=5))
    await service.create_tour(make_tour_data(name="The Sea Explorer", difficulty="medium", price=497, duration=7))
    await service.create_tour(
        make_tour_data(name="The Snow Adventurer", difficulty="difficult", price=997, duration=4, ratings_average=4.9)
    )

    easy = await service.list_tours({"difficulty": "easy"})
    assert [tour.name for tour in easy.items] == ["The Forest Hiker"]

    mid_priced = await service.list_tours({"price_min": 400, "price_max": 1000, "sort": "price"})
    assert [tour.name for tour in mid_priced.items] == ["The Sea Explorer", "The Snow Adventurer"]

    well_rated = await service.list_tours({"ratings_average_min": 4.8})
    assert [tour.name for tour in well_rated.items] == ["The Snow Adventurer"]

    short = await service.list_tours({"duration_max": 5, "sort": "duration"})
    assert [tour.name for tour in short.items] == ["The Snow Adventurer", "The Forest Hiker"]

    assert await service.count_tours({"price_max": 500}) == 2


@pytest.mark.asyncio
async def test_list_tours_sort_and_pagination(test_session, make_tour_data):
    """Test sorting and page-number pagination."""
    service = TourService(test_session)

    for name, price in [("The Forest Hiker", 397), ("The Sea Explorer", 497), ("The Snow Adventurer", 997)]:
        await service.create_tour(make_tour_data(name=name, price=price))

    first = await service.list_tours({"sort": "-price", "limit": 2})
    assert [tour.price for tour in first.items] == [997, 497]
    assert first.has_next_page is True
    assert first.page == 1
    assert first.limit == 2

    second = await service.list_tours({"sort": "-price", "limit": 2, "page": 2})
    assert [tour.price for tour in second.items] == [397]
    assert second.has_next_page is False


@pytest.mark.asyncio
async def test_list_tours_invalid_request(test_session):
    """Test invalid listing parameters surface as ValidationError."""
    service = TourService(test_session)

    with pytest.raises(ValidationError) as exc_info:
        await service.list_tours({"sort": "password", "page": 0})

    assert set(exc_info.value.fields) == {"sort", "page"}


@pytest.mark.asyncio
async def test_top_tours(test_session, make_tour_data):
    """Test top tours are ordered by rating, then by price."""
    service = TourService(test_session)

    await service.create_tour(make_tour_data(name="The Forest Hiker", ratings_average=4.8, price=397))
    await service.create_tour(make_tour_data(name="The Sea Explorer", ratings_average=4.8, price=297))
    await service.create_tour(make_tour_data(name="The Snow Adventurer", ratings_average=4.9, price=997))
    await service.create_tour(make_tour_data(name="The City Wanderer", ratings_average=4.1, price=97))

    top = await service.top_tours(limit=3)

    assert [tour.name for tour in top] == ["The Snow Adventurer", "The Sea Explorer", "The Forest Hiker"]


@pytest.mark.asyncio
async def test_update_tour_rederives_slug(test_session, sample_tour_data):
    """Test renaming a tour through a partial update keeps the slug in step."""
    service = TourService(test_session)
    tour = await service.create_tour(sample_tour_data)

    updated = await service.update_tour(tour.id, UpdateTourRequest(name="The Forest Wanderer"))

    assert updated.name == "The Forest Wanderer"
    assert updated.slug == "the-forest-wanderer"
    assert await service.get_tour_by_slug("the-forest-hiker") is None
    assert (await service.get_tour_by_slug("the-forest-wanderer")).id == tour.id


@pytest.mark.asyncio
async def test_update_tour_keeps_untouched_fields(test_session, sample_tour_data):
    """Test fields missing from the patch keep their stored values."""
    service = TourService(test_session)
    tour = await service.create_tour(sample_tour_data)

    updated = await service.update_tour(tour.id, {"price": 450, "ratings_average": 3.96})

    assert updated.price == 450
    assert updated.ratings_average == 4.0
    assert updated.summary == sample_tour_data["summary"]
    assert updated.images == sample_tour_data["images"]
    assert updated.start_location_lat == 51.178456


@pytest.mark.asyncio
async def test_update_tour_validates_discount_against_stored_price(test_session, make_tour_data):
    """Test the discount bound holds on update, in both directions."""
    service = TourService(test_session)
    tour = await service.create_tour(make_tour_data(price=397, price_discount=299))

    with pytest.raises(ValidationError) as exc_info:
        await service.update_tour(tour.id, {"price_discount": 500})
    assert exc_info.value.fields == ["price_discount"]

    with pytest.raises(ValidationError) as exc_info:
        await service.update_tour(tour.id, {"price": 199})
    assert exc_info.value.fields == ["price_discount"]

    await test_session.refresh(tour)
    assert tour.price == 397
    assert tour.price_discount == 299


@pytest.mark.asyncio
async def test_update_tour_name_conflict(test_session, make_tour_data):
    """Test renaming onto another tour's name conflicts."""
    service = TourService(test_session)
    await service.create_tour(make_tour_data(name="The Forest Hiker"))
    other = await service.create_tour(make_tour_data(name="The Sea Explorer"))

    with pytest.raises(ConflictError):
        await service.update_tour(other.id, {"name": "The Forest Hiker"})


@pytest.mark.asyncio
async def test_update_secret_tour_requires_opt_in(test_session, make_tour_data):
    """Test secret tours are only updatable when secret tours are included."""
    service = TourService(test_session)
    tour = await service.create_tour(make_tour_data(secret_tour=True))

    with pytest.raises(NotFoundError):
        await service.update_tour(tour.id, {"price": 450})

    updated = await service.update_tour(tour.id, {"secret_tour": False}, WITH_SECRET)
    assert updated.secret_tour is False
    assert await service.get_tour_by_id(tour.id) is not None


@pytest.mark.asyncio
async def test_delete_tour(test_session, make_tour_data):
    """Test deleting a tour, secret or not."""
    service = TourService(test_session)
    tour = await service.create_tour(make_tour_data(secret_tour=True))

    await service.delete_tour(tour.id)

    assert await service.get_tour_by_id(tour.id, WITH_SECRET) is None
    with pytest.raises(NotFoundError):
        await service.delete_tour(tour.id)


@pytest.mark.asyncio
async def test_create_tour_with_info_logging(test_session, sample_tour_data, caplog):
    """Test creation succeeds and logs the tour when INFO logging is enabled."""
    service = TourService(test_session)

    with caplog.at_level(logging.INFO):
        tour = await service.create_tour(sample_tour_data)

    created = [record for record in caplog.records if record.getMessage() == "Tour created successfully"]
    assert len(created) == 1
    assert created[0].tour_name == "The Forest Hiker"
    assert created[0].tour_id == str(tour.id)


@pytest.mark.asyncio
async def test_duplicate_name_logged_as_warning(test_session, sample_tour_data, caplog):
    """Test a name conflict is logged and still raised as ConflictError."""
    service = TourService(test_session)
    await service.create_tour(sample_tour_data)

    with caplog.at_level(logging.DEBUG):
        with pytest.raises(ConflictError):
            await service.create_tour(sample_tour_data)

    warnings = [record for record in caplog.records if record.getMessage() == "Tour name already in use"]
    assert [record.tour_name for record in warnings] == ["The Forest Hiker"]


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [1e308, "inf", float("nan")])
async def test_create_tour_rejects_unbounded_rating(test_session, make_tour_data, rating):
    """Test huge or non-finite ratings are reported as validation errors."""
    service = TourService(test_session)

    with pytest.raises(ValidationError) as exc_info:
        await service.create_tour(make_tour_data(ratings_average=rating))

    assert exc_info.value.fields == ["ratings_average"]


@pytest.mark.asyncio
async def test_update_tour_rejects_unbounded_rating(test_session, sample_tour_data):
    service = TourService(test_session)
    tour = await service.create_tour(sample_tour_data)

    for rating in (1e308, "inf"):
        with pytest.raises(ValidationError) as exc_info:
            await service.update_tour(tour.id, {"ratings_average": rating})
        assert exc_info.value.fields == ["ratings_average"]


@pytest.mark.asyncio
async def test_unrequested_fields_absent_from_serialized_reads(test_session, sample_tour_data):
    """Test created_at and reviews only appear in output when they were read."""
    service = TourService(test_session)
    tour = await service.create_tour(sample_tour_data)

    default_dump = (await service.get_tour_by_id(tour.id)).model_dump()
    assert "created_at" not in default_dump
    assert "reviews" not in default_dump
    assert default_dump["duration_weeks"] == 5 / 7

    options = TourQueryOptions(include_created_at=True, populate_reviews=True)
    full_dump = (await service.get_tour_by_id(tour.id, options)).model_dump()
    assert full_dump["created_at"] is not None
    assert full_dump["reviews"] == []

    listing = (await service.list_tours()).model_dump()
    assert "created_at" not in listing["items"][0]


@pytest.mark.asyncio
async def test_create_tour_rejects_name_without_slug(test_session, make_tour_data):
    """Test names with no letters or digits cannot be stored."""
    service = TourService(test_session)

    with pytest.raises(ValidationError) as exc_info:
        await service.create_tour(make_tour_data(name="!!!!!!!!!!!!"))

    assert exc_info.value.fields == ["name"]
    assert await service.count_tours(options=WITH_SECRET) == 0
