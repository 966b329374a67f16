"""Unit tests for query options and timing."""

import logging
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from tour_catalog.core.observability import REGISTRY
from tour_catalog.models.tour import Tour
from tour_catalog.services.query import DEFAULT_QUERY_OPTIONS, QueryTimer, TourQueryOptions, apply_visibility


def query_count(operation):
    return REGISTRY.get_sample_value("tour_query_duration_seconds_count", {"operation": operation}) or 0.0


def test_default_options():
    """Test reads hide secret tours and populate guides unless told otherwise."""
    assert DEFAULT_QUERY_OPTIONS.include_secret is False
    assert DEFAULT_QUERY_OPTIONS.populate_guides is True
    assert DEFAULT_QUERY_OPTIONS.populate_reviews is False
    assert DEFAULT_QUERY_OPTIONS.include_created_at is False


def test_apply_visibility_adds_secret_filter():
    stmt = apply_visibility(select(Tour), DEFAULT_QUERY_OPTIONS)
    assert "secret_tour IS NOT" in str(stmt)


def test_apply_visibility_with_secret_tours():
    stmt = select(Tour)
    assert apply_visibility(stmt, TourQueryOptions(include_secret=True)) is stmt


def test_query_timer_records_start_and_elapsed():
    """Test the timer stamps the start and observes the duration."""
    before = query_count("unit_test")
    started = datetime.now(timezone.utc)

    with QueryTimer("unit_test") as timer:
        assert timer.started_at >= started

    assert timer.elapsed_ms is not None
    assert timer.elapsed_ms >= 0
    assert query_count("unit_test") == before + 1


def test_query_timer_warns_when_slow(caplog):
    """Test queries over the threshold are logged as warnings."""
    with caplog.at_level(logging.DEBUG, logger="tour_catalog.services.query"):
        with QueryTimer("unit_test_slow", threshold_ms=-1):
            pass

    assert any(record.getMessage() == "Slow tour query" for record in caplog.records)


def test_query_timer_propagates_errors(caplog):
    """Test a failing query is still measured and the error re-raised."""
    before = query_count("unit_test_failure")

    with caplog.at_level(logging.WARNING, logger="tour_catalog.services.query"):
        with pytest.raises(RuntimeError):
            with QueryTimer("unit_test_failure"):
                raise RuntimeError("boom")

    assert query_count("unit_test_failure") == before + 1
    assert any(record.getMessage() == "Tour query failed" for record in caplog.records)


@pytest.mark.asyncio
async def test_service_reads_are_timed(test_session, sample_tour_data):
    """Test retrieval operations report their duration."""
    from tour_catalog.services.tour_service import TourService

    service = TourService(test_session)
    await service.create_tour(sample_tour_data)
    before = query_count("list")

    await service.list_tours()

    assert query_count("list") == before + 1
