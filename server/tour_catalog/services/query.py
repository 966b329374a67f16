"""Explicit retrieval options and timing for tour queries."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from opentelemetry import trace
from sqlalchemy import Select

from ..core.config import settings
from ..core.observability import metrics_collector
from ..models.tour import Tour

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class TourQueryOptions:
    """
    Options every tour retrieval operation honours.

    The defaults hide secret tours and populate guides. Callers that need
    something else say so explicitly instead of relying on hidden hooks.
    """

    include_secret: bool = False
    populate_guides: bool = True
    populate_reviews: bool = False
    include_created_at: bool = False


DEFAULT_QUERY_OPTIONS = TourQueryOptions()


def apply_visibility(stmt: Select, options: TourQueryOptions) -> Select:
    """Restrict a tour select to non-secret tours unless secret ones were asked for."""
    if options.include_secret:
        return stmt
    return stmt.where(Tour.secret_tour.is_not(True))


class QueryTimer:
    """
    Measure one retrieval operation.

    Records the start timestamp on entry; on exit observes the duration
    histogram, annotates the span, and logs the elapsed time.
    """

    def __init__(self, operation: str, threshold_ms: Optional[float] = None):
        self.operation = operation
        self.threshold_ms = settings.slow_query_threshold_ms if threshold_ms is None else threshold_ms
        self.started_at: Optional[datetime] = None
        self.elapsed_ms: Optional[float] = None
        self._start: float = 0.0
        self._span_cm = None
        self._span = None

    def __enter__(self) -> "QueryTimer":
        self.started_at = datetime.now(timezone.utc)
        self._start = time.perf_counter()
        self._span_cm = tracer.start_as_current_span(f"tours.{self.operation}")
        self._span = self._span_cm.__enter__()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        elapsed = time.perf_counter() - self._start
        self.elapsed_ms = elapsed * 1000

        metrics_collector.observe_query(self.operation, elapsed)
        self._span.set_attribute("tours.query.elapsed_ms", self.elapsed_ms)
        self._span_cm.__exit__(exc_type, exc, tb)

        extra = {
            "operation": self.operation,
            "started_at": self.started_at.isoformat(),
            "elapsed_ms": round(self.elapsed_ms, 3),
        }
        if exc_type is not None:
            logger.warning("Tour query failed", extra=extra)
        elif self.elapsed_ms > self.threshold_ms:
            logger.warning("Slow tour query", extra=extra)
        else:
            logger.debug("Tour query completed", extra=extra)

        return False
