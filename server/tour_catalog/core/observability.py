"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.resources import Resource
from prometheus_client import Counter, Histogram, generate_latest, CollectorRegistry
import structlog

from .config import settings

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Retrieval metrics
TOUR_QUERY_DURATION = Histogram(
    'tour_query_duration_seconds',
    'Duration of tour retrieval operations in seconds',
    ['operation'],
    registry=REGISTRY
)

UNRESOLVED_GUIDES = Counter(
    'tour_guide_references_unresolved_total',
    'Guide references that did not resolve to a user during population',
    registry=REGISTRY
)

# Write metrics
TOURS_CREATED = Counter(
    'tours_created_total',
    'Total tours created',
    ['difficulty'],
    registry=REGISTRY
)

TOURS_DELETED = Counter(
    'tours_deleted_total',
    'Total tours deleted',
    registry=REGISTRY
)

REVIEWS_CREATED = Counter(
    'reviews_created_total',
    'Total reviews created',
    registry=REGISTRY
)


def setup_structured_logging():
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_tracing(app_name: str = "tour-catalog"):
    """Setup OpenTelemetry tracing."""

    resource = Resource.create({
        "service.name": app_name,
        "service.version": "1.0.0",
        "environment": settings.environment,
    })

    provider = TracerProvider(resource=resource)

    # Export spans only when a collector is configured
    if settings.otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    trace.set_tracer_provider(provider)

    return trace.get_tracer(__name__)


def instrument_sqlalchemy(engine=None):
    """Instrument SQLAlchemy with OpenTelemetry."""
    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)
    else:
        SQLAlchemyInstrumentor().instrument()


class MetricsCollector:
    """Collector for catalog metrics."""

    @staticmethod
    def observe_query(operation: str, seconds: float):
        """Record the duration of a retrieval operation."""
        TOUR_QUERY_DURATION.labels(operation=operation).observe(seconds)

    @staticmethod
    def record_unresolved_guides(count: int):
        """Record guide references that could not be populated."""
        UNRESOLVED_GUIDES.inc(count)

    @staticmethod
    def record_tour_created(difficulty: str):
        """Record a tour creation."""
        TOURS_CREATED.labels(difficulty=difficulty).inc()

    @staticmethod
    def record_tour_deleted():
        """Record a tour deletion."""
        TOURS_DELETED.inc()

    @staticmethod
    def record_review_created():
        """Record a review creation."""
        REVIEWS_CREATED.inc()


def get_prometheus_metrics():
    """Get Prometheus metrics in the text exposition format."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()
