"""
Telemetry configuration (Metrics & Tracing).
Sets up Prometheus instrumentation, OpenTelemetry and the feed-level metrics.
"""
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Counter, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

from marketfeed.config import get_settings

# -----------------------------------------------------------------------------
# Feed metrics
# -----------------------------------------------------------------------------

FEED_REQUESTS = Counter(
    "marketfeed_feed_requests_total",
    "Feed requests served",
    ["feed", "personalized"],
)

FEED_SIZE = Histogram(
    "marketfeed_feed_size",
    "Number of candidates returned per feed response",
    ["feed"],
    buckets=(0, 1, 5, 10, 20, 50, 100, 200),
)

GATED_CANDIDATES = Counter(
    "marketfeed_gated_candidates_total",
    "Candidates removed by the performance gate",
)

FEEDBACK_FAILURES = Counter(
    "marketfeed_feedback_failures_total",
    "Engagement counter increments that failed after a feed response",
    ["counter"],
)


def record_feed_served(feed: str, personalized: bool, size: int) -> None:
    """Record one served feed response."""
    FEED_REQUESTS.labels(feed=feed, personalized=str(personalized).lower()).inc()
    FEED_SIZE.labels(feed=feed).observe(size)


def setup_telemetry(app: FastAPI) -> None:
    """
    Setup Observability (Metrics & Tracing).

    1. Prometheus Metrics via /metrics
    2. OpenTelemetry Tracing via OTLP
    """
    settings = get_settings()

    if settings.ENABLE_PROMETHEUS:
        instrumentator = Instrumentator(
            should_group_status_codes=False,
            should_ignore_untemplated=True,
            should_respect_env_var=True,
            should_instrument_requests_inprogress=True,
            excluded_handlers=["/metrics", "/health", "/health/ready"],
            env_var_name="ENABLE_METRICS",
            inprogress_name="inprogress",
            inprogress_labels=True,
        )
        instrumentator.instrument(app).expose(app, include_in_schema=False)

    if settings.ENABLE_OTEL:
        resource = Resource.create(attributes={
            "service.name": settings.APP_NAME,
            "service.version": settings.APP_VERSION,
            "deployment.environment": "production" if not settings.DEBUG else "development",
        })

        provider = TracerProvider(resource=resource)

        # Default endpoint is localhost:4317
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))

        trace.set_tracer_provider(provider)
        FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)
