"""
Telemetry configuration (Metrics & Tracing).
Sets up Prometheus instrumentation, pipeline counters and OpenTelemetry.
"""
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

from recommender.config import get_settings

# -----------------------------------------------------------------------------
# Pipeline Metrics
# -----------------------------------------------------------------------------

RECOMMENDATION_REQUESTS = Counter(
    "recommendation_requests_total",
    "Recommendation pipeline runs by outcome",
    ["outcome"],  # served | replayed | locked | quota_exhausted | empty | error
)

SEARCH_ATTEMPTS = Counter(
    "recommendation_search_attempts_total",
    "Search provider calls made by the pipeline",
    ["phase", "result"],  # phase: refill | emergency; result: ok | failed
)

POOL_WRITES = Counter(
    "recommendation_pool_writes_total",
    "Writes to shared video pools",
    ["operation"],  # create | append
)

VIDEOS_SERVED = Counter(
    "recommendation_videos_served_total",
    "Videos delivered to users (excluding replays)",
)


def setup_telemetry(app: FastAPI) -> None:
    """
    Setup Observability (Metrics & Tracing).

    1. Prometheus Metrics via /metrics
    2. OpenTelemetry Tracing via OTLP
    """
    settings = get_settings()

    # -------------------------------------------------------------------------
    # 1. Prometheus Metrics
    # -------------------------------------------------------------------------
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

    # -------------------------------------------------------------------------
    # 2. OpenTelemetry Tracing
    # -------------------------------------------------------------------------
    if settings.ENABLE_OTEL:
        resource = Resource.create(attributes={
            "service.name": settings.APP_NAME,
            "service.version": settings.APP_VERSION,
            "deployment.environment": "production" if not settings.DEBUG else "development",
        })

        provider = TracerProvider(resource=resource)
        # Default OTLP endpoint is localhost:4317
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
        trace.set_tracer_provider(provider)

        FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)
