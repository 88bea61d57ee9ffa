"""Observability setup: logging, tracing, metrics, and error tracking."""

import logging
import re
import time
import uuid

import sentry_sdk
import structlog
from fastapi import FastAPI, Request, Response
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Counter, Histogram, generate_latest
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from quicklink.core.config import get_settings

settings = get_settings()

# Prometheus metrics - HTTP requests
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Prometheus metrics - Domain
REDIRECT_COUNT = Counter(
    "redirects_total",
    "Total URL redirects by outcome",
    ["status_code"],
)

LINK_OPERATIONS = Counter(
    "link_operations_total",
    "Total link operations",
    ["operation"],  # create, bulk_create, update, delete, toggle, cleanup
)

CLICKS_RECORDED = Counter(
    "clicks_recorded_total",
    "Click events written to the click log",
)

CLICKS_FAILED = Counter(
    "clicks_failed_total",
    "Click events that could not be persisted",
    ["stage"],  # event, counter, commit
)

RECONCILE_RUNS = Counter(
    "click_reconcile_runs_total",
    "Click count reconciliation runs",
)

RECONCILE_DURATION = Histogram(
    "click_reconcile_duration_seconds",
    "Time to reconcile cached click counts",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)

LINKS_RECONCILED = Counter(
    "links_reconciled_total",
    "Links whose cached click count was corrected",
)

# Path rewrites to keep metric label cardinality bounded
_ENDPOINT_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"^/api/url/(info|update|delete|qr|preview)/[^/]+$"), r"/api/url/\1/{short_code}"),
    (re.compile(r"^/api/analytics/link/[^/]+/detailed$"), "/api/analytics/link/{short_code}/detailed"),
    (re.compile(r"^/api/analytics/link/[^/]+$"), "/api/analytics/link/{short_code}"),
    (
        re.compile(r"^/api/analytics/(geographic|devices|browsers|referrers)/[^/]+$"),
        r"/api/analytics/\1/{short_code}",
    ),
    (re.compile(r"^/api/admin/links/[^/]+/toggle$"), "/api/admin/links/{id}/toggle"),
    (re.compile(r"^/api/admin/links/[^/]+$"), "/api/admin/links/{id}"),
]

_UNTEMPLATED_PATHS = {"/", "/health", "/metrics", "/docs", "/redoc", "/openapi.json"}


def normalize_endpoint(path: str) -> str:
    """Collapse path parameters so each route is one metric label."""
    for pattern, replacement in _ENDPOINT_PATTERNS:
        if pattern.match(path):
            return pattern.sub(replacement, path)
    if path.startswith("/api/") or path in _UNTEMPLATED_PATHS:
        return path
    # Redirect endpoint
    return "/{short_code}"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add a unique request ID to each request.

    The request ID is:
    - Generated if not provided in X-Request-ID header
    - Added to response headers
    - Bound to structlog context for all log messages
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests with timing information."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        logger = structlog.get_logger()
        start_time = time.perf_counter()

        logger.info(
            "Request started",
            client_ip=request.client.host if request.client else None,
            user_agent=request.headers.get("User-Agent"),
        )

        response = await call_next(request)
        duration = time.perf_counter() - start_time

        logger.info(
            "Request completed",
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )

        endpoint = normalize_endpoint(request.url.path)
        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()
        REQUEST_LATENCY.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response


def configure_structlog() -> None:
    """Configure structlog for JSON logging with context variables."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=logging.INFO if not settings.debug else logging.DEBUG,
    )


def setup_opentelemetry(app: FastAPI) -> None:
    """Set up OpenTelemetry tracing."""
    if not settings.otlp_endpoint:
        structlog.get_logger().info("OpenTelemetry disabled (no OTLP endpoint configured)")
        return

    resource = Resource(attributes={SERVICE_NAME: "quicklink-api"})
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint, insecure=True))
    )
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)

    structlog.get_logger().info(
        "OpenTelemetry configured",
        otlp_endpoint=settings.otlp_endpoint,
    )


def setup_sentry() -> None:
    """Set up Sentry for error tracking."""
    if not settings.sentry_dsn:
        structlog.get_logger().info("Sentry disabled (no DSN configured)")
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        # Click logs carry IPs and user agents; keep them out of Sentry
        send_default_pii=False,
    )

    structlog.get_logger().info("Sentry configured", environment=settings.environment)


def setup_observability(app: FastAPI) -> None:
    """Set up logging, Sentry, tracing and the /metrics endpoint."""
    configure_structlog()
    setup_sentry()
    setup_opentelemetry(app)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(),
            media_type="text/plain; charset=utf-8",
        )

    structlog.get_logger().info("Observability setup complete")


# Helper functions to record custom metrics
def record_redirect(status_code: int) -> None:
    """Record a redirect outcome."""
    REDIRECT_COUNT.labels(status_code=status_code).inc()


def record_link_operation(operation: str, count: int = 1) -> None:
    """Record a link operation."""
    LINK_OPERATIONS.labels(operation=operation).inc(count)


def record_click_recorded() -> None:
    """Record a click event written to the log."""
    CLICKS_RECORDED.inc()


def record_click_failed(stage: str) -> None:
    """Record a click that could not be persisted at the given stage."""
    CLICKS_FAILED.labels(stage=stage).inc()


def record_reconciliation(duration: float, links_updated: int) -> None:
    """Record a reconciliation run."""
    RECONCILE_RUNS.inc()
    RECONCILE_DURATION.observe(duration)
    LINKS_RECONCILED.inc(links_updated)
