"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
generations_total = Counter(
    "generations_total",
    "Single-image generation attempts by outcome",
    ["status"],  # completed, blocked, failed
)

credit_operations_total = Counter(
    "credit_operations_total",
    "Total entitlement ledger operations",
    ["operation"],  # RESERVE, REFUND, GRANT, SUBSCRIBE, RESET
)

credit_rejected_total = Counter(
    "credit_rejected_total",
    "Total generation attempts rejected for insufficient credits",
)

batch_jobs_total = Counter(
    "batch_jobs_total",
    "Batch jobs by lifecycle event",
    ["status"],  # created, completed, failed
)

batch_variants_total = Counter(
    "batch_variants_total",
    "Batch variant attempts by outcome",
    ["status"],  # succeeded, skipped
)

gemini_requests_total = Counter(
    "gemini_requests_total",
    "Total Gemini API requests",
    ["kind", "status"],
)

telegram_requests_total = Counter(
    "telegram_requests_total",
    "Total Telegram API requests",
    ["method", "status"],
)

# Histograms
gemini_request_duration_seconds = Histogram(
    "gemini_request_duration_seconds",
    "Gemini API request duration",
    ["kind"],
    buckets=[0.5, 1, 5, 10, 30, 60, 120],
)

batch_job_duration_seconds = Histogram(
    "batch_job_duration_seconds",
    "Batch job processing duration",
    buckets=[10, 30, 60, 120, 300, 600],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
