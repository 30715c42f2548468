"""Prometheus metrics for the Notes API.

All metric objects are defined here so they can be imported from any module.
"""

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# Note store metrics
# ---------------------------------------------------------------------------

NOTE_OPERATIONS = Counter(
    "notes_operations_total",
    "Total number of note mutations",
    ["operation"],  # create, update, delete
)

NOTES_STORED = Gauge(
    "notes_stored",
    "Number of notes currently held in memory",
)

PERSISTENCE_FAILURES = Counter(
    "notes_persistence_failures_total",
    "Number of failed writes of the notes file",
)

# ---------------------------------------------------------------------------
# HTTP request metrics
# ---------------------------------------------------------------------------

HTTP_REQUESTS = Counter(
    "notes_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_DURATION = Histogram(
    "notes_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["endpoint"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
)
