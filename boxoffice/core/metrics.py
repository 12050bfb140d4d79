"""Application metrics using the Prometheus client library.

Every metric the service exports is declared here; other modules import
the one they need and increment/observe it where the behavior happens.

Counters only go up (requests served, credentials issued).  Gauges go up
and down (in-flight requests).  Histograms bucket observations so
Prometheus can compute percentiles, e.g. document render time:

  histogram_quantile(0.95, rate(document_render_seconds_bucket[5m]))
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # "user" or "ip"
)

# ---------------------------------------------------------------------------
# Issuance and verification
# ---------------------------------------------------------------------------

CREDENTIALS_ISSUED = Counter(
    "credentials_issued_total",
    "Credentials persisted by batch issuance",
    ["kind"],  # "ticket" or "invitation_card"
)

BATCH_CODE_CONFLICTS = Counter(
    "batch_code_conflicts_total",
    "Batch inserts rejected by the unique constraint and retried",
    ["kind"],
)

VERIFICATIONS = Counter(
    "credential_verifications_total",
    "Scan verifications by outcome",
    ["kind", "outcome"],  # outcome: valid, already_used, not_found, ...
)

ASSET_FETCH_FAILURES = Counter(
    "asset_fetch_failures_total",
    "Organizer/sponsor logo downloads that degraded to no image",
)

DOCUMENT_RENDER_DURATION = Histogram(
    "document_render_seconds",
    "Time to render a credential PDF, by number of pages",
    ["size"],  # "single" or "batch"
    # A 1000-page batch can take tens of seconds in WeasyPrint
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
)
