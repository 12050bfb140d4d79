"""Tests for Prometheus metrics middleware.

prometheus-client keeps one global registry and counters never reset, so
every test reads a sample before and after the action and asserts on the
delta.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY


def _get_sample(name: str, labels: dict | None = None) -> float:
    """Read a metric sample's current value from the global registry."""
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    """Each HTTP request should increment the request counter."""
    before = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/health", "status_code": "200"},
    )
    client.get("/health")
    after = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/health", "status_code": "200"},
    )
    assert after - before >= 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    """Each request should add an observation to the duration histogram."""
    before = _get_sample(
        "http_request_duration_seconds_count",
        {"method": "GET", "endpoint": "/health"},
    )
    client.get("/health")
    after = _get_sample(
        "http_request_duration_seconds_count",
        {"method": "GET", "endpoint": "/health"},
    )
    assert after - before >= 1


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    """GET /metrics should return Prometheus text exposition format."""
    # Make a request first so there's data to report
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    # Prometheus text format contains HELP and TYPE lines
    assert "http_requests_total" in resp.text
    assert "http_request_duration_seconds" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    """Requests to /metrics itself should not be counted in metrics."""
    before = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/metrics", "status_code": "200"},
    )
    client.get("/metrics")
    client.get("/metrics")
    after = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/metrics", "status_code": "200"},
    )
    # Should not have incremented (we skip /metrics in the middleware)
    assert after == before


def test_endpoint_label_is_the_route_template(client: TestClient) -> None:
    """Scanned codes in the URL must not become label values."""
    template = "/api/tickets/verify/{raw_code:path}"
    before = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": template, "status_code": "404"},
    )
    client.get("/api/tickets/verify/aaaaaaaa-0000-4000-8000-000000000001")
    client.get("/api/tickets/verify/aaaaaaaa-0000-4000-8000-000000000002")
    after = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": template, "status_code": "404"},
    )
    assert after - before == 2
    assert (
        _get_sample(
            "http_requests_total",
            {
                "method": "GET",
                "endpoint": "/api/tickets/verify/aaaaaaaa-0000-4000-8000-000000000001",
                "status_code": "404",
            },
        )
        == 0.0
    )


def test_unmatched_paths_share_one_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "unmatched", "status_code": "404"}
    before = _get_sample("http_requests_total", labels)
    client.get("/no/such/page")
    assert _get_sample("http_requests_total", labels) - before == 1


def test_domain_metrics_are_exported(client: TestClient) -> None:
    client.get("/api/tickets/verify/not-a-ticket")
    text = client.get("/metrics").text
    assert "credential_verifications_total" in text
    assert "credentials_issued_total" in text
    assert "document_render_seconds" in text
