"""Prometheus metrics for the classroom API.

Request metrics are labelled with the caller's role (``anonymous`` before a
session is resolved) so student, teacher and admin traffic can be told apart.
"""

from __future__ import annotations

from typing import Mapping

from prometheus_client import Counter, Histogram

ANONYMOUS = "anonymous"

REQUEST_COUNT = Counter(
    "classroom_http_requests_total",
    "HTTP requests by route, status and caller role",
    ("method", "route", "status", "role"),
)

REQUEST_LATENCY = Histogram(
    "classroom_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

ERROR_COUNTER = Counter(
    "classroom_internal_errors_total",
    "Requests that ended in a 5xx response",
    ("method", "route"),
)

DOMAIN_ERROR_COUNTER = Counter(
    "classroom_domain_errors_total",
    "Domain failures returned to clients, by kind and code",
    ("kind", "code"),
)

LOGIN_COUNTER = Counter(
    "classroom_logins_total",
    "Successful sign-ups and sign-ins (one new session each)",
)

ENROLLMENT_COUNTER = Counter(
    "classroom_enrollments_total",
    "Enrollment attempts by outcome",
    ("outcome",),
)

CASCADE_DELETE_COUNTER = Counter(
    "classroom_deleted_rows_total",
    "Rows removed by deletes, including cascaded dependents, by table",
    ("table",),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
    role: str = ANONYMOUS,
) -> None:
    """Record metrics for a completed HTTP request."""

    route = route or "unknown"
    REQUEST_COUNT.labels(
        method=method,
        route=route,
        status=str(status_code),
        role=role,
    ).inc()
    REQUEST_LATENCY.labels(method=method, route=route).observe(max(duration_seconds, 0))

    if status_code >= 500:
        ERROR_COUNTER.labels(method=method, route=route).inc()


def record_domain_error(kind: str, code: str) -> None:
    DOMAIN_ERROR_COUNTER.labels(kind=kind, code=code).inc()


def increment_login() -> None:
    LOGIN_COUNTER.inc()


def record_enrollment(outcome: str) -> None:
    ENROLLMENT_COUNTER.labels(outcome=outcome).inc()


def record_deleted_rows(summary: Mapping[str, int]) -> None:
    """Count rows removed by one delete plan, keyed by table name."""

    for table, count in summary.items():
        CASCADE_DELETE_COUNTER.labels(table=table).inc(count)
