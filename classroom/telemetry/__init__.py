"""Telemetry helpers and metrics."""

from .metrics import (
    ANONYMOUS,
    CASCADE_DELETE_COUNTER,
    DOMAIN_ERROR_COUNTER,
    ENROLLMENT_COUNTER,
    ERROR_COUNTER,
    LOGIN_COUNTER,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    increment_login,
    observe_request,
    record_deleted_rows,
    record_domain_error,
    record_enrollment,
)

__all__ = [
    "ANONYMOUS",
    "CASCADE_DELETE_COUNTER",
    "DOMAIN_ERROR_COUNTER",
    "ENROLLMENT_COUNTER",
    "ERROR_COUNTER",
    "LOGIN_COUNTER",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "increment_login",
    "observe_request",
    "record_deleted_rows",
    "record_domain_error",
    "record_enrollment",
]
