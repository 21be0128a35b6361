"""Application middleware package."""

from .body import JSONBodyMiddleware
from .logging import StructuredLoggingMiddleware
from .security import (
    AUTH_PREFIX,
    Principal,
    SecurityMiddleware,
    extract_session_token,
    is_public_path,
    under_prefix,
)
from .telemetry import TelemetryMiddleware

__all__ = [
    "AUTH_PREFIX",
    "JSONBodyMiddleware",
    "Principal",
    "SecurityMiddleware",
    "StructuredLoggingMiddleware",
    "TelemetryMiddleware",
    "extract_session_token",
    "is_public_path",
    "under_prefix",
]
