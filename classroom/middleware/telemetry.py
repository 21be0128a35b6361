"""Request metrics labelled by route template and caller role."""

from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from classroom.telemetry import ANONYMOUS, observe_request


def _route_label(request: Request) -> str:
    # Templates like /api/classes/{class_id} keep label cardinality bounded.
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _role_label(request: Request) -> str:
    principal = getattr(request.state, "principal", None)
    return principal.role.value if principal is not None else ANONYMOUS


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Observe every request once, after the security middleware has run."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            observe_request(
                request.method,
                _route_label(request),
                status_code,
                time.perf_counter() - start_time,
                role=_role_label(request),
            )
