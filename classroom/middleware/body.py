"""Rejects non-JSON request bodies on mutating verbs."""

from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from classroom.errors import InvalidBodyError, error_response
from classroom.middleware.security import AUTH_PREFIX, under_prefix

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def _has_body(request: Request) -> bool:
    if "transfer-encoding" in request.headers:
        return True
    try:
        return int(request.headers.get("content-length", "0")) > 0
    except ValueError:
        return True


def _is_json(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


class JSONBodyMiddleware(BaseHTTPMiddleware):
    """Bodies are optional, but when present they must be declared as JSON."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if (
            request.method in MUTATING_METHODS
            and not under_prefix(request.url.path, AUTH_PREFIX)
            and _has_body(request)
            and not _is_json(request.headers.get("content-type", ""))
        ):
            return error_response(InvalidBodyError())

        return await call_next(request)
