from __future__ import annotations

import logging
from time import perf_counter
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.ops.events import (
    CORRELATION_ID_HEADER,
    new_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

SLOW_REQUEST_MS = 1000


def _request_payload(request: Request, duration_ms: int) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "method": request.method,
        "path": request.url.path,
        "duration_ms": duration_ms,
    }
    # Populated by the router once the request has been matched.
    route = request.scope.get("route")
    if route is not None and hasattr(route, "path"):
        payload["route"] = route.path
    trip_id = request.scope.get("path_params", {}).get("trip_id")
    if trip_id is not None:
        payload["trip_id"] = trip_id
    if request.url.path.startswith("/admin"):
        payload["admin"] = True
    return payload


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id and log its outcome to the ops buffer."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or new_correlation_id()
        token = set_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id
        started = perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "%s %s raised",
                request.method,
                request.url.path,
                extra={
                    "event_type": "api.request.failed",
                    "correlation_id": correlation_id,
                    "ops_payload": _request_payload(request, int((perf_counter() - started) * 1000)),
                },
            )
            raise
        finally:
            reset_correlation_id(token)

        duration_ms = int((perf_counter() - started) * 1000)
        payload = _request_payload(request, duration_ms)
        payload["status_code"] = response.status_code
        response.headers["X-Request-Id"] = correlation_id

        level = logging.WARNING if duration_ms >= SLOW_REQUEST_MS or response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "%s %s -> %d (%dms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "event_type": "api.request.completed",
                "correlation_id": correlation_id,
                "ops_payload": payload,
            },
        )
        return response
