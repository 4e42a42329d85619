"""
HTTP middleware for the calculator API.

RequestTimingMiddleware tags each response with a request id and the time
spent in the app, and writes one `request completed` log line per call.
"""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("makercalc-api.middleware")

REQUEST_ID_HEADER = "X-Request-ID"
PROCESS_TIME_HEADER = "X-Process-Time"

# Paths that get no request log line
UNLOGGED_PATHS = frozenset({"/health"})


def resolve_request_id(request: Request) -> str:
    """The caller's X-Request-ID, or a fresh one."""
    return request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex


class RequestTimingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = resolve_request_id(request)
        request.state.request_id = request_id
        started = time.perf_counter()

        response: Response = await call_next(request)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[PROCESS_TIME_HEADER] = f"{elapsed_ms}"

        if request.url.path in UNLOGGED_PATHS:
            return response
        logger.info(
            "request completed",
            extra={
                "request_id": request_id,
                "http_method": request.method,
                "http_path": request.url.path,
                "http_status": response.status_code,
                "duration_ms": elapsed_ms,
            },
        )
        return response
