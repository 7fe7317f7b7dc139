"""
Request logging middleware. Logs method, path, status, duration and, for the
market analysis route, which cache/fallback state produced the body.
Never logs query strings or headers.
"""
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

_SOURCE_HEADER = "x-analysis-source"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        method = request.method
        path = request.scope.get("path", "")
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        status = response.status_code
        source = response.headers.get(_SOURCE_HEADER, "-")

        level = logging.INFO
        if status >= 500:
            level = logging.ERROR
        elif status >= 400 or source in ("config_error", "runtime_error"):
            level = logging.WARNING

        logger.log(
            level,
            "request_finished method=%s path=%s status=%s duration_ms=%.1f source=%s",
            method, path, status, duration_ms, source,
            extra={"analysis_source": None if source == "-" else source},
        )
        return response
