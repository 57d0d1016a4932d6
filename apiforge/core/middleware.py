"""Request Middleware for Logging and Tracing

Binds a correlation ID to the structlog context for the lifetime of a
request, echoes it back in ``X-Correlation-ID``, and logs one completion
event per request with its status and duration. Requests slower than
``slow_threshold_ms`` are logged as ``slow_request``.
"""
from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from apiforge.core.logging import api_logger, bind_context, clear_context, generate_correlation_id

CORRELATION_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

log = api_logger()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs requests/responses and manages the correlation context."""
    
    def __init__(self, app: ASGIApp, *, slow_threshold_ms: float = 1000.0,
                 quiet_paths: frozenset[str] = frozenset({"/openapi.json"})):
        super().__init__(app)
        self.slow_threshold_ms, self.quiet_paths = slow_threshold_ms, quiet_paths
    
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or generate_correlation_id()
        clear_context()
        bind_context(
            correlation_id=correlation_id,
            request_id=request.headers.get(REQUEST_ID_HEADER),
            method=request.method,
            path=request.url.path,
        )
        
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            log.exception("request_failed", error_type=type(exc).__name__,
                duration_ms=round((time.perf_counter() - start) * 1000, 2))
            raise
        else:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            response.headers[CORRELATION_HEADER] = correlation_id
            
            status = response.status_code
            if request.url.path not in self.quiet_paths or status >= 400:
                log_method = log.info if status < 400 else (log.warning if status < 500 else log.error)
                log_method("request_completed", status=status, duration_ms=duration_ms)
            if duration_ms > self.slow_threshold_ms:
                log.warning("slow_request", duration_ms=duration_ms, threshold_ms=self.slow_threshold_ms)
            return response
        finally:
            clear_context()
