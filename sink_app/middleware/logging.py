"""
Request logging middleware.

Logs one line per request: method, path, status code, processing time
and client IP. The processing time is also returned as X-Process-Time.
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("sink_app.requests")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request after the response is produced."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        logger.info(
            "%s %s %s %.2fms IP:%s",
            request.method,
            request.url.path,
            response.status_code,
            process_time * 1000,
            request.client.host if request.client else "unknown",
        )

        response.headers["X-Process-Time"] = f"{process_time:.6f}"
        return response


def add_logging_middleware(app):
    """Add logging middleware to FastAPI app."""
    app.add_middleware(LoggingMiddleware)
