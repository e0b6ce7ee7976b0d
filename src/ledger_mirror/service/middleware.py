"""Request middleware for the Ledger Mirror service.

Propagates correlation IDs and logs one line per completed request.
"""

from __future__ import annotations

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging import bind_context, clear_context, get_logger

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach correlation and request IDs to the request, logs and response.

    An incoming X-Correlation-ID is reused; otherwise a new UUID is issued.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())
        request_id = str(uuid.uuid4())[:8]

        request.state.correlation_id = correlation_id
        request.state.request_id = request_id

        bind_context(
            correlation_id=correlation_id,
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        )
        start = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            response.headers[REQUEST_ID_HEADER] = request_id
            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return response
        finally:
            clear_context()


def get_correlation_id(request: Request) -> str | None:
    """Correlation ID of the request, if the middleware ran."""
    return getattr(request.state, "correlation_id", None)


__all__ = [
    "CorrelationIdMiddleware",
    "CORRELATION_ID_HEADER",
    "REQUEST_ID_HEADER",
    "get_correlation_id",
]
