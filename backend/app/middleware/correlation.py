# backend/app/middleware/correlation.py
"""
Correlation ID middleware for request tracing.

Takes the id from X-Correlation-ID, falling back to X-Request-ID, and
generates a UUID when neither is sent. The id is stored in the request
context (so every log line carries it) and echoed back in the
X-Correlation-ID response header.

    curl -H "X-Correlation-ID: trace-123" http://localhost:8000/portfolio/valuation
    # < X-Correlation-ID: trace-123
"""

import logging
import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.utils.context import set_correlation_id, clear_request_context

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Longer incoming ids are replaced rather than logged verbatim
MAX_CORRELATION_ID_LENGTH = 128


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attaches a correlation id to each request and its response."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = self._resolve_correlation_id(request)
        set_correlation_id(correlation_id)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            clear_request_context()

    @staticmethod
    def _resolve_correlation_id(request: Request) -> str:
        for header in (CORRELATION_ID_HEADER, REQUEST_ID_HEADER):
            value = (request.headers.get(header) or "").strip()
            if value and len(value) <= MAX_CORRELATION_ID_LENGTH:
                return value
        return str(uuid.uuid4())
