"""Request ID and request timing middleware.

Provides:
- RequestIDMiddleware: Tags every request with an ID for log traceability.
- RequestTimingMiddleware: Logs request duration, warns on slow requests.

HubSpot calls dominate request latency here, so slow-request warnings are
usually the first sign of a degraded CRM.
"""

import logging
import time
import uuid
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_THRESHOLD_MS = 5000.0
MAX_REQUEST_ID_LENGTH = 128


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assign a request ID to every request.

    - Reuses a caller-supplied ``X-Request-ID`` when it looks sane.
    - Stores the ID in ``request.state.request_id``.
    - Returns the ID in the ``X-Request-ID`` response header.
    """

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isprintable():
            request_id = incoming
        else:
            request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        response: Response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Measure request duration.

    - Adds ``X-Response-Time`` header (in milliseconds).
    - Logs a WARNING for any request exceeding the slow threshold.
    """

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        start = time.perf_counter()

        response: Response = await call_next(request)

        duration_ms = (time.perf_counter() - start) * 1000.0
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        if duration_ms >= SLOW_REQUEST_THRESHOLD_MS:
            logger.warning(
                "Slow request: %s %s completed in %.2f ms [request_id=%s, status=%d]",
                request.method,
                request.url.path,
                duration_ms,
                getattr(request.state, "request_id", "unknown"),
                response.status_code,
            )
        return response
