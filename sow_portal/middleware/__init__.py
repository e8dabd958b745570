"""Request tracing middleware."""

from sow_portal.middleware.performance import RequestIDMiddleware, RequestTimingMiddleware

__all__ = ["RequestIDMiddleware", "RequestTimingMiddleware"]
