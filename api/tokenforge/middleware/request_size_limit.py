"""Request size limiting middleware.

Moodboard images travel base64 encoded inside JSON bodies, so the limit is
checked against Content-Length before anything is read.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, max_size: int = 10485760):  # 10MB default
        super().__init__(app)
        self.max_size = max_size
        self.max_size_mb = max_size / (1024 * 1024)

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                size = int(content_length)
            except (ValueError, TypeError):
                logger.warning(
                    f"Invalid Content-Length header: {content_length}",
                    extra={"request_id": getattr(request.state, "request_id", "unknown")},
                )
                return JSONResponse(status_code=400, content={"error": "Invalid Content-Length header"})

            if size > self.max_size:
                logger.warning(
                    f"Request size {size} bytes exceeds limit {self.max_size} bytes",
                    extra={
                        "request_id": getattr(request.state, "request_id", "unknown"),
                        "content_length": size,
                        "max_size": self.max_size,
                    },
                )
                return JSONResponse(
                    status_code=413,
                    content={"error": f"Request body too large. Maximum size is {self.max_size_mb:.1f}MB"},
                )

        return await call_next(request)
