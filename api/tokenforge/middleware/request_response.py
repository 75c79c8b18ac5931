"""Request/Response middleware for consistent API behavior.

Assigns a request id, times each request, logs both ends and adds the
standard headers. Response bodies are passed through untouched so the
`{error}` shape of failures is exactly what the handlers produced.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional
from uuid import uuid4

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..core.structured_logging import request_id_var

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


class RequestResponseMiddleware(BaseHTTPMiddleware):
    """Middleware for consistent request/response handling."""

    def __init__(
        self,
        app: ASGIApp,
        add_request_id: bool = True,
        log_requests: bool = True,
        log_responses: bool = True,
        include_processing_time: bool = True,
    ):
        super().__init__(app)
        self.add_request_id = add_request_id
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.include_processing_time = include_processing_time

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        start_time = time.time()
        if self.log_requests:
            self._log_request(request, request_id)

        try:
            response = await call_next(request)
        except Exception as e:
            processing_time_ms = int((time.time() - start_time) * 1000)
            logger.error(
                "Unhandled exception in request processing",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                },
                exc_info=True,
            )
            response = JSONResponse(status_code=500, content={"error": "Internal server error"})
            return self._add_headers(response, request_id, processing_time_ms)
        finally:
            request_id_var.reset(token)

        processing_time_ms = int((time.time() - start_time) * 1000)
        response = self._add_headers(response, request_id, processing_time_ms)
        if self.log_responses:
            self._log_response(request, response, request_id, processing_time_ms)
        return response

    def _add_headers(self, response: Response, request_id: str, processing_time_ms: int) -> Response:
        if self.add_request_id:
            response.headers["X-Request-ID"] = request_id
        if self.include_processing_time:
            response.headers["X-Processing-Time"] = f"{processing_time_ms}ms"
        response.headers["X-API-Version"] = API_VERSION
        return response

    def _log_request(self, request: Request, request_id: str):
        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "user_agent": request.headers.get("user-agent", ""),
            "remote_addr": self._get_client_ip(request),
            "content_type": request.headers.get("content-type", ""),
            "content_length": request.headers.get("content-length", 0),
        }
        logger.info(f"Incoming request: {request.method} {request.url.path}", extra=log_data)

    def _log_response(self, request: Request, response: Response, request_id: str, processing_time_ms: int):
        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "processing_time_ms": processing_time_ms,
        }

        # Determine log level based on status code
        if response.status_code >= 500:
            log_level = logging.ERROR
            log_message = f"Server error response: {response.status_code}"
        elif response.status_code >= 400:
            log_level = logging.WARNING
            log_message = f"Client error response: {response.status_code}"
        else:
            log_level = logging.INFO
            log_message = f"Successful response: {response.status_code}"

        logger.log(
            log_level,
            f"{log_message} for {request.method} {request.url.path} ({processing_time_ms}ms)",
            extra=log_data,
        )

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            # Take the first IP in case of multiple proxies
            return forwarded_for.split(",")[0].strip()
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip
        if request.client:
            return request.client.host
        return "unknown"


class CORSMiddleware(BaseHTTPMiddleware):
    """CORS for the browser wizard; preflights are answered directly."""

    def __init__(
        self,
        app: ASGIApp,
        allow_origins: Optional[List[str]] = None,
        allow_methods: Optional[List[str]] = None,
        allow_headers: Optional[List[str]] = None,
        allow_credentials: bool = False,
        max_age: int = 86400,
    ):
        super().__init__(app)
        self.allow_origins = ["*"] if allow_origins is None else allow_origins
        self.allow_methods = allow_methods or ["GET", "POST", "OPTIONS"]
        self.allow_headers = allow_headers or ["Content-Type", "X-Request-ID"]
        self.allow_credentials = allow_credentials
        self.max_age = max_age

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS" and "access-control-request-method" in request.headers:
            return self._create_cors_preflight_response(request)
        response = await call_next(request)
        return self._add_cors_headers(request, response)

    def _create_cors_preflight_response(self, request: Request) -> Response:
        response = Response(status_code=200)
        origin = request.headers.get("origin")
        if self._is_origin_allowed(origin):
            response.headers["Access-Control-Allow-Origin"] = origin or "*"
        response.headers["Access-Control-Allow-Methods"] = ", ".join(self.allow_methods)
        response.headers["Access-Control-Allow-Headers"] = ", ".join(self.allow_headers)
        response.headers["Access-Control-Max-Age"] = str(self.max_age)
        if self.allow_credentials:
            response.headers["Access-Control-Allow-Credentials"] = "true"
        return response

    def _add_cors_headers(self, request: Request, response: Response) -> Response:
        origin = request.headers.get("origin")
        if origin and self._is_origin_allowed(origin):
            response.headers["Access-Control-Allow-Origin"] = origin
            if self.allow_credentials:
                response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Expose-Headers"] = "X-Request-ID, X-Processing-Time, X-API-Version"
        return response

    def _is_origin_allowed(self, origin: Optional[str]) -> bool:
        if not origin:
            return True
        if "*" in self.allow_origins:
            return True
        return origin in self.allow_origins


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # JSON only; the interactive docs pages set their own policy needs
        if not request.url.path.startswith(("/docs", "/redoc")):
            response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        # Strict Transport Security (HTTPS only)
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response
