import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import settings
from .core.structured_logging import setup_logging
from .middleware.request_response import (
    CORSMiddleware,
    RequestResponseMiddleware,
    SecurityHeadersMiddleware,
)
from .middleware.request_size_limit import RequestSizeLimitMiddleware
from .models.exceptions import EXCEPTION_HANDLERS, TokenForgeError, to_error_response
from .routers import health, moodboard, palette, tokens
from .services.openrouter import is_configured

setup_logging(settings.log_level, settings.log_format)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown logging; the service holds no state between requests."""
    logger.info(
        "TokenForge API starting",
        extra={
            "environment": settings.service_env,
            "moodboard_model": settings.moodboard_model,
            "tokens_model": settings.tokens_model,
        },
    )
    if not is_configured():
        logger.warning("OPENROUTER_API_KEY is not set; moodboard analysis and token generation will fail")
    yield
    logger.info("TokenForge API shutdown completed")


app = FastAPI(
    title=settings.service_name,
    description="TokenForge API - design token generation from brand answers and moodboards",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add request/response middleware first to ensure headers
app.add_middleware(RequestResponseMiddleware)

origins = [o.strip() for o in (settings.cors_allow_origins or "").split(",") if o.strip()]
if not origins:
    # Default: wildcard in dev/test; restrict in production
    is_production = settings.service_env in ["prod", "production"]
    origins = [] if is_production else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.max_request_size)


@app.exception_handler(TokenForgeError)
async def tokenforge_exception_handler(request: Request, exc: TokenForgeError):
    """Map domain errors to their public `{error}` body."""
    for exc_type, handler in EXCEPTION_HANDLERS.items():
        if isinstance(exc, exc_type):
            return handler(exc)
    logger.error(
        f"Unmapped TokenForge error: {exc.message}",
        extra={"request_id": getattr(request.state, "request_id", "unknown"), "details": exc.details},
    )
    return to_error_response(exc, status_code=500)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Keep 404/405 and friends in the same `{error}` shape."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions without leaking details."""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}",
        extra={
            "request_id": getattr(request.state, "request_id", "unknown"),
            "method": request.method,
            "path": request.url.path,
        },
        exc_info=True,
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(moodboard.router, tags=["moodboard"])
app.include_router(tokens.router, tags=["tokens"])
app.include_router(palette.router, tags=["palette"])
app.include_router(health.router, tags=["health"])
