"""FastAPI application for the Vigor live dashboard events service.

Endpoints:
  GET    /v1/events                 — SSE stream of tenant dashboard events
  GET    /v1/events/subscribe       — (Legacy) SSE stream, all locations
  GET    /v1/events/health          — Broadcaster status
  POST   /v1/events/test            — Broadcast a synthetic event (non-production)
  GET    /health                    — Health check
  GET    /metrics                   — Prometheus metrics
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

import vigor
from vigor.api.ratelimit import limiter
from vigor.api.routes.events import router as events_router
from vigor.config import Settings, settings
from vigor.events.broadcaster import EventBroadcaster
from vigor.exceptions import VigorError
from vigor.logging_config import log_startup_info, setup_logging

logger = logging.getLogger("vigor")
_audit_logger = logging.getLogger("vigor.audit")

_OPENAPI_TAGS = [
    {"name": "Health", "description": "Health checks and version info"},
    {"name": "Events", "description": "Real-time dashboard event streaming"},
    {"name": "Metrics", "description": "Prometheus metrics endpoint"},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.started_at = time.monotonic()
    setup_logging()
    broadcaster: EventBroadcaster = app.state.broadcaster
    broadcaster.start()
    log_startup_info()
    yield
    # Graceful shutdown: stop heartbeat, close every SSE connection
    logger.info("Shutting down, closing %d SSE connections", broadcaster.connection_count())
    await broadcaster.shutdown()
    logger.info("Shutdown complete")


def create_app(
    config: Settings | None = None, broadcaster: EventBroadcaster | None = None
) -> FastAPI:
    """Build the application with its own broadcaster instance."""
    config = config or settings

    app = FastAPI(
        title="Vigor Live Dashboard Events",
        description="Tenant-scoped Server-Sent Events for the gym operations dashboard.",
        version=vigor.__version__,
        lifespan=lifespan,
        openapi_tags=_OPENAPI_TAGS,
    )
    app.state.settings = config
    app.state.broadcaster = broadcaster or EventBroadcaster(
        heartbeat_interval=config.heartbeat_interval
    )
    app.state.started_at = 0.0
    app.state.limiter = limiter

    _install_error_handlers(app)
    _install_middleware(app, config)

    app.include_router(events_router)

    @app.get("/health", tags=["Health"], summary="Health check")
    async def health(request: Request):
        started_at = request.app.state.started_at
        uptime_s = time.monotonic() - started_at if started_at > 0 else 0
        return {
            "status": "ok",
            "version": vigor.__version__,
            "uptime_seconds": round(uptime_s, 1),
            "subscribers": request.app.state.broadcaster.connection_count(),
        }

    Instrumentator(
        excluded_handlers=["/metrics", "/v1/events", "/v1/events/subscribe"],
        should_respect_env_var=False,
        registry=CollectorRegistry(),
    ).instrument(app).expose(app, endpoint="/metrics", tags=["Metrics"])

    return app


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(VigorError)
    async def vigor_error_handler(request: Request, exc: VigorError) -> JSONResponse:
        """Centralized handler for custom Vigor exceptions."""
        body = exc.to_body()
        body["request_id"] = getattr(request.state, "request_id", "unknown")
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        """Return 429 with Retry-After header on rate limit."""
        request_id = getattr(request.state, "request_id", "unknown")
        _audit_logger.warning(
            "Rate limit exceeded: %s %s from %s",
            request.method,
            request.url.path,
            get_remote_address(request),
            extra={"event_category": "audit", "action": "rate_limit_exceeded"},
        )
        response = JSONResponse(
            status_code=429,
            content={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": str(exc.detail),
                "request_id": request_id,
            },
        )
        response.headers["Retry-After"] = "60"
        return response


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


def _install_middleware(app: FastAPI, config: Settings) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"
        return response

    # Registered last so it runs first and request_id is set for the error handler.
    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next) -> Response:
        request_id = str(uuid4())[:8]
        request.state.request_id = request_id
        start = time.monotonic()
        response: Response = await call_next(request)
        elapsed_ms = round((time.monotonic() - start) * 1000, 1)
        logger.info(
            "%s %s %s %.1fms [%s]",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
        )
        response.headers["X-Request-ID"] = request_id
        return response


app = create_app()
