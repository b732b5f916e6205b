"""Starlette ASGI application for the Voltmap trust and verification API.

Provides the REST endpoints, health checks and request ids.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from voltmap.core.db import check_connection, close_pool
from voltmap.core.logging import request_scope

from .admin_endpoints import list_reports_endpoint, review_report_endpoint
from .config import get_settings
from .station_endpoints import (
    create_report_endpoint,
    report_count_endpoint,
    station_status_endpoint,
    trust_score_endpoint,
    user_trust_level_endpoint,
    verification_history_endpoint,
    verification_summary_endpoint,
    verify_station_endpoint,
)

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with a request id.

    Reuses the caller's X-Request-ID when present and echoes the id back,
    so log lines and error bodies for one request share it.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER)
        with request_scope(incoming[:64] if incoming else None) as rid:
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response


async def health_endpoint(request: Request) -> JSONResponse:
    """Health check endpoint."""
    settings = get_settings()

    health_data: dict[str, Any] = {
        "status": "healthy",
        "server": settings.server_name,
        "version": settings.server_version,
    }

    if check_connection():
        health_data["database"] = "connected"
    else:
        health_data["database"] = "unavailable"
        health_data["status"] = "degraded"

    status_code = 200 if health_data["status"] == "healthy" else 503
    return JSONResponse(health_data, status_code=status_code)


@asynccontextmanager
async def lifespan(app: Starlette):
    """Application lifespan handler."""
    settings = get_settings()
    logger.info("Starting Voltmap API on %s:%s", settings.host, settings.port)
    if not settings.trust_score_enabled:
        logger.info("Trust score endpoint disabled (TRUST_SCORE_ENABLED is off)")

    yield

    close_pool()
    logger.info("Voltmap API shutting down")


def create_app() -> Starlette:
    """Create the Starlette ASGI application."""
    settings = get_settings()

    # API version prefix for all REST endpoints
    API_V1 = "/api/v1"

    routes = [
        Route(f"{API_V1}/health", health_endpoint, methods=["GET"]),
        # Station read path
        Route(
            f"{API_V1}/stations/{{id}}/verification-summary",
            verification_summary_endpoint,
            methods=["GET"],
        ),
        Route(
            f"{API_V1}/stations/{{id}}/verification-history",
            verification_history_endpoint,
            methods=["GET"],
        ),
        Route(f"{API_V1}/stations/{{id}}/status", station_status_endpoint, methods=["GET"]),
        Route(f"{API_V1}/stations/{{id}}/trust-score", trust_score_endpoint, methods=["GET"]),
        Route(f"{API_V1}/stations/{{id}}/reports/count", report_count_endpoint, methods=["GET"]),
        # Station write path
        Route(f"{API_V1}/stations/{{id}}/verify", verify_station_endpoint, methods=["POST"]),
        Route(f"{API_V1}/stations/{{id}}/reports", create_report_endpoint, methods=["POST"]),
        # Actors
        Route(f"{API_V1}/users/{{id}}/trust-level", user_trust_level_endpoint, methods=["GET"]),
        # Moderation
        Route(f"{API_V1}/admin/reports", list_reports_endpoint, methods=["GET"]),
        Route(f"{API_V1}/admin/reports/{{id}}/review", review_report_endpoint, methods=["PATCH"]),
    ]

    middleware = [
        Middleware(RequestIdMiddleware),
        Middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
            expose_headers=[REQUEST_ID_HEADER],
        ),
    ]

    return Starlette(
        routes=routes,
        middleware=middleware,
        lifespan=lifespan,
    )


# Global app instance for uvicorn
app = create_app()


def run() -> None:
    """Run the server using uvicorn."""
    import uvicorn

    settings = get_settings()

    logger.info("Starting Voltmap API on %s:%s", settings.host, settings.port)

    uvicorn.run(
        "voltmap.server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
