"""FastAPI HTTP server for health and metrics endpoints."""

import asyncio
from typing import Any, Optional

import structlog
import uvicorn
from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from mail_to_telegram import __version__
from mail_to_telegram.config import Settings
from mail_to_telegram.http.health import router as health_router


logger = structlog.get_logger()


def create_app(gateway: Optional[Any] = None) -> FastAPI:
    """Create FastAPI application.

    Args:
        gateway: Gateway whose readiness the health endpoint reports

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title="Mail to Telegram",
        description="Mail to Telegram gateway - Health and Metrics API",
        version=__version__,
    )
    app.state.gateway = gateway

    app.include_router(health_router, prefix="/health", tags=["health"])

    @app.get("/metrics", tags=["metrics"])
    async def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


async def create_http_server(
    settings: Settings, gateway: Optional[Any] = None
) -> tuple[uvicorn.Server, asyncio.Task]:
    """Create and start the HTTP server in the running event loop.

    Returns:
        Tuple of (uvicorn Server, task running it)
    """
    logger.info(
        "Creating HTTP server",
        host=settings.http_host,
        port=settings.http_port,
    )

    config = uvicorn.Config(
        create_app(gateway),
        host=settings.http_host,
        port=settings.http_port,
        log_level="warning",  # Reduce noise, we have our own logging
        access_log=False,
    )
    server = uvicorn.Server(config)
    task = asyncio.create_task(server.serve())

    logger.info(
        "HTTP server started",
        host=settings.http_host,
        port=settings.http_port,
    )
    return server, task
