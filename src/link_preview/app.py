"""
Starlette ASGI application with the link preview MCP server mounted.

Serves Streamable HTTP at /mcp plus Kubernetes-style probes.
"""

import contextlib
from collections.abc import AsyncIterator
from typing import Any

import structlog
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from link_preview import __version__
from link_preview.config import settings
from link_preview.server import mcp
from link_preview.utils.health import HealthChecker

logger = structlog.get_logger(__name__)

TOOLS = ["preview_link", "classify_link", "capture_screenshot"]


@contextlib.asynccontextmanager
async def lifespan(_app: Starlette) -> AsyncIterator[None]:
    """Run the MCP session manager for the lifetime of the HTTP server."""
    logger.info(
        "starting_http_server",
        host=settings.host,
        port=settings.port,
        debug=settings.debug,
        rendering_configured=settings.is_rendering_configured(),
    )

    async with mcp.session_manager.run():
        yield

    logger.info("http_server_shutdown")


def _probe_response(status: dict[str, Any], flag: str) -> JSONResponse:
    return JSONResponse(status, status_code=200 if status[flag] else 503)


async def health_check(_request: Request) -> JSONResponse:
    """Overall health. 503 when no renderer is usable."""
    return _probe_response(await HealthChecker().check_all(), "healthy")


async def readiness_check(_request: Request) -> JSONResponse:
    """Readiness probe. 503 until extraction has a renderer to run on."""
    return _probe_response(await HealthChecker().check_readiness(), "ready")


async def liveness_check(_request: Request) -> JSONResponse:
    """Liveness probe."""
    return _probe_response(await HealthChecker().check_liveness(), "alive")


async def root(_request: Request) -> JSONResponse:
    """Server information."""
    return JSONResponse(
        {
            "name": "Link Preview MCP",
            "version": __version__,
            "description": "Link metadata extraction, classification and screenshots over MCP",
            "endpoints": {
                "mcp": "/mcp",
                "health": "/health",
                "ready": "/ready",
                "alive": "/alive",
            },
            "tools": TOOLS,
        }
    )


middleware = [
    Middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Mcp-Session-Id"],  # Required for MCP sessions
    ),
]

app = Starlette(
    debug=settings.debug,
    routes=[
        Route("/", root, methods=["GET"]),
        Route("/health", health_check, methods=["GET"]),
        Route("/ready", readiness_check, methods=["GET"]),
        Route("/alive", liveness_check, methods=["GET"]),
        Mount("/mcp", app=mcp.streamable_http_app()),
    ],
    middleware=middleware,
    lifespan=lifespan,
)
