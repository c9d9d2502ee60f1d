"""
FastMCP server with all tools registered.

Configured for stateless HTTP mode for multi-client support.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
import structlog
from mcp.server.fastmcp import FastMCP

from link_preview.config import settings
from link_preview.extraction.extractor import LinkMetadataExtractor
from link_preview.pipeline import (
    InMemoryScheduler,
    JobHandler,
    LinkMetadataService,
    PreviewImageCache,
    RetryController,
    ScreenshotService,
    build_job_handlers,
    extraction_policies,
    screenshot_policies,
)
from link_preview.pipeline.stores import InMemoryBlobStore, InMemoryCardStore
from link_preview.scrapers.base import Renderer
from link_preview.scrapers.cloudflare import CloudflareRenderer
from link_preview.scrapers.html_fetch import HtmlFetchRenderer
from link_preview.tools import register_all_tools

logger = structlog.get_logger(__name__)


@dataclass
class AppContext:
    """Shared application resources available to all tools."""

    http_client: httpx.AsyncClient
    cloudflare: CloudflareRenderer
    extractor: LinkMetadataExtractor
    cards: InMemoryCardStore
    fetcher: HtmlFetchRenderer
    blobs: InMemoryBlobStore
    image_cache: PreviewImageCache | None
    scheduler: InMemoryScheduler
    metadata_service: LinkMetadataService
    screenshot_service: ScreenshotService
    job_handlers: dict[str, JobHandler]


def create_cloudflare_renderer(http_client: httpx.AsyncClient) -> CloudflareRenderer:
    """Browser rendering client built from settings."""
    return CloudflareRenderer(
        account_id=settings.cloudflare_account_id,
        api_token=settings.cloudflare_api_token,
        base_url=settings.cloudflare_api_base_url,
        timeout_seconds=settings.scrape_timeout_seconds,
        navigation_timeout_ms=settings.navigation_timeout_ms,
        screenshot_timeout_seconds=settings.screenshot_timeout_seconds,
        viewport=(settings.screenshot_viewport_width, settings.screenshot_viewport_height),
        screenshot_quality=settings.screenshot_quality,
        http_client=http_client,
    )


def create_fetch_renderer() -> HtmlFetchRenderer:
    """
    Direct HTML fetcher built from settings.

    It owns its HTTP client: requests are addressed by resolved IP, so the
    connection pool is not shared with other callers.
    """
    return HtmlFetchRenderer(
        timeout_seconds=settings.fetch_timeout_seconds,
        max_bytes=settings.fetch_max_bytes,
        max_redirects=settings.fetch_max_redirects,
        user_agent=settings.fetch_user_agent,
    )


def create_renderers(cloudflare: CloudflareRenderer, fetcher: HtmlFetchRenderer) -> list[Renderer]:
    """
    Create renderer instances in priority order.

    Args:
        cloudflare: Browser rendering client
        fetcher: Direct HTML fetcher, used as fallback when enabled

    Returns:
        List of renderers; unconfigured ones are skipped by the extractor
    """
    renderers: list[Renderer] = [cloudflare]

    if settings.use_fetch_fallback:
        renderers.append(fetcher)

    return renderers


@asynccontextmanager
async def app_lifespan(_server: FastMCP) -> AsyncIterator[AppContext]:
    """
    Manage application lifecycle.

    Initialize expensive resources once, share across all requests.
    """
    logger.info(
        "starting_mcp_server",
        server_name="Link Preview MCP",
        debug=settings.debug,
    )

    # HTTP client with connection pooling; redirects are handled per renderer
    http_client = httpx.AsyncClient(
        limits=httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=settings.max_keepalive_connections,
        ),
        timeout=httpx.Timeout(
            connect=5.0,
            read=settings.request_timeout,
            write=10.0,
            pool=5.0,
        ),
        http2=True,
        verify=settings.get_ssl_context(),
    )

    cloudflare = create_cloudflare_renderer(http_client)
    fetcher = create_fetch_renderer()
    renderers = create_renderers(cloudflare, fetcher)
    extractor = LinkMetadataExtractor(renderers, asset_proxy_origin=settings.asset_proxy_origin)

    logger.info(
        "renderers_initialized",
        available=[renderer.name for renderer in extractor.get_available_renderers()],
    )

    cards = InMemoryCardStore()
    blobs = InMemoryBlobStore()
    image_cache = PreviewImageCache(blobs, fetcher, settings.image_max_bytes) if settings.cache_preview_images else None
    scheduler = InMemoryScheduler()
    metadata_service = LinkMetadataService(
        cards=cards,
        extractor=extractor,
        scheduler=scheduler,
        retry_controller=RetryController(scheduler, extraction_policies(settings)),
        image_cache=image_cache,
    )
    screenshot_service = ScreenshotService(
        cards=cards,
        blobs=blobs,
        renderer=cloudflare,
        retry_controller=RetryController(scheduler, screenshot_policies(settings)),
    )

    try:
        yield AppContext(
            http_client=http_client,
            cloudflare=cloudflare,
            extractor=extractor,
            cards=cards,
            fetcher=fetcher,
            blobs=blobs,
            image_cache=image_cache,
            scheduler=scheduler,
            metadata_service=metadata_service,
            screenshot_service=screenshot_service,
            job_handlers=build_job_handlers(metadata_service, screenshot_service),
        )
    finally:
        logger.info("shutting_down_mcp_server")
        await cloudflare.close()
        await fetcher.close()
        await http_client.aclose()


# Create FastMCP server
# stateless_http=True allows multiple concurrent clients
# json_response=True for structured responses
mcp = FastMCP(
    "Link Preview MCP",
    lifespan=app_lifespan,
    stateless_http=True,
    json_response=True,
)

register_all_tools(mcp)
