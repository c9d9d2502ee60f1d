"""Screenshot tool for MCP."""

import base64
from typing import Any

import structlog
from mcp.server.fastmcp import Context, FastMCP

from link_preview.exceptions import PipelineFailure
from link_preview.utils.sanitize import normalize_url

logger = structlog.get_logger(__name__)


def register(mcp: FastMCP) -> None:
    """Register the capture_screenshot tool with the MCP server."""

    @mcp.tool()
    async def capture_screenshot(
        url: str,
        ctx: Context[Any, Any] = None,  # type: ignore[assignment, type-arg]
    ) -> dict[str, Any]:
        """
        Capture a 1280x720 JPEG screenshot of a page.

        Requires browser rendering credentials. Nothing is stored.

        Args:
            url: URL to capture

        Returns:
            Base64 image data, or an error descriptor with its failure type
        """
        from link_preview.server import AppContext

        app_ctx: AppContext = ctx.request_context.lifespan_context
        normalized = normalize_url(url)

        try:
            image = await app_ctx.cloudflare.screenshot(normalized)
        except PipelineFailure as e:
            logger.warning("screenshot_tool_failed", url=normalized, failure_type=e.failure_type.value)
            return {
                "success": False,
                "url": normalized,
                "error": e.to_failure(normalized).model_dump(mode="json"),
            }

        return {
            "success": True,
            "url": normalized,
            "content_type": image.content_type,
            "data": base64.b64encode(image.data).decode("ascii"),
        }
