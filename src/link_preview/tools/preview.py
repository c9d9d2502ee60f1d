"""Link preview tool for MCP."""

import base64
import uuid
from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from link_preview.models.card import Card


def register(mcp: FastMCP) -> None:
    """Register the preview_link tool with the MCP server."""

    @mcp.tool()
    async def preview_link(
        url: str,
        capture_screenshot: bool = False,
        ctx: Context[Any, Any] = None,  # type: ignore[assignment, type-arg]
    ) -> dict[str, Any]:
        """
        Extract a link preview (title, description, image, favicon, site name,
        author, publisher, publish date) and category facts for a URL.

        Runs one extraction attempt through the metadata pipeline. Failures that
        would be retried later are reported with retry_scheduled=true.

        Args:
            url: URL to preview (scheme optional, https is assumed)
            capture_screenshot: Also capture a JPEG screenshot (requires the
                browser rendering service)

        Returns:
            Card id, pipeline status, the preview, category metadata and,
            when requested, the screenshot as base64
        """
        from link_preview.pipeline import EXTRACT_METADATA_JOB
        from link_preview.server import AppContext

        app_ctx: AppContext = ctx.request_context.lifespan_context

        card = await app_ctx.cards.add(Card(id=uuid.uuid4().hex, url=url))
        result = await app_ctx.metadata_service.extract(card.id)

        if result.status == "completed" and capture_screenshot:
            # Only the zero-delay screenshot job is due at this point
            await app_ctx.scheduler.run_due(
                {
                    name: handler
                    for name, handler in app_ctx.job_handlers.items()
                    if name != EXTRACT_METADATA_JOB
                }
            )

        stored = await app_ctx.cards.get_card(card.id)
        preview = stored.metadata.link_preview if stored else None
        category = stored.metadata.link_category if stored else None

        response: dict[str, Any] = {
            "card_id": card.id,
            "status": result.status,
            "retry_scheduled": result.status == "retry_scheduled",
            "preview": preview.model_dump(mode="json", exclude={"raw"}) if preview else None,
            "category": category.model_dump(mode="json", exclude={"raw"}) if category else None,
            "error": result.failure.model_dump(mode="json") if result.failure else None,
        }

        if preview and preview.screenshot_storage_id:
            blob = app_ctx.blobs.get(preview.screenshot_storage_id)
            if blob:
                data, content_type = blob
                response["screenshot"] = {
                    "content_type": content_type,
                    "data": base64.b64encode(data).decode("ascii"),
                }

        return response
