"""Link classification tool for MCP."""

from typing import Any

from mcp.server.fastmcp import FastMCP

from link_preview.providers.domains import classify_url, detect_provider
from link_preview.utils.sanitize import normalize_url


def register(mcp: FastMCP) -> None:
    """Register the classify_link tool with the MCP server."""

    @mcp.tool()
    async def classify_link(
        url: str,
        site_name: str | None = None,
        title: str | None = None,
    ) -> dict[str, Any]:
        """
        Classify a URL into a link category without fetching it.

        Categories: book, movie, tv, article, news, podcast, music, product,
        recipe, course, research, event, software, design_portfolio, other.

        Args:
            url: URL to classify
            site_name: Optional site name hint
            title: Optional page title hint

        Returns:
            Category, confidence, matching rule and detected provider
        """
        normalized = normalize_url(url)
        classification = classify_url(normalized, site_name=site_name, title=title)
        result = classification.model_dump(mode="json")
        result["url"] = normalized
        result["detected_provider"] = detect_provider(normalized, classification.provider)
        return result
