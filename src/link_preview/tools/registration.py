"""Tool registration for the MCP server."""

from mcp.server.fastmcp import FastMCP


def register_all_tools(mcp: FastMCP) -> None:
    """
    Register all tools with the MCP server.

    Args:
        mcp: FastMCP server instance
    """
    from link_preview.tools import classify, preview, screenshot

    preview.register(mcp)
    classify.register(mcp)
    screenshot.register(mcp)
