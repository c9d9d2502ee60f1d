"""MCP tools."""

from link_preview.tools.registration import register_all_tools

__all__ = ["register_all_tools"]
