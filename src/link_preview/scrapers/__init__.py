"""Page renderers: browser rendering service and direct HTML fetch."""

from link_preview.scrapers.base import Renderer, ScreenshotImage, ScreenshotRenderer, parse_retry_after
from link_preview.scrapers.cloudflare import CloudflareRenderer
from link_preview.scrapers.html_fetch import HtmlFetchRenderer

__all__ = [
    "CloudflareRenderer",
    "HtmlFetchRenderer",
    "Renderer",
    "ScreenshotImage",
    "ScreenshotRenderer",
    "parse_retry_after",
]
