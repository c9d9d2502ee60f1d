"""Selector chains, preview parsing and the renderer-backed extractor."""

from link_preview.extraction.extractor import ExtractedPage, LinkMetadataExtractor
from link_preview.extraction.parser import parse_link_preview
from link_preview.extraction.sources import SCRAPE_SELECTORS

__all__ = ["ExtractedPage", "LinkMetadataExtractor", "SCRAPE_SELECTORS", "parse_link_preview"]
