"""
Provider enrichment registry.

A constant map from provider token to handler. Each entry declares the link
categories it applies to; a handler only runs when the detected category is
one of them, unless the caller explicitly allows a mismatch.
"""

from collections.abc import Callable
from dataclasses import dataclass

import structlog

from link_preview.models.category import ProviderEnrichment
from link_preview.models.selectors import SelectorResultMap
from link_preview.providers import amazon, dribbble, github, goodreads, imdb

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProviderHandler:
    """Registry entry: gating categories, selectors to prefetch, and the handler."""

    categories: frozenset[str]
    selectors: tuple[str, ...]
    enrich: Callable[[SelectorResultMap], ProviderEnrichment | None]


PROVIDER_HANDLERS: dict[str, ProviderHandler] = {
    "github": ProviderHandler(frozenset({"software"}), github.SELECTORS, github.enrich_github),
    "goodreads": ProviderHandler(frozenset({"book"}), goodreads.SELECTORS, goodreads.enrich_goodreads),
    "amazon": ProviderHandler(frozenset({"product", "book"}), amazon.SELECTORS, amazon.enrich_amazon),
    "imdb": ProviderHandler(frozenset({"movie", "tv"}), imdb.SELECTORS, imdb.enrich_imdb),
    "dribbble": ProviderHandler(
        frozenset({"design_portfolio"}), dribbble.SELECTORS, dribbble.enrich_dribbble
    ),
}


def provider_selectors() -> tuple[str, ...]:
    """Every selector any handler reads, in registry order."""
    ordered: dict[str, None] = {}
    for handler in PROVIDER_HANDLERS.values():
        for selector in handler.selectors:
            ordered.setdefault(selector, None)
    return tuple(ordered)


def enrich_provider(
    provider: str | None,
    category: str,
    selector_map: SelectorResultMap,
    allow_category_mismatch: bool = False,
) -> ProviderEnrichment | None:
    """
    Run the handler registered for a provider.

    Args:
        provider: Provider token (e.g. "github")
        category: Detected link category
        selector_map: Selector results from the extraction scrape
        allow_category_mismatch: Run even when the category is not declared

    Returns:
        Enrichment result, or None when there is no handler, the category is
        gated out, or the page lacks the target data
    """
    if not provider:
        return None
    handler = PROVIDER_HANDLERS.get(provider)
    if handler is None:
        return None
    if category not in handler.categories and not allow_category_mismatch:
        logger.debug("provider_category_mismatch", provider=provider, category=category)
        return None
    return handler.enrich(selector_map)
