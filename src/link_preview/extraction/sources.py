"""
Declarative selector chains used to resolve each preview field.

Each chain is an ordered tuple of (selector, attribute) sources evaluated
first-match-wins. An attribute of None means the element's text. New fields
or fallbacks are added here as data; the parser does not change.
"""

from typing import NamedTuple

from link_preview.providers.instagram import MEDIA_SELECTOR
from link_preview.providers.registry import provider_selectors
from link_preview.providers.structured import STRUCTURED_DATA_SELECTOR


class SelectorSource(NamedTuple):
    """One candidate location for a field value."""

    selector: str
    attribute: str | None = None


SourceChain = tuple[SelectorSource, ...]

TITLE_SOURCES: SourceChain = (
    SelectorSource("meta[property='og:title']", "content"),
    SelectorSource("meta[name='og:title']", "content"),
    SelectorSource("meta[name='twitter:title']", "content"),
    SelectorSource("meta[property='twitter:title']", "content"),
    SelectorSource("meta[name='title']", "content"),
    SelectorSource("head > title"),
)

DESCRIPTION_SOURCES: SourceChain = (
    SelectorSource("meta[property='og:description']", "content"),
    SelectorSource("meta[name='og:description']", "content"),
    SelectorSource("meta[name='description']", "content"),
    SelectorSource("meta[property='description']", "content"),
    SelectorSource("meta[name='twitter:description']", "content"),
    SelectorSource("meta[property='twitter:description']", "content"),
)

IMAGE_SOURCES: SourceChain = (
    SelectorSource("meta[property='og:image:secure_url']", "content"),
    SelectorSource("meta[property='og:image:url']", "content"),
    SelectorSource("meta[property='og:image']", "content"),
    SelectorSource("meta[name='og:image']", "content"),
    SelectorSource("meta[property='twitter:image']", "content"),
    SelectorSource("meta[name='twitter:image']", "content"),
    SelectorSource("meta[property='twitter:image:src']", "content"),
    SelectorSource("meta[name='twitter:image:src']", "content"),
    SelectorSource("link[rel='image_src']", "href"),
    SelectorSource("meta[name='msapplication-TileImage']", "content"),
)

FAVICON_SOURCES: SourceChain = (
    SelectorSource("link[rel='icon']", "href"),
    SelectorSource("link[rel='shortcut icon']", "href"),
    SelectorSource("link[rel='apple-touch-icon']", "href"),
    SelectorSource("link[rel='apple-touch-icon-precomposed']", "href"),
    SelectorSource("link[rel='mask-icon']", "href"),
)

SITE_NAME_SOURCES: SourceChain = (
    SelectorSource("meta[property='og:site_name']", "content"),
    SelectorSource("meta[name='og:site_name']", "content"),
    SelectorSource("meta[name='application-name']", "content"),
    SelectorSource("meta[name='publisher']", "content"),
)

AUTHOR_SOURCES: SourceChain = (
    SelectorSource("meta[name='author']", "content"),
    SelectorSource("meta[property='article:author']", "content"),
    SelectorSource("meta[name='byl']", "content"),
    SelectorSource("meta[property='book:author']", "content"),
)

PUBLISHER_SOURCES: SourceChain = (
    SelectorSource("meta[property='article:publisher']", "content"),
    SelectorSource("meta[name='publisher']", "content"),
    SelectorSource("meta[property='og:site_name']", "content"),
)

PUBLISHED_TIME_SOURCES: SourceChain = (
    SelectorSource("meta[property='article:published_time']", "content"),
    SelectorSource("meta[name='article:published_time']", "content"),
    SelectorSource("meta[name='pubdate']", "content"),
    SelectorSource("meta[name='publication_date']", "content"),
    SelectorSource("meta[name='date']", "content"),
)

CANONICAL_SOURCES: SourceChain = (
    SelectorSource("link[rel='canonical']", "href"),
    SelectorSource("meta[property='og:url']", "content"),
    SelectorSource("meta[name='og:url']", "content"),
)

FINAL_URL_SOURCES: SourceChain = (
    SelectorSource("meta[property='og:url']", "content"),
    SelectorSource("meta[name='og:url']", "content"),
    SelectorSource("meta[property='al:web:url']", "content"),
    SelectorSource("meta[property='twitter:url']", "content"),
    SelectorSource("meta[name='twitter:url']", "content"),
)

# Every <img>, used when no meta image exists
IMAGE_FALLBACK_SELECTOR = "img"

PREVIEW_CHAINS: tuple[SourceChain, ...] = (
    TITLE_SOURCES,
    DESCRIPTION_SOURCES,
    IMAGE_SOURCES,
    FAVICON_SOURCES,
    SITE_NAME_SOURCES,
    AUTHOR_SOURCES,
    PUBLISHER_SOURCES,
    PUBLISHED_TIME_SOURCES,
    CANONICAL_SOURCES,
    FINAL_URL_SOURCES,
)


def build_scrape_selectors() -> tuple[str, ...]:
    """Deduplicated selector set requested in a single rendering call."""
    ordered: dict[str, None] = {}
    for chain in PREVIEW_CHAINS:
        for source in chain:
            ordered.setdefault(source.selector, None)
    ordered.setdefault(IMAGE_FALLBACK_SELECTOR, None)
    ordered.setdefault(MEDIA_SELECTOR, None)
    ordered.setdefault(STRUCTURED_DATA_SELECTOR, None)
    for selector in provider_selectors():
        ordered.setdefault(selector, None)
    return tuple(ordered)


SCRAPE_SELECTORS: tuple[str, ...] = build_scrape_selectors()
