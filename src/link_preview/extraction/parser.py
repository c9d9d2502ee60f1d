"""Convert selector results into a normalized LinkPreview."""

import re
from datetime import datetime

from link_preview.extraction.sources import (
    AUTHOR_SOURCES,
    CANONICAL_SOURCES,
    DESCRIPTION_SOURCES,
    FAVICON_SOURCES,
    FINAL_URL_SOURCES,
    IMAGE_FALLBACK_SELECTOR,
    IMAGE_SOURCES,
    PUBLISHED_TIME_SOURCES,
    PUBLISHER_SOURCES,
    SITE_NAME_SOURCES,
    TITLE_SOURCES,
    SelectorSource,
    SourceChain,
)
from link_preview.models.preview import LinkPreview, utc_now
from link_preview.models.selectors import SelectorResultItem, SelectorResultMap
from link_preview.providers.instagram import is_instagram_url, pick_primary_image
from link_preview.utils.sanitize import (
    AUTHOR_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    PUBLISHED_AT_MAX_LENGTH,
    PUBLISHER_MAX_LENGTH,
    SITE_NAME_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    proxy_asset_url,
    sanitize_image_url,
    sanitize_text,
    sanitize_url,
)

_LEADING_INT_RE = re.compile(r"^\s*(\d+)")


def _source_values(selector_map: SelectorResultMap, source: SelectorSource) -> list[str]:
    """Non-empty trimmed values for one source, in document order."""
    values: list[str] = []
    for item in selector_map.items(source.selector):
        raw = item.text if source.attribute is None else item.attribute(source.attribute)
        if raw and raw.strip():
            values.append(raw.strip())
    return values


def first_from_sources(selector_map: SelectorResultMap, chain: SourceChain) -> str | None:
    """Walk a source chain and return the first non-empty value."""
    for source in chain:
        values = _source_values(selector_map, source)
        if values:
            return values[0]
    return None


def _dimension(item: SelectorResultItem, name: str) -> int | None:
    value = item.attribute(name)
    if value:
        match = _LEADING_INT_RE.match(value)
        if match:
            return int(match.group(1))
    measured = item.width if name == "width" else item.height
    if measured is not None and measured > 0:
        return int(measured)
    return None


def pick_fallback_image(selector_map: SelectorResultMap, base_url: str) -> str | None:
    """
    Choose the <img> with the largest declared area.

    Images without both dimensions count as zero area, so the first usable
    image wins when nothing declares a size.
    """
    candidates: list[tuple[int, str]] = []
    for item in selector_map.items(IMAGE_FALLBACK_SELECTOR):
        url = sanitize_image_url(base_url, item.attribute("src"))
        if not url:
            continue
        width = _dimension(item, "width")
        height = _dimension(item, "height")
        area = width * height if width is not None and height is not None else 0
        candidates.append((area, url))

    if not candidates:
        return None
    # max() keeps the first of equal areas
    return max(candidates, key=lambda candidate: candidate[0])[1]


def resolve_image_url(normalized_url: str, selector_map: SelectorResultMap) -> str | None:
    """Sanitized preview image before any proxying: Instagram post media, meta image, then <img>."""
    base_url = selector_map.final_url or normalized_url
    if is_instagram_url(base_url) or is_instagram_url(normalized_url):
        primary = pick_primary_image(selector_map, base_url)
        if primary:
            return primary
    image_url = sanitize_image_url(base_url, first_from_sources(selector_map, IMAGE_SOURCES))
    return image_url or pick_fallback_image(selector_map, base_url)


def parse_link_preview(
    normalized_url: str,
    selector_map: SelectorResultMap,
    fetched_at: datetime | None = None,
    asset_proxy_origin: str | None = None,
) -> LinkPreview:
    """
    Resolve every preview field from selector results.

    Missing fields are simply absent; nothing here raises for bad page data.

    Args:
        normalized_url: URL that was requested
        selector_map: Results of the single scrape call
        fetched_at: Fetch time (defaults to now)
        asset_proxy_origin: Optional image proxy origin

    Returns:
        A success LinkPreview
    """
    base_url = selector_map.final_url or normalized_url

    title = sanitize_text(first_from_sources(selector_map, TITLE_SOURCES), TITLE_MAX_LENGTH)
    description = sanitize_text(
        first_from_sources(selector_map, DESCRIPTION_SOURCES), DESCRIPTION_MAX_LENGTH
    )
    canonical_url = sanitize_url(base_url, first_from_sources(selector_map, CANONICAL_SOURCES))
    final_url_candidate = sanitize_url(base_url, first_from_sources(selector_map, FINAL_URL_SOURCES))

    favicon_url = sanitize_url(base_url, first_from_sources(selector_map, FAVICON_SOURCES))

    return LinkPreview(
        status="success",
        fetched_at=fetched_at or utc_now(),
        url=normalized_url,
        final_url=final_url_candidate or canonical_url or selector_map.final_url or normalized_url,
        canonical_url=canonical_url,
        title=title,
        description=description,
        image_url=proxy_asset_url(resolve_image_url(normalized_url, selector_map), asset_proxy_origin),
        favicon_url=proxy_asset_url(favicon_url, asset_proxy_origin),
        site_name=sanitize_text(first_from_sources(selector_map, SITE_NAME_SOURCES), SITE_NAME_MAX_LENGTH),
        author=sanitize_text(first_from_sources(selector_map, AUTHOR_SOURCES), AUTHOR_MAX_LENGTH),
        publisher=sanitize_text(first_from_sources(selector_map, PUBLISHER_SOURCES), PUBLISHER_MAX_LENGTH),
        published_at=sanitize_text(
            first_from_sources(selector_map, PUBLISHED_TIME_SOURCES), PUBLISHED_AT_MAX_LENGTH
        ),
        raw=selector_map.to_debug_entries() or None,
    )
