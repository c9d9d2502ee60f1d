"""Category metadata assembled from classification, provider and structured data."""

from collections.abc import Callable
from typing import Any

import structlog

from link_preview.models.category import CategoryDetail, LinkCategoryMetadata, LinkClassification
from link_preview.models.preview import LinkPreview
from link_preview.models.selectors import SelectorResultMap
from link_preview.providers.common import merge_facts
from link_preview.providers.domains import detect_provider
from link_preview.providers.registry import enrich_provider
from link_preview.providers.structured import enrich_structured_data
from link_preview.utils.sanitize import sanitize_image_url

logger = structlog.get_logger(__name__)

# Below this confidence a provider handler may run outside its declared categories
LOW_CONFIDENCE_THRESHOLD = 0.6

Classifier = Callable[[str, str | None, str | None], LinkClassification]


def build_category_metadata(
    source_url: str,
    preview: LinkPreview | None,
    selector_map: SelectorResultMap,
    classification: LinkClassification,
) -> LinkCategoryMetadata:
    """
    Merge provider and structured-data enrichment into category metadata.

    The preview image is kept when present; otherwise the first enrichment
    image that survives sanitizing against the page URL wins. Facts are
    appended provider first, deduplicated by label and value.

    Args:
        source_url: The card URL
        preview: Success preview, if any
        selector_map: Selector results from extraction (or rebuilt from raw)
        classification: Output of the classifier

    Returns:
        LinkCategoryMetadata ready to persist
    """
    provider = detect_provider(source_url, classification.provider)
    page_url = (preview.final_url or preview.url) if preview else source_url
    image_url = preview.image_url if preview else None
    facts: list[CategoryDetail] = []
    raw: dict[str, Any] = {}

    provider_enrichment = enrich_provider(
        provider,
        classification.category,
        selector_map,
        allow_category_mismatch=classification.confidence < LOW_CONFIDENCE_THRESHOLD,
    )
    if provider_enrichment:
        image_url = image_url or sanitize_image_url(page_url, provider_enrichment.image_url)
        merge_facts(facts, provider_enrichment.facts)
    if provider:
        provider_raw = provider_enrichment.raw if provider_enrichment and provider_enrichment.raw else {}
        raw["provider"] = {"name": provider, **provider_raw}

    structured = enrich_structured_data(classification.category, selector_map)
    if structured:
        image_url = image_url or sanitize_image_url(page_url, structured.image_url)
        merge_facts(facts, structured.facts)
        raw["structured"] = structured.raw

    logger.debug(
        "category_enriched",
        url=source_url,
        category=classification.category,
        provider=provider,
        fact_count=len(facts),
    )

    return LinkCategoryMetadata(
        category=classification.category,
        confidence=classification.confidence,
        detected_provider=provider,
        source_url=source_url,
        image_url=image_url,
        facts=facts,
        raw=raw or None,
    )
