"""Pydantic models for the link preview pipeline."""

from link_preview.models.card import Card, CardMetadata, MetadataStatus
from link_preview.models.category import (
    LINK_CATEGORIES,
    CategoryDetail,
    LinkCategory,
    LinkCategoryMetadata,
    LinkClassification,
    ProviderEnrichment,
)
from link_preview.models.failure import FailureType, RetryableFailure
from link_preview.models.preview import LinkPreview, PreviewError, merge_link_preview
from link_preview.models.selectors import (
    SelectorAttribute,
    SelectorResult,
    SelectorResultItem,
    SelectorResultMap,
)

__all__ = [
    "Card",
    "CardMetadata",
    "MetadataStatus",
    "LINK_CATEGORIES",
    "CategoryDetail",
    "LinkCategory",
    "LinkCategoryMetadata",
    "LinkClassification",
    "ProviderEnrichment",
    "FailureType",
    "RetryableFailure",
    "LinkPreview",
    "PreviewError",
    "merge_link_preview",
    "SelectorAttribute",
    "SelectorResult",
    "SelectorResultItem",
    "SelectorResultMap",
]
