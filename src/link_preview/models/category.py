"""Link category models produced by classification and enrichment."""

from datetime import datetime
from typing import Any, Literal, get_args

from pydantic import BaseModel, Field

from link_preview.models.preview import utc_now

LinkCategory = Literal[
    "book",
    "movie",
    "tv",
    "article",
    "news",
    "podcast",
    "music",
    "product",
    "recipe",
    "course",
    "research",
    "event",
    "software",
    "design_portfolio",
    "other",
]

LINK_CATEGORIES: tuple[str, ...] = get_args(LinkCategory)


class CategoryDetail(BaseModel):
    """A single label/value fact shown alongside a preview."""

    label: str
    value: str

    model_config = {"extra": "ignore"}


class LinkClassification(BaseModel):
    """Result of classifying a URL into a link category."""

    category: LinkCategory
    confidence: float = Field(..., ge=0.0, le=1.0)
    provider: str | None = None
    reason: Literal["domain_rule", "path_rule", "provider_mapping", "heuristic", "fallback"]
    rule: str | None = None

    model_config = {"extra": "ignore"}


class ProviderEnrichment(BaseModel):
    """Output of one enrichment handler."""

    image_url: str | None = None
    facts: list[CategoryDetail] = Field(default_factory=list)
    raw: dict[str, Any] | None = None

    model_config = {"extra": "ignore"}


class LinkCategoryMetadata(BaseModel):
    """Category metadata stored next to the preview. Recomputable from its raw entries."""

    category: LinkCategory
    confidence: float
    detected_provider: str | None = None
    fetched_at: datetime = Field(default_factory=utc_now)
    source_url: str
    image_url: str | None = None
    facts: list[CategoryDetail] = Field(default_factory=list)
    raw: dict[str, Any] | None = None

    model_config = {"extra": "ignore"}
