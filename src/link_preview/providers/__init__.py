"""Provider enrichment registry, structured data enrichment and link classification."""

from link_preview.providers.domains import classify_url, detect_provider
from link_preview.providers.registry import PROVIDER_HANDLERS, ProviderHandler, enrich_provider
from link_preview.providers.structured import enrich_structured_data

__all__ = [
    "PROVIDER_HANDLERS",
    "ProviderHandler",
    "classify_url",
    "detect_provider",
    "enrich_provider",
    "enrich_structured_data",
]
