"""Link metadata extraction over an ordered list of renderers."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from link_preview.exceptions import ConfigurationError, PipelineFailure
from link_preview.extraction.parser import parse_link_preview, resolve_image_url
from link_preview.extraction.sources import SCRAPE_SELECTORS
from link_preview.models.preview import LinkPreview
from link_preview.models.selectors import SelectorResultMap
from link_preview.scrapers.base import Renderer

logger = structlog.get_logger(__name__)


@dataclass
class ExtractedPage:
    """A parsed preview plus the selector results it was built from."""

    preview: LinkPreview
    selector_map: SelectorResultMap
    # Preview image before asset proxying, for downloading a copy
    image_source_url: str | None = None


class LinkMetadataExtractor:
    """
    Runs the single scrape call for a URL and parses the result.

    Renderers are tried in order and the first success wins. When every
    configured renderer fails, the primary renderer's failure is raised with
    the others attached under details["fallback_errors"].
    """

    def __init__(
        self,
        renderers: Sequence[Renderer],
        asset_proxy_origin: str | None = None,
        selectors: Sequence[str] = SCRAPE_SELECTORS,
    ) -> None:
        self._renderers = list(renderers)
        self._asset_proxy_origin = asset_proxy_origin
        self._selectors = tuple(selectors)

    @property
    def renderers(self) -> list[Renderer]:
        return list(self._renderers)

    def get_available_renderers(self) -> list[Renderer]:
        """Renderers with the configuration they need."""
        return [renderer for renderer in self._renderers if renderer.is_configured]

    async def extract(self, url: str) -> ExtractedPage:
        """
        Extract a success preview for an already normalized URL.

        Raises:
            ConfigurationError: no renderer is configured
            PipelineFailure: every renderer failed
        """
        available = self.get_available_renderers()
        if not available:
            raise ConfigurationError("extractor", "no renderer is configured")

        failures: list[tuple[str, PipelineFailure]] = []
        for renderer in available:
            try:
                selector_map = await renderer.scrape(url, self._selectors)
            except PipelineFailure as e:
                logger.warning(
                    "renderer_failed",
                    renderer=renderer.name,
                    url=url,
                    failure_type=e.failure_type.value,
                    error=e.message,
                )
                failures.append((renderer.name, e))
                continue

            preview = parse_link_preview(url, selector_map, asset_proxy_origin=self._asset_proxy_origin)
            logger.info(
                "extraction_success",
                renderer=renderer.name,
                url=url,
                final_url=preview.final_url,
                matched_selectors=len(selector_map),
            )
            return ExtractedPage(
                preview=preview,
                selector_map=selector_map,
                image_source_url=resolve_image_url(url, selector_map),
            )

        _, primary = failures[0]
        if len(failures) > 1:
            fallback_errors: list[dict[str, Any]] = [
                {"renderer": name, "type": failure.failure_type.value, "message": failure.message}
                for name, failure in failures[1:]
            ]
            primary.details = {**primary.details, "fallback_errors": fallback_errors}
        raise primary
