"""Link metadata extraction job: fetch, persist, enrich, notify, schedule screenshot."""

from dataclasses import dataclass
from typing import Literal

import structlog

from link_preview.exceptions import InvalidCardError, PipelineFailure
from link_preview.extraction.extractor import LinkMetadataExtractor
from link_preview.models.card import Card
from link_preview.models.category import LinkCategoryMetadata
from link_preview.models.failure import FailureType, RetryableFailure
from link_preview.models.preview import LinkPreview
from link_preview.models.selectors import SelectorResultMap
from link_preview.pipeline.enrichment import Classifier, build_category_metadata
from link_preview.pipeline.images import PreviewImageCache
from link_preview.pipeline.jobs import CAPTURE_SCREENSHOT_JOB, EXTRACT_METADATA_JOB, JobScheduler
from link_preview.pipeline.retry import RetryController
from link_preview.pipeline.stores import CardStore, DownstreamNotifier
from link_preview.providers.domains import classify_url
from link_preview.utils.sanitize import normalize_url

logger = structlog.get_logger(__name__)

ExtractionStatus = Literal["completed", "failed", "retry_scheduled", "skipped"]


@dataclass
class ExtractionResult:
    """What one extraction job did."""

    status: ExtractionStatus
    preview: LinkPreview | None = None
    category: LinkCategoryMetadata | None = None
    failure: RetryableFailure | None = None


def _invalid_reason(card: Card | None) -> str:
    if card is None:
        return "card not found"
    if card.type != "link":
        return f"card type is {card.type!r}"
    return "card has no URL"


def _unexpected_failure(e: Exception, normalized_url: str | None) -> RetryableFailure:
    return RetryableFailure(
        type=FailureType.ERROR,
        normalized_url=normalized_url,
        message=str(e) or e.__class__.__name__,
    )


class LinkMetadataService:
    """
    Runs one extraction attempt for a card.

    Each call re-checks the card first, so a retry scheduled for a card that
    has since been deleted exits without effect. A card that still exists but
    is no longer a link with a URL gets a terminal error preview.
    """

    def __init__(
        self,
        cards: CardStore,
        extractor: LinkMetadataExtractor,
        scheduler: JobScheduler,
        retry_controller: RetryController,
        notifier: DownstreamNotifier | None = None,
        classifier: Classifier = classify_url,
        image_cache: PreviewImageCache | None = None,
    ) -> None:
        self._cards = cards
        self._extractor = extractor
        self._scheduler = scheduler
        self._retry = retry_controller
        self._notifier = notifier
        self._classifier = classifier
        self._image_cache = image_cache

    async def extract(self, card_id: str, attempt: int = 0) -> ExtractionResult:
        """
        Extract and persist link metadata for a card.

        Never raises: store and scheduler errors are logged and reported as
        a failed result.

        Args:
            card_id: Card to process
            attempt: 0 for the first run, incremented by each scheduled retry

        Returns:
            ExtractionResult describing the outcome
        """
        try:
            return await self._extract(card_id, attempt)
        except Exception as e:
            logger.exception("extraction_job_error", card_id=card_id, attempt=attempt)
            return ExtractionResult(status="failed", failure=_unexpected_failure(e, None))

    async def _extract(self, card_id: str, attempt: int) -> ExtractionResult:
        card = await self._cards.get_card(card_id)
        if card is None:
            failure = InvalidCardError(card_id, _invalid_reason(card)).to_failure(None)
            await self._retry.handle(
                failure,
                job=EXTRACT_METADATA_JOB,
                card_id=card_id,
                attempt=attempt,
                on_terminal=self._log_skipped(card_id),
            )
            return ExtractionResult(status="skipped", failure=failure)

        previous = card.metadata.link_preview
        if not card.is_processable_link:
            url = normalize_url(card.url) if card.url and card.url.strip() else None
            failure = InvalidCardError(card_id, _invalid_reason(card)).to_failure(url)
            return await self._handle_failure(card_id, failure, attempt, previous)

        normalized = normalize_url(card.url or "")
        logger.info("extraction_started", card_id=card_id, url=normalized, attempt=attempt)

        try:
            page = await self._extractor.extract(normalized)
        except PipelineFailure as e:
            return await self._handle_failure(card_id, e.to_failure(normalized), attempt, previous)
        except Exception as e:
            logger.exception("unexpected_extraction_error", card_id=card_id, url=normalized)
            return await self._handle_failure(card_id, _unexpected_failure(e, normalized), attempt, previous)

        preview = page.preview
        image_storage_id = None
        if self._image_cache is not None and page.image_source_url:
            cached = await self._cache_image(card_id, page.image_source_url)
            if cached is not None:
                image_storage_id = cached.storage_id
                preview = preview.model_copy(
                    update={
                        "image_storage_id": cached.storage_id,
                        "image_updated_at": cached.updated_at,
                        "image_width": cached.width,
                        "image_height": cached.height,
                    }
                )

        try:
            await self._cards.update_metadata(card_id, preview, "completed")
        except Exception as e:
            logger.exception("metadata_persist_error", card_id=card_id, url=normalized)
            if image_storage_id:
                await self._release_image(card_id, image_storage_id)
            return await self._handle_failure(card_id, _unexpected_failure(e, normalized), attempt, previous)

        if previous and previous.image_storage_id and previous.image_storage_id != image_storage_id:
            await self._release_image(card_id, previous.image_storage_id)

        category = await self._enrich(card_id, normalized, preview, page.selector_map)
        await self._notify(card_id)
        await self._schedule_screenshot(card_id)

        logger.info("extraction_completed", card_id=card_id, url=normalized, attempt=attempt)
        return ExtractionResult(status="completed", preview=preview, category=category)

    async def refresh_category(self, card_id: str) -> LinkCategoryMetadata | None:
        """
        Recompute category metadata from the stored preview.

        Uses the preview's raw debug entries in place of a new scrape.
        """
        card = await self._cards.get_card(card_id)
        if card is None or not card.is_processable_link:
            logger.info("category_refresh_skipped", card_id=card_id, reason=_invalid_reason(card))
            return None
        preview = card.metadata.link_preview
        if preview is None or not preview.is_success:
            logger.info("category_refresh_skipped", card_id=card_id, reason="no successful preview")
            return None

        selector_map = SelectorResultMap.from_debug_entries(preview.raw)
        return await self._enrich(card_id, normalize_url(card.url or ""), preview, selector_map)

    async def _enrich(
        self,
        card_id: str,
        source_url: str,
        preview: LinkPreview,
        selector_map: SelectorResultMap,
    ) -> LinkCategoryMetadata | None:
        try:
            classification = self._classifier(source_url, preview.site_name, preview.title)
            category = build_category_metadata(source_url, preview, selector_map, classification)
            await self._cards.update_category(card_id, category)
        except Exception:
            logger.exception("category_enrichment_error", card_id=card_id, url=source_url)
            return None
        logger.info(
            "category_stored",
            card_id=card_id,
            category=category.category,
            provider=category.detected_provider,
        )
        return category

    async def _cache_image(self, card_id: str, image_url: str):
        try:
            return await self._image_cache.store(image_url)
        except Exception:
            logger.exception("preview_image_cache_error", card_id=card_id, url=image_url[:200])
            return None

    async def _release_image(self, card_id: str, storage_id: str) -> None:
        if self._image_cache is None:
            return
        try:
            await self._image_cache.release(storage_id)
        except Exception:
            logger.exception("preview_image_cleanup_error", card_id=card_id, storage_id=storage_id)

    async def _notify(self, card_id: str) -> None:
        if self._notifier is None:
            return
        try:
            await self._notifier.notify(card_id)
        except Exception:
            logger.exception("downstream_notification_error", card_id=card_id)

    async def _schedule_screenshot(self, card_id: str) -> None:
        try:
            await self._scheduler.run_after(0, CAPTURE_SCREENSHOT_JOB, {"card_id": card_id, "attempt": 0})
        except Exception:
            logger.exception("screenshot_schedule_error", card_id=card_id)

    async def _handle_failure(
        self,
        card_id: str,
        failure: RetryableFailure,
        attempt: int,
        previous: LinkPreview | None = None,
    ) -> ExtractionResult:
        error_preview = LinkPreview.from_failure(failure)

        async def persist_terminal(terminal: RetryableFailure) -> None:
            try:
                await self._cards.update_metadata(card_id, error_preview, "failed")
            except Exception:
                logger.exception("terminal_persist_error", card_id=card_id, failure_type=terminal.type.value)
                return
            if previous and previous.image_storage_id:
                await self._release_image(card_id, previous.image_storage_id)

        decision = await self._retry.handle(
            failure,
            job=EXTRACT_METADATA_JOB,
            card_id=card_id,
            attempt=attempt,
            on_terminal=persist_terminal,
        )
        if decision.retry:
            return ExtractionResult(status="retry_scheduled", failure=failure)
        return ExtractionResult(status="failed", preview=error_preview, failure=failure)

    @staticmethod
    def _log_skipped(card_id: str):
        async def on_terminal(failure: RetryableFailure) -> None:
            logger.info("extraction_skipped", card_id=card_id, reason=failure.message)

        return on_terminal
