"""Screenshot capture job for cards with a successful preview."""

import structlog

from link_preview.exceptions import ConfigurationError, PipelineFailure
from link_preview.models.failure import FailureType, RetryableFailure
from link_preview.models.preview import utc_now
from link_preview.pipeline.jobs import CAPTURE_SCREENSHOT_JOB
from link_preview.pipeline.retry import RetryController
from link_preview.pipeline.stores import BlobStore, CardStore
from link_preview.scrapers.base import ScreenshotRenderer
from link_preview.utils.sanitize import normalize_url

logger = structlog.get_logger(__name__)


class ScreenshotService:
    """
    Captures a page screenshot and attaches it to the card's preview.

    A failed capture never touches the stored screenshot; the previous blob
    is deleted only after the card points at the new one.
    """

    def __init__(
        self,
        cards: CardStore,
        blobs: BlobStore,
        renderer: ScreenshotRenderer | None,
        retry_controller: RetryController,
    ) -> None:
        self._cards = cards
        self._blobs = blobs
        self._renderer = renderer
        self._retry = retry_controller

    async def capture(self, card_id: str, attempt: int = 0) -> bool:
        """
        Capture a screenshot for a card.

        Args:
            card_id: Card to process
            attempt: 0 for the first run, incremented by each scheduled retry

        Returns:
            True when a new screenshot was stored
        """
        card = await self._cards.get_card(card_id)
        if card is None or not card.is_processable_link:
            logger.info("screenshot_skipped", card_id=card_id, reason="card not processable")
            return False

        preview = card.metadata.link_preview
        if preview is None or not preview.is_success:
            logger.info("screenshot_skipped", card_id=card_id, reason="preview not successful")
            return False
        if attempt == 0 and preview.screenshot_storage_id:
            logger.info("screenshot_skipped", card_id=card_id, reason="screenshot exists")
            return False

        url = normalize_url(card.url or "")
        previous_storage_id = preview.screenshot_storage_id

        try:
            if self._renderer is None or not self._renderer.is_configured:
                raise ConfigurationError("screenshot", "rendering credentials are not configured")
            image = await self._renderer.screenshot(url)
        except PipelineFailure as e:
            await self._handle_failure(card_id, e.to_failure(url), attempt)
            return False
        except Exception as e:
            logger.exception("unexpected_screenshot_error", card_id=card_id, url=url)
            failure = RetryableFailure(
                type=FailureType.ERROR,
                normalized_url=url,
                message=str(e) or e.__class__.__name__,
            )
            await self._handle_failure(card_id, failure, attempt)
            return False

        try:
            storage_id = await self._blobs.store(image.data, image.content_type)
        except Exception:
            logger.exception("screenshot_store_error", card_id=card_id, url=url)
            return False
        try:
            await self._cards.update_screenshot(card_id, storage_id, utc_now())
        except Exception:
            logger.exception("screenshot_persist_error", card_id=card_id, storage_id=storage_id)
            await self._discard(card_id, storage_id)
            return False

        if previous_storage_id and previous_storage_id != storage_id:
            await self._discard(card_id, previous_storage_id)

        logger.info(
            "screenshot_stored",
            card_id=card_id,
            url=url,
            storage_id=storage_id,
            bytes=len(image.data),
            attempt=attempt,
        )
        return True

    async def _handle_failure(self, card_id: str, failure: RetryableFailure, attempt: int) -> None:
        async def keep_existing(terminal: RetryableFailure) -> None:
            logger.error(
                "screenshot_failed",
                card_id=card_id,
                url=terminal.normalized_url,
                failure_type=terminal.type.value,
                error=terminal.message,
            )

        await self._retry.handle(
            failure,
            job=CAPTURE_SCREENSHOT_JOB,
            card_id=card_id,
            attempt=attempt,
            on_terminal=keep_existing,
        )

    async def _discard(self, card_id: str, storage_id: str) -> None:
        try:
            await self._blobs.delete(storage_id)
        except Exception:
            logger.exception("screenshot_cleanup_error", card_id=card_id, storage_id=storage_id)
