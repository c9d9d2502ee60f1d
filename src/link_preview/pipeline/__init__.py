"""Pipeline jobs: extraction, enrichment and screenshot capture."""

from typing import Any

from link_preview.pipeline.images import CachedImage, PreviewImageCache
from link_preview.pipeline.jobs import (
    CAPTURE_SCREENSHOT_JOB,
    EXTRACT_METADATA_JOB,
    InMemoryScheduler,
    JobHandler,
    JobScheduler,
)
from link_preview.pipeline.metadata import ExtractionResult, LinkMetadataService
from link_preview.pipeline.retry import (
    RetryController,
    RetryDecision,
    RetryPolicy,
    extraction_policies,
    screenshot_policies,
)
from link_preview.pipeline.screenshot import ScreenshotService


def build_job_handlers(
    metadata_service: LinkMetadataService,
    screenshot_service: ScreenshotService,
) -> dict[str, JobHandler]:
    """Map job names to handlers that unpack the {card_id, attempt} payload."""

    async def run_extraction(payload: dict[str, Any]) -> ExtractionResult:
        return await metadata_service.extract(payload["card_id"], int(payload.get("attempt", 0)))

    async def run_screenshot(payload: dict[str, Any]) -> bool:
        return await screenshot_service.capture(payload["card_id"], int(payload.get("attempt", 0)))

    return {
        EXTRACT_METADATA_JOB: run_extraction,
        CAPTURE_SCREENSHOT_JOB: run_screenshot,
    }


__all__ = [
    "CAPTURE_SCREENSHOT_JOB",
    "EXTRACT_METADATA_JOB",
    "CachedImage",
    "ExtractionResult",
    "InMemoryScheduler",
    "JobHandler",
    "JobScheduler",
    "LinkMetadataService",
    "PreviewImageCache",
    "RetryController",
    "RetryDecision",
    "RetryPolicy",
    "ScreenshotService",
    "build_job_handlers",
    "extraction_policies",
    "screenshot_policies",
]
