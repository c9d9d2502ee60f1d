"""Link preview models and the screenshot carry-forward merge."""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from link_preview.models.failure import FailureType, RetryableFailure
from link_preview.models.selectors import SelectorResult


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class PreviewError(BaseModel):
    """Error descriptor recorded on a failed preview."""

    type: FailureType
    message: str
    details: dict[str, Any] | None = None

    model_config = {"extra": "ignore"}


class LinkPreview(BaseModel):
    """Normalized metadata describing one remote page plus its fetch status."""

    status: Literal["success", "error"]
    fetched_at: datetime = Field(default_factory=utc_now)
    url: str = Field(..., description="Normalized URL that was requested")
    final_url: str | None = None
    canonical_url: str | None = None
    title: str | None = None
    description: str | None = None
    image_url: str | None = None
    favicon_url: str | None = None
    site_name: str | None = None
    author: str | None = None
    publisher: str | None = None
    published_at: str | None = None
    screenshot_storage_id: str | None = None
    screenshot_updated_at: datetime | None = None
    image_storage_id: str | None = Field(None, description="Blob holding a copy of the preview image")
    image_updated_at: datetime | None = None
    image_width: int | None = None
    image_height: int | None = None
    error: PreviewError | None = None
    raw: list[SelectorResult] | None = Field(
        None, description="First match per selector, kept for recomputing enrichment"
    )

    model_config = {"extra": "ignore"}

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    @classmethod
    def from_failure(cls, failure: RetryableFailure, url: str | None = None) -> "LinkPreview":
        """Create a terminal error preview from a classified failure."""
        return cls(
            status="error",
            url=url or failure.normalized_url or "",
            error=PreviewError(
                type=failure.type,
                message=failure.message,
                details=failure.details,
            ),
        )


def merge_link_preview(previous: LinkPreview | None, incoming: LinkPreview | None) -> LinkPreview | None:
    """
    Merge a new preview over the stored one.

    The incoming preview replaces the previous one wholesale, except that a
    screenshot reference held by the previous preview is carried over when the
    incoming one has none. A failed run therefore never drops a screenshot.
    """
    if incoming is None:
        return previous
    if previous is None or not previous.screenshot_storage_id or incoming.screenshot_storage_id:
        return incoming
    return incoming.model_copy(
        update={
            "screenshot_storage_id": previous.screenshot_storage_id,
            "screenshot_updated_at": previous.screenshot_updated_at,
        }
    )
