"""Base protocols for page renderers."""

from abc import abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Protocol, runtime_checkable

from link_preview.models.selectors import SelectorResultMap


@dataclass(frozen=True)
class ScreenshotImage:
    """Rendered screenshot bytes and their MIME type."""

    data: bytes
    content_type: str = "image/jpeg"


@runtime_checkable
class Renderer(Protocol):
    """
    Protocol for page renderers.

    A renderer evaluates a selector set against a page and returns the
    matched elements. Failures are raised as PipelineFailure subclasses so
    the retry controller can classify them.
    """

    @property
    def name(self) -> str:
        """Return the renderer name."""
        ...

    @property
    def is_configured(self) -> bool:
        """Return True if the renderer is properly configured."""
        ...

    @abstractmethod
    async def scrape(self, url: str, selectors: Sequence[str]) -> SelectorResultMap:
        """
        Render a URL and evaluate selectors against it.

        Args:
            url: Normalized URL to render
            selectors: CSS selectors to evaluate

        Returns:
            SelectorResultMap keyed by selector

        Raises:
            PipelineFailure: If rendering fails
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the renderer and release resources."""
        ...


@runtime_checkable
class ScreenshotRenderer(Protocol):
    """Protocol for renderers that can capture a screenshot."""

    @property
    def name(self) -> str:
        """Return the renderer name."""
        ...

    @property
    def is_configured(self) -> bool:
        """Return True if the renderer is properly configured."""
        ...

    @abstractmethod
    async def screenshot(self, url: str) -> ScreenshotImage:
        """
        Capture a screenshot of a URL.

        Raises:
            PipelineFailure: If the capture fails
        """
        ...


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """Parse a Retry-After header given in seconds or as an HTTP date."""
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        seconds = None
    if seconds is not None:
        return max(seconds, 0.0)

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    delta = (retry_at - (now or datetime.now(timezone.utc))).total_seconds()
    return max(delta, 0.0)
