"""Custom exceptions for the link preview pipeline."""

from typing import Any

from link_preview.models.failure import FailureType, RetryableFailure


class LinkPreviewError(Exception):
    """Base exception for all link preview errors."""

    pass


# ─── Pipeline Failures ───────────────────────────────────────────


class PipelineFailure(LinkPreviewError):
    """
    Base exception for classified stage failures.

    Every subclass maps to one failure type; the retry controller decides
    what happens next based on that type alone.
    """

    failure_type: FailureType = FailureType.ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def retry_after(self) -> float | None:
        return None

    @property
    def status_code(self) -> int | None:
        return None

    def to_failure(self, normalized_url: str | None) -> RetryableFailure:
        """Convert to the value handed to the retry controller."""
        details = dict(self.details)
        if self.status_code is not None:
            details.setdefault("status_code", self.status_code)
        if self.retry_after is not None:
            details.setdefault("retry_after", self.retry_after)
        return RetryableFailure(
            type=self.failure_type,
            normalized_url=normalized_url,
            message=self.message,
            details=details or None,
            retry_after=self.retry_after,
            status_code=self.status_code,
        )


class InvalidCardError(PipelineFailure):
    """Raised when a card is missing, not a link, or has no URL."""

    failure_type = FailureType.INVALID_CARD

    def __init__(self, card_id: str, reason: str) -> None:
        self.card_id = card_id
        super().__init__(f"Card {card_id} is not processable: {reason}", {"card_id": card_id})


class ConfigurationError(PipelineFailure):
    """Raised when a renderer is missing credentials or settings."""

    failure_type = FailureType.CONFIGURATION_ERROR

    def __init__(self, component: str, reason: str = "missing credentials") -> None:
        self.component = component
        super().__init__(f"[{component}] Not configured: {reason}", {"component": component})


# ─── Renderer Errors ─────────────────────────────────────────────


class RenderRateLimitError(PipelineFailure):
    """Raised when the rendering upstream throttles requests."""

    failure_type = FailureType.RATE_LIMIT

    def __init__(
        self,
        renderer: str,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.renderer = renderer
        self._retry_after = retry_after
        message = f"[{renderer}] Rate limit exceeded"
        if retry_after:
            message += f", retry after {retry_after}s"
        super().__init__(message, details)

    @property
    def retry_after(self) -> float | None:
        return self._retry_after


class RenderHTTPError(PipelineFailure):
    """Raised when the rendering upstream answers with a non-2xx status."""

    failure_type = FailureType.HTTP_ERROR

    def __init__(
        self,
        renderer: str,
        status_code: int,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.renderer = renderer
        self._status_code = status_code
        super().__init__(f"[{renderer}] HTTP {status_code}: {message}", details)

    @property
    def status_code(self) -> int | None:
        return self._status_code


class RenderSessionError(RenderHTTPError):
    """Raised when the upstream reports a conflicting browser session."""

    failure_type = FailureType.SESSION_ERROR


class ScrapeFailedError(PipelineFailure):
    """Raised when transport succeeded but the upstream reported a failure."""

    failure_type = FailureType.SCRAPE_ERROR

    def __init__(self, renderer: str, reason: str, details: dict[str, Any] | None = None) -> None:
        self.renderer = renderer
        super().__init__(f"[{renderer}] Scrape failed: {reason}", details)


class RenderTimeoutError(PipelineFailure):
    """Raised when an outbound call exceeds its own deadline."""

    failure_type = FailureType.TIMEOUT

    def __init__(self, renderer: str, timeout_seconds: float) -> None:
        self.renderer = renderer
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"[{renderer}] Timed out after {timeout_seconds}s",
            {"timeout_seconds": timeout_seconds},
        )


class RenderConnectionError(PipelineFailure):
    """Raised on low-level connection failures."""

    failure_type = FailureType.NETWORK_ERROR

    def __init__(self, renderer: str, reason: str) -> None:
        self.renderer = renderer
        super().__init__(f"[{renderer}] Connection failed: {reason}")


# ─── Fetch Safety Errors ─────────────────────────────────────────


class FetchRejectedError(PipelineFailure):
    """Raised when a direct fetch is refused for safety or content reasons."""

    failure_type = FailureType.ERROR

    def __init__(self, url: str, code: str, reason: str) -> None:
        self.url = url
        self.code = code
        super().__init__(f"[{url}] {reason}", {"code": code})
