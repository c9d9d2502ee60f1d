"""Cloudflare Browser Rendering client (scrape and screenshot endpoints)."""

import base64
import binascii
import time
from collections.abc import Sequence
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field, ValidationError

from link_preview.config import settings
from link_preview.exceptions import (
    ConfigurationError,
    RenderConnectionError,
    RenderHTTPError,
    RenderRateLimitError,
    RenderSessionError,
    RenderTimeoutError,
    ScrapeFailedError,
)
from link_preview.models.selectors import SelectorResult, SelectorResultMap
from link_preview.scrapers.base import ScreenshotImage, parse_retry_after

logger = structlog.get_logger(__name__)

CLOUDFLARE_RATE_LIMIT_CODE = 2001
CLOUDFLARE_SESSION_CODE = 2000
ERROR_BODY_LIMIT = 2000


class CloudflareError(BaseModel):
    code: int | None = None
    message: str | None = None

    model_config = {"extra": "ignore"}


class CloudflareScrapeResponse(BaseModel):
    success: bool = False
    result: list[SelectorResult] | None = None
    errors: list[CloudflareError] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class CloudflareRenderer:
    """
    Cloudflare Browser Rendering renderer.

    Uses the /scrape endpoint to evaluate every selector in one headless
    browser session, and the /screenshot endpoint for preview images.

    https://developers.cloudflare.com/browser-rendering/
    """

    def __init__(
        self,
        account_id: str | None = None,
        api_token: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        navigation_timeout_ms: int | None = None,
        screenshot_timeout_seconds: float | None = None,
        viewport: tuple[int, int] | None = None,
        screenshot_quality: int | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the Cloudflare renderer.

        Args:
            account_id: Cloudflare account id
            api_token: API token with Browser Rendering permission
            base_url: API base URL
            timeout_seconds: Deadline for a scrape call
            navigation_timeout_ms: Page navigation timeout inside the browser
            screenshot_timeout_seconds: Deadline for a screenshot call
            viewport: Screenshot viewport (width, height)
            screenshot_quality: JPEG quality
            http_client: Shared HTTP client (optional)
        """
        self._account_id = account_id
        self._api_token = api_token
        self._base_url = (base_url or settings.cloudflare_api_base_url).rstrip("/")
        self._timeout = timeout_seconds or settings.scrape_timeout_seconds
        self._navigation_timeout_ms = navigation_timeout_ms or settings.navigation_timeout_ms
        self._screenshot_timeout = screenshot_timeout_seconds or settings.screenshot_timeout_seconds
        self._viewport = viewport or (
            settings.screenshot_viewport_width,
            settings.screenshot_viewport_height,
        )
        self._quality = screenshot_quality or settings.screenshot_quality
        self._http_client = http_client
        self._owns_client = http_client is None

    @property
    def name(self) -> str:
        """Return the renderer name."""
        return "cloudflare"

    @property
    def is_configured(self) -> bool:
        """Return True if account id and token are set."""
        return bool(self._account_id and self._api_token)

    def _endpoint(self, action: str) -> str:
        return f"{self._base_url}/accounts/{self._account_id}/browser-rendering/{action}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_token}",
            "Content-Type": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(
            timeout=float(self._timeout),
            verify=settings.get_ssl_context(),
        )

    async def _post(self, action: str, payload: dict[str, Any], timeout: float, **params: str) -> httpx.Response:
        """POST to an endpoint, translating transport errors into pipeline failures."""
        if not self.is_configured:
            raise ConfigurationError(self.name, "Cloudflare Browser Rendering credentials are not configured")

        client = await self._get_client()
        should_close = self._owns_client and self._http_client is None

        try:
            return await client.post(
                self._endpoint(action),
                params=params or None,
                json=payload,
                headers=self._headers(),
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise RenderTimeoutError(self.name, timeout) from e
        except httpx.RequestError as e:
            raise RenderConnectionError(self.name, str(e) or e.__class__.__name__) from e
        finally:
            if should_close:
                await client.aclose()

    def _raise_for_error_response(self, response: httpx.Response) -> None:
        """Classify a non-2xx response."""
        body = response.text or ""
        errors: list[CloudflareError] = []
        try:
            parsed = CloudflareScrapeResponse.model_validate_json(body) if body else None
        except ValidationError:
            parsed = None
        if parsed is not None:
            errors = parsed.errors

        primary = errors[0] if errors else CloudflareError()
        message = primary.message or f"Cloudflare Browser Rendering returned {response.status_code}"
        details: dict[str, Any] = {
            "errors": [error.model_dump() for error in errors] if errors else body[:ERROR_BODY_LIMIT] or None
        }

        if response.status_code == 429 or primary.code == CLOUDFLARE_RATE_LIMIT_CODE:
            raise RenderRateLimitError(
                self.name,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
                details=details,
            )

        if response.status_code >= 500 and (
            primary.code == CLOUDFLARE_SESSION_CODE or "existing session" in (primary.message or "").lower()
        ):
            raise RenderSessionError(self.name, response.status_code, message, details)

        raise RenderHTTPError(self.name, response.status_code, message, details)

    async def scrape(self, url: str, selectors: Sequence[str]) -> SelectorResultMap:
        """
        Evaluate selectors against a rendered page.

        Args:
            url: Normalized URL to render
            selectors: CSS selectors to evaluate

        Returns:
            SelectorResultMap with one entry per selector that matched

        Raises:
            PipelineFailure: classified failure (rate limit, session, HTTP,
                scrape, timeout, network or configuration)
        """
        start_time = time.monotonic()
        payload = {
            "url": url,
            "elements": [{"selector": selector} for selector in selectors],
            "gotoOptions": {
                "waitUntil": "networkidle0",
                "timeout": self._navigation_timeout_ms,
            },
        }

        logger.debug("cloudflare_scrape_request", url=url, selector_count=len(selectors))
        response = await self._post("scrape", payload, self._timeout, cacheTTL="0")
        elapsed_ms = (time.monotonic() - start_time) * 1000

        logger.info(
            "cloudflare_scrape_response",
            url=url,
            status_code=response.status_code,
            elapsed_ms=elapsed_ms,
        )

        if not response.is_success:
            self._raise_for_error_response(response)

        try:
            data = CloudflareScrapeResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise ScrapeFailedError(self.name, "Malformed scrape response", {"error": str(e)}) from e

        if not data.success:
            message = "; ".join(error.message for error in data.errors if error.message) or "Unknown scrape error"
            raise ScrapeFailedError(
                self.name,
                message,
                {"errors": [error.model_dump() for error in data.errors]},
            )

        return SelectorResultMap.from_results(data.result or [])

    async def screenshot(self, url: str) -> ScreenshotImage:
        """
        Capture a JPEG screenshot of a page.

        Accepts either raw image bytes or a JSON envelope carrying base64 data.

        Raises:
            PipelineFailure: classified failure
        """
        width, height = self._viewport
        payload = {
            "url": url,
            "gotoOptions": {
                "waitUntil": "networkidle0",
                "timeout": self._navigation_timeout_ms,
            },
            "viewport": {"width": width, "height": height},
            "screenshotOptions": {"type": "jpeg", "quality": self._quality},
        }

        response = await self._post("screenshot", payload, self._screenshot_timeout)

        if not response.is_success:
            self._raise_for_error_response(response)

        content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        if content_type.startswith("image/"):
            if not response.content:
                raise ScrapeFailedError(self.name, "Screenshot response missing image data")
            return ScreenshotImage(data=response.content, content_type=content_type)

        return self._decode_screenshot_envelope(response)

    def _decode_screenshot_envelope(self, response: httpx.Response) -> ScreenshotImage:
        try:
            data = response.json()
        except ValueError as e:
            raise ScrapeFailedError(self.name, "Screenshot response is neither an image nor JSON") from e

        if not isinstance(data, dict):
            raise ScrapeFailedError(self.name, "Screenshot response missing payload")
        if data.get("success") is False:
            errors = data.get("errors") or []
            message = "; ".join(str(error.get("message")) for error in errors if isinstance(error, dict))
            raise ScrapeFailedError(self.name, message or "Screenshot API reported failure", {"errors": errors})

        result = data.get("result") or {}
        encoded: Any = None
        content_type = "image/jpeg"
        if isinstance(result, dict):
            encoded = result.get("screenshot") or result.get("image") or result.get("png")
            if isinstance(encoded, dict):
                content_type = encoded.get("mimeType") or content_type
                encoded = encoded.get("data")
            elif isinstance(result.get("type"), str):
                content_type = result["type"] if "/" in result["type"] else f"image/{result['type']}"
        elif isinstance(result, str):
            encoded = result

        if not isinstance(encoded, str) or not encoded:
            raise ScrapeFailedError(self.name, "Screenshot response missing image data")

        try:
            image = base64.b64decode(encoded, validate=False)
        except (binascii.Error, ValueError) as e:
            raise ScrapeFailedError(self.name, "Screenshot image is not valid base64") from e
        if not image:
            raise ScrapeFailedError(self.name, "Screenshot response missing image data")

        return ScreenshotImage(data=image, content_type=content_type)

    async def close(self) -> None:
        """Close the renderer and release resources."""
        # The shared client is owned by the application lifespan
        pass

