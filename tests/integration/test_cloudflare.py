"""Integration tests for the Cloudflare Browser Rendering client."""

import base64
import json

import httpx
import pytest
import respx
from httpx import Response

from link_preview.exceptions import (
    ConfigurationError,
    RenderConnectionError,
    RenderHTTPError,
    RenderRateLimitError,
    RenderSessionError,
    RenderTimeoutError,
    ScrapeFailedError,
)
from link_preview.scrapers.cloudflare import CloudflareRenderer

BASE = "https://api.cloudflare.com/client/v4/accounts/test-account/browser-rendering"
SCRAPE_URL = f"{BASE}/scrape"
SCREENSHOT_URL = f"{BASE}/screenshot"


@pytest.fixture
def sample_cloudflare_response():
    """Scrape endpoint payload with two matched selectors."""
    return {
        "success": True,
        "result": [
            {
                "selector": "meta[property='og:title']",
                "results": [
                    {
                        "text": "",
                        "html": "",
                        "attributes": [
                            {"name": "property", "value": "og:title"},
                            {"name": "content", "value": "Example Article"},
                        ],
                        "width": 0,
                        "height": 0,
                        "top": 0,
                        "left": 0,
                    }
                ],
            },
            {"selector": "head > title", "results": [{"text": "Example | Blog", "html": "Example | Blog"}]},
            {"selector": "meta[name='author']", "results": []},
        ],
        "errors": [],
    }


class TestCloudflareScrape:
    """Tests for the scrape endpoint with mocked HTTP."""

    @pytest.fixture
    def renderer(self, mock_settings):
        """Cloudflare renderer instance."""
        return CloudflareRenderer(
            account_id=mock_settings.cloudflare_account_id,
            api_token=mock_settings.cloudflare_api_token,
        )

    @pytest.mark.asyncio
    @respx.mock
    async def test_scrape_success(self, renderer, sample_cloudflare_response):
        """Selector results are keyed by selector; empty results stay empty."""
        route = respx.post(SCRAPE_URL).mock(return_value=Response(200, json=sample_cloudflare_response))

        selector_map = await renderer.scrape(
            "https://example.com/posts/1",
            ["meta[property='og:title']", "head > title", "meta[name='author']"],
        )

        assert selector_map.attribute("meta[property='og:title']", "content") == "Example Article"
        assert selector_map.text("head > title") == "Example | Blog"
        assert selector_map.first("meta[name='author']") is None

        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer test-token"
        assert request.url.params["cacheTTL"] == "0"
        body = json.loads(request.content)
        assert body["url"] == "https://example.com/posts/1"
        assert body["elements"][1] == {"selector": "head > title"}
        assert body["gotoOptions"] == {"waitUntil": "networkidle0", "timeout": 30000}

    @pytest.mark.asyncio
    @respx.mock
    async def test_rate_limit_with_retry_after(self, renderer):
        respx.post(SCRAPE_URL).mock(
            return_value=Response(
                429,
                json={"success": False, "errors": [{"code": 2001, "message": "Rate limit exceeded"}]},
                headers={"Retry-After": "10"},
            )
        )

        with pytest.raises(RenderRateLimitError) as exc_info:
            await renderer.scrape("https://example.com", ["title"])

        assert exc_info.value.retry_after == 10.0
        assert exc_info.value.details["errors"] == [{"code": 2001, "message": "Rate limit exceeded"}]

    @pytest.mark.asyncio
    @respx.mock
    async def test_rate_limit_code_without_429(self, renderer):
        respx.post(SCRAPE_URL).mock(
            return_value=Response(
                400,
                json={"success": False, "errors": [{"code": 2001, "message": "Too many requests"}]},
            )
        )

        with pytest.raises(RenderRateLimitError) as exc_info:
            await renderer.scrape("https://example.com", ["title"])

        assert exc_info.value.retry_after is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_session_error(self, renderer):
        respx.post(SCRAPE_URL).mock(
            return_value=Response(
                500,
                json={
                    "success": False,
                    "result": None,
                    "errors": [{"code": 2000, "message": "Unable to attach to existing session"}],
                },
            )
        )

        with pytest.raises(RenderSessionError) as exc_info:
            await renderer.scrape("https://example.com", ["title"])

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_error_keeps_truncated_body(self, renderer):
        respx.post(SCRAPE_URL).mock(return_value=Response(404, text="x" * 5000))

        with pytest.raises(RenderHTTPError) as exc_info:
            await renderer.scrape("https://example.com", ["title"])

        assert not isinstance(exc_info.value, RenderSessionError)
        assert exc_info.value.status_code == 404
        assert len(exc_info.value.details["errors"]) == 2000

    @pytest.mark.asyncio
    @respx.mock
    async def test_success_false_is_scrape_error(self, renderer):
        respx.post(SCRAPE_URL).mock(
            return_value=Response(
                200,
                json={
                    "success": False,
                    "result": [],
                    "errors": [{"code": 5000, "message": "Navigation failed"}, {"message": "page crashed"}],
                },
            )
        )

        with pytest.raises(ScrapeFailedError) as exc_info:
            await renderer.scrape("https://example.com", ["title"])

        assert "Navigation failed; page crashed" in exc_info.value.message

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_body_is_scrape_error(self, renderer):
        respx.post(SCRAPE_URL).mock(return_value=Response(200, text="<html>not json</html>"))

        with pytest.raises(ScrapeFailedError):
            await renderer.scrape("https://example.com", ["title"])

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout(self, renderer):
        respx.post(SCRAPE_URL).mock(side_effect=httpx.ReadTimeout("timed out"))

        with pytest.raises(RenderTimeoutError):
            await renderer.scrape("https://example.com", ["title"])

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_error(self, renderer):
        respx.post(SCRAPE_URL).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(RenderConnectionError):
            await renderer.scrape("https://example.com", ["title"])

    @pytest.mark.asyncio
    async def test_missing_credentials(self, test_settings):
        renderer = CloudflareRenderer(
            account_id=test_settings.cloudflare_account_id,
            api_token=test_settings.cloudflare_api_token,
        )

        assert renderer.is_configured is False
        with pytest.raises(ConfigurationError):
            await renderer.scrape("https://example.com", ["title"])


class TestCloudflareScreenshot:
    """Tests for the screenshot endpoint with mocked HTTP."""

    @pytest.fixture
    def renderer(self, mock_settings):
        return CloudflareRenderer(
            account_id=mock_settings.cloudflare_account_id,
            api_token=mock_settings.cloudflare_api_token,
        )

    @pytest.mark.asyncio
    @respx.mock
    async def test_raw_image_response(self, renderer):
        route = respx.post(SCREENSHOT_URL).mock(
            return_value=Response(200, content=b"\xff\xd8\xff", headers={"Content-Type": "image/jpeg"})
        )

        image = await renderer.screenshot("https://example.com")

        assert image.data == b"\xff\xd8\xff"
        assert image.content_type == "image/jpeg"
        body = json.loads(route.calls.last.request.content)
        assert body["viewport"] == {"width": 1280, "height": 720}
        assert body["screenshotOptions"] == {"type": "jpeg", "quality": 80}

    @pytest.mark.asyncio
    @respx.mock
    async def test_json_envelope(self, renderer):
        encoded = base64.b64encode(b"png-bytes").decode("ascii")
        respx.post(SCREENSHOT_URL).mock(
            return_value=Response(
                200,
                json={"success": True, "result": {"screenshot": {"data": encoded, "mimeType": "image/png"}}},
            )
        )

        image = await renderer.screenshot("https://example.com")

        assert image.data == b"png-bytes"
        assert image.content_type == "image/png"

    @pytest.mark.asyncio
    @respx.mock
    async def test_envelope_without_image(self, renderer):
        respx.post(SCREENSHOT_URL).mock(return_value=Response(200, json={"success": True, "result": {}}))

        with pytest.raises(ScrapeFailedError) as exc_info:
            await renderer.screenshot("https://example.com")

        assert "missing image data" in exc_info.value.message

    @pytest.mark.asyncio
    @respx.mock
    async def test_rate_limited(self, renderer):
        respx.post(SCREENSHOT_URL).mock(return_value=Response(429, headers={"Retry-After": "3"}))

        with pytest.raises(RenderRateLimitError) as exc_info:
            await renderer.screenshot("https://example.com")

        assert exc_info.value.retry_after == 3.0
