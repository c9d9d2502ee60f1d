"""Shared test fixtures for the link preview pipeline test suite."""

import io
from typing import Any

import pytest
import respx
from PIL import Image

from link_preview.models.card import Card, CardMetadata
from link_preview.models.preview import LinkPreview
from link_preview.models.selectors import SelectorAttribute, SelectorResult, SelectorResultItem
from link_preview.scrapers.html_fetch import FetchedResource

# ─── Pytest Configuration ────────────────────────────────────────


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no I/O)")
    config.addinivalue_line("markers", "integration: Integration tests")


# ─── Async Backend ───────────────────────────────────────────────


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


# ─── Settings Fixtures ───────────────────────────────────────────


@pytest.fixture
def test_settings():
    """Settings with no rendering credentials."""
    from link_preview.config import Settings

    return Settings(
        debug=True,
        log_level="DEBUG",
        cloudflare_account_id=None,
        cloudflare_api_token=None,
    )


@pytest.fixture
def mock_settings():
    """Settings with mock rendering credentials."""
    from link_preview.config import Settings

    return Settings(
        debug=True,
        cloudflare_account_id="test-account",
        cloudflare_api_token="test-token",
    )


# ─── HTTP Client Fixtures ────────────────────────────────────────


@pytest.fixture
def mock_http():
    """RESPX mock router for HTTP mocking."""
    with respx.mock(assert_all_called=False) as router:
        yield router


# ─── Sample Data Fixtures ────────────────────────────────────────


def make_item(text: str | None = None, **attributes: str) -> SelectorResultItem:
    """Selector result item with the given text and attributes."""
    return SelectorResultItem(
        text=text,
        attributes=[SelectorAttribute(name=name, value=value) for name, value in attributes.items()] or None,
    )


def meta(selector: str, content: str) -> SelectorResult:
    """Selector result for a single meta element."""
    return SelectorResult(selector=selector, results=[make_item(content=content)])


@pytest.fixture
def sample_scrape_results() -> list[SelectorResult]:
    """Rendering service results for a typical article page."""
    return [
        meta("meta[property='og:title']", "  Example   Article "),
        meta("meta[property='og:description']", "An example description."),
        meta("meta[property='og:image']", "/images/cover.jpg"),
        meta("meta[property='og:site_name']", "Example Blog"),
        meta("meta[property='og:url']", "https://example.com/posts/1"),
        meta("meta[name='author']", "Ada Lovelace"),
        SelectorResult(
            selector="link[rel='icon']",
            results=[make_item(href="/favicon.ico")],
        ),
        SelectorResult(
            selector="head > title",
            results=[make_item("Example Article | Example Blog")],
        ),
    ]


@pytest.fixture
def sample_html_content() -> str:
    """Sample HTML page carrying Open Graph, JSON-LD and images."""
    return """
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <title>Test Page Title</title>
        <meta name="description" content="Test page description">
        <meta property="og:site_name" content="Test Site">
        <link rel="icon" href="/favicon.png">
        <script type="application/ld+json">
        {"@context": "https://schema.org", "@type": "Recipe", "name": "Pancakes",
         "recipeYield": "4 servings", "prepTime": "PT10M", "cookTime": "PT15M",
         "recipeIngredient": ["flour", "milk", "eggs"]}
        </script>
    </head>
    <body>
        <h1>Welcome</h1>
        <img src="/small.png" width="10" height="10">
        <img src="/large.png" width="800" height="600">
    </body>
    </html>
    """


def link_card(
    card_id: str = "card-1",
    url: str | None = "example.com/posts/1",
    preview: LinkPreview | None = None,
    card_type: str = "link",
) -> Card:
    """Card factory used by pipeline tests."""
    return Card(
        id=card_id,
        type=card_type,
        url=url,
        metadata=CardMetadata(link_preview=preview),
    )


class FakeRenderer:
    """Renderer double returning fixed results or raising a fixed failure."""

    def __init__(self, name="cloudflare", result=None, error=None, configured=True, image=None):
        self.name = name
        self.is_configured = configured
        self.result = result
        self.error = error
        self.image = image
        self.calls: list[tuple[str, tuple[str, ...]]] = []
        self.screenshot_calls: list[str] = []

    async def scrape(self, url, selectors):
        self.calls.append((url, tuple(selectors)))
        if self.error is not None:
            raise self.error
        return self.result

    async def screenshot(self, url):
        self.screenshot_calls.append(url)
        if self.error is not None:
            raise self.error
        return self.image

    async def close(self):
        pass


def png_bytes(width: int = 1200, height: int = 630) -> bytes:
    """Encoded PNG of the given size."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (200, 80, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeImageFetcher:
    """Image fetcher double returning a fixed body or raising a fixed failure."""

    def __init__(self, body: bytes = b"", content_type: str = "image/png", error=None):
        self.body = body
        self.content_type = content_type
        self.error = error
        self.calls: list[str] = []

    async def fetch_image(self, url, max_bytes=None):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return FetchedResource(url=url, body=self.body, content_type=self.content_type)
