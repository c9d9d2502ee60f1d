"""Integration tests for the direct HTML fetch renderer."""

import httpx
import pytest
import respx
from httpx import Response

from link_preview.exceptions import (
    FetchRejectedError,
    RenderHTTPError,
    RenderRateLimitError,
    RenderTimeoutError,
)
from link_preview.extraction import SCRAPE_SELECTORS, parse_link_preview
from link_preview.scrapers.html_fetch import HtmlFetchRenderer, image_content_type, pin_to_address, select_elements

PAGE_URL = "https://example.com/page"
PUBLIC_IP = "93.184.216.34"
PINNED_PAGE_URL = f"https://{PUBLIC_IP}/page"


@pytest.fixture
def public_dns(monkeypatch):
    """Resolve every host to a public address and record the lookups."""
    resolved: list[str] = []

    async def fake_resolve(hostname, port):
        resolved.append(hostname)
        return [PUBLIC_IP]

    monkeypatch.setattr("link_preview.scrapers.html_fetch.resolve_host", fake_resolve)
    return resolved


@pytest.fixture
def renderer():
    return HtmlFetchRenderer(timeout_seconds=5, max_bytes=10_000, max_redirects=2, user_agent="TestBot/1.0")


class TestSelectElements:
    """Tests for local selector evaluation."""

    def test_matches_and_attributes(self, sample_html_content):
        selector_map = select_elements(
            sample_html_content,
            ["head > title", "link[rel='icon']", "img", "meta[name='author']"],
            final_url=PAGE_URL,
        )

        assert selector_map.text("head > title") == "Test Page Title"
        assert selector_map.attribute("link[rel='icon']", "rel") == "icon"
        assert selector_map.attribute("link[rel='icon']", "href") == "/favicon.png"
        assert len(selector_map.items("img")) == 2
        assert "meta[name='author']" not in selector_map
        assert selector_map.final_url == PAGE_URL

    def test_invalid_selector_skipped(self, sample_html_content):
        selector_map = select_elements(sample_html_content, ["[[[", "h1"])

        assert selector_map.selectors == ["h1"]

    def test_full_selector_set_parses(self, sample_html_content):
        selector_map = select_elements(sample_html_content, SCRAPE_SELECTORS, final_url=PAGE_URL)

        preview = parse_link_preview(PAGE_URL, selector_map)

        assert preview.title == "Test Page Title"
        assert preview.description == "Test page description"
        assert preview.site_name == "Test Site"
        assert preview.favicon_url == "https://example.com/favicon.png"
        assert preview.image_url == "https://example.com/large.png"


class TestPinToAddress:
    """Tests for addressing requests at a checked IP."""

    def test_https_keeps_host_header_and_server_name(self):
        target, headers, extensions = pin_to_address("https://example.com:8443/a?b=1", PUBLIC_IP)

        assert str(target) == f"https://{PUBLIC_IP}:8443/a?b=1"
        assert headers == {"Host": "example.com:8443"}
        assert extensions == {"sni_hostname": "example.com"}

    def test_http_has_no_server_name(self):
        target, headers, extensions = pin_to_address("http://example.com/", PUBLIC_IP)

        assert target.host == PUBLIC_IP
        assert headers == {"Host": "example.com"}
        assert extensions == {}

    def test_ipv6_address(self):
        target, _, _ = pin_to_address("https://example.com/", "2606:2800:220:1::1")

        assert target.host == "2606:2800:220:1::1"


class TestImageContentType:
    """Tests for accepting image responses."""

    @pytest.mark.parametrize(
        ("declared", "url", "expected"),
        [
            ("image/webp", "https://cdn.example.com/x", "image/webp"),
            ("application/octet-stream", "https://cdn.example.com/a.JPG?w=1", "image/jpeg"),
            ("", "https://cdn.example.com/a.png#frag", "image/png"),
            ("text/html", "https://cdn.example.com/page", None),
        ],
    )
    def test_declared_or_guessed(self, declared, url, expected):
        assert image_content_type(declared, url) == expected


class TestHtmlFetchRenderer:
    """Tests for HtmlFetchRenderer with mocked HTTP and DNS."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_scrape_success(self, renderer, public_dns, sample_html_content):
        route = respx.get(PINNED_PAGE_URL).mock(
            return_value=Response(
                200,
                text=sample_html_content,
                headers={"Content-Type": "text/html; charset=utf-8"},
            )
        )

        selector_map = await renderer.scrape(PAGE_URL, ["head > title"])

        assert selector_map.text("head > title") == "Test Page Title"
        assert selector_map.final_url == PAGE_URL
        assert route.calls.last.request.headers["User-Agent"] == "TestBot/1.0"
        assert route.calls.last.request.headers["Host"] == "example.com"
        assert public_dns == ["example.com"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_connects_to_the_checked_address(self, renderer, monkeypatch):
        lookups: list[str] = []

        async def rebinding_resolve(hostname, port):
            lookups.append(hostname)
            return [PUBLIC_IP] if len(lookups) == 1 else ["127.0.0.1"]

        monkeypatch.setattr("link_preview.scrapers.html_fetch.resolve_host", rebinding_resolve)
        route = respx.get(PINNED_PAGE_URL).mock(
            return_value=Response(200, text="<title>Pinned</title>", headers={"Content-Type": "text/html"})
        )

        final_url, body, _ = await renderer.fetch(PAGE_URL)

        assert final_url == PAGE_URL
        assert b"Pinned" in body
        assert lookups == ["example.com"]
        request = route.calls.last.request
        assert request.url.host == PUBLIC_IP
        assert request.headers["Host"] == "example.com"
        assert request.extensions["sni_hostname"] == "example.com"

    @pytest.mark.asyncio
    @respx.mock
    async def test_follows_redirects_and_checks_each_hop(self, renderer, public_dns):
        respx.get(PINNED_PAGE_URL).mock(
            return_value=Response(301, headers={"Location": "https://www.example.org/final"})
        )
        final = respx.get(f"https://{PUBLIC_IP}/final").mock(
            return_value=Response(200, text="<title>Final</title>", headers={"Content-Type": "text/html"})
        )

        final_url, body, _ = await renderer.fetch(PAGE_URL)

        assert final_url == "https://www.example.org/final"
        assert b"Final" in body
        assert public_dns == ["example.com", "www.example.org"]
        assert final.calls.last.request.headers["Host"] == "www.example.org"

    @pytest.mark.asyncio
    @respx.mock
    async def test_redirect_to_private_address_rejected(self, renderer, monkeypatch):
        async def fake_resolve(hostname, port):
            return ["10.0.0.5"] if hostname == "internal.example" else [PUBLIC_IP]

        monkeypatch.setattr("link_preview.scrapers.html_fetch.resolve_host", fake_resolve)
        respx.get(PINNED_PAGE_URL).mock(
            return_value=Response(302, headers={"Location": "http://internal.example/admin"})
        )
        internal = respx.get("http://10.0.0.5/admin")

        with pytest.raises(FetchRejectedError) as exc_info:
            await renderer.fetch(PAGE_URL)

        assert exc_info.value.code == "blocked_address"
        assert internal.called is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("url", "code"),
        [
            ("ftp://example.com/file", "blocked_scheme"),
            ("http://example.com:99999/", "blocked_scheme"),
            ("http://localhost:8080/", "blocked_address"),
            ("http://127.0.0.1/", "blocked_address"),
            ("http://[::1]/", "blocked_address"),
        ],
    )
    async def test_unsafe_targets_rejected(self, renderer, public_dns, url, code):
        with pytest.raises(FetchRejectedError) as exc_info:
            await renderer.fetch(url)

        assert exc_info.value.code == code
        assert exc_info.value.failure_type.value == "error"

    @pytest.mark.asyncio
    async def test_dns_failure(self, renderer, monkeypatch):
        async def failing_resolve(hostname, port):
            raise OSError("Name or service not known")

        monkeypatch.setattr("link_preview.scrapers.html_fetch.resolve_host", failing_resolve)

        with pytest.raises(FetchRejectedError) as exc_info:
            await renderer.fetch("https://no-such-host.example")

        assert exc_info.value.code == "dns_error"

    @pytest.mark.asyncio
    @respx.mock
    async def test_too_many_redirects(self, renderer, public_dns):
        respx.get(PINNED_PAGE_URL).mock(return_value=Response(302, headers={"Location": "/page"}))

        with pytest.raises(FetchRejectedError) as exc_info:
            await renderer.fetch(PAGE_URL)

        assert exc_info.value.code == "too_many_redirects"
        assert len(public_dns) == 3

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_html_rejected(self, renderer, public_dns):
        respx.get(PINNED_PAGE_URL).mock(
            return_value=Response(200, content=b"%PDF", headers={"Content-Type": "application/pdf"})
        )

        with pytest.raises(FetchRejectedError) as exc_info:
            await renderer.fetch(PAGE_URL)

        assert exc_info.value.code == "invalid_content_type"

    @pytest.mark.asyncio
    @respx.mock
    async def test_body_size_cap(self, renderer, public_dns):
        respx.get(PINNED_PAGE_URL).mock(
            return_value=Response(200, content=b"<p>" + b"x" * 20_000, headers={"Content-Type": "text/html"})
        )

        with pytest.raises(FetchRejectedError) as exc_info:
            await renderer.fetch(PAGE_URL)

        assert exc_info.value.code == "response_too_large"

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_errors(self, renderer, public_dns):
        respx.get(PINNED_PAGE_URL).mock(return_value=Response(404))
        respx.get(f"https://{PUBLIC_IP}/busy").mock(return_value=Response(429, headers={"Retry-After": "7"}))

        with pytest.raises(RenderHTTPError) as exc_info:
            await renderer.fetch(PAGE_URL)
        assert exc_info.value.status_code == 404

        with pytest.raises(RenderRateLimitError) as rate_info:
            await renderer.fetch("https://example.com/busy")
        assert rate_info.value.retry_after == 7.0

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout(self, renderer, public_dns):
        respx.get(PINNED_PAGE_URL).mock(side_effect=httpx.ConnectTimeout("slow"))

        with pytest.raises(RenderTimeoutError):
            await renderer.fetch(PAGE_URL)


class TestFetchImage:
    """Tests for HtmlFetchRenderer.fetch_image."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_image_fetched(self, renderer, public_dns):
        respx.get(f"https://{PUBLIC_IP}/cover.png").mock(
            return_value=Response(200, content=b"\x89PNG", headers={"Content-Type": "image/png"})
        )

        image = await renderer.fetch_image("https://example.com/cover.png")

        assert image.url == "https://example.com/cover.png"
        assert image.body == b"\x89PNG"
        assert image.content_type == "image/png"

    @pytest.mark.asyncio
    @respx.mock
    async def test_html_rejected(self, renderer, public_dns):
        respx.get(f"https://{PUBLIC_IP}/cover").mock(
            return_value=Response(200, text="<html></html>", headers={"Content-Type": "text/html"})
        )

        with pytest.raises(FetchRejectedError) as exc_info:
            await renderer.fetch_image("https://example.com/cover")

        assert exc_info.value.code == "invalid_content_type"

    @pytest.mark.asyncio
    @respx.mock
    async def test_size_cap(self, renderer, public_dns):
        respx.get(f"https://{PUBLIC_IP}/big.jpg").mock(
            return_value=Response(200, content=b"x" * 200, headers={"Content-Type": "image/jpeg"})
        )

        with pytest.raises(FetchRejectedError) as exc_info:
            await renderer.fetch_image("https://example.com/big.jpg", max_bytes=100)

        assert exc_info.value.code == "response_too_large"

    @pytest.mark.asyncio
    async def test_private_image_host_rejected(self, renderer, public_dns):
        with pytest.raises(FetchRejectedError) as exc_info:
            await renderer.fetch_image("http://127.0.0.1/logo.png")

        assert exc_info.value.code == "blocked_address"
