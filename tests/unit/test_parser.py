"""Unit tests for selector chains and preview parsing."""

from datetime import datetime, timezone

from conftest import make_item, meta

from link_preview.extraction.parser import (
    first_from_sources,
    parse_link_preview,
    pick_fallback_image,
    resolve_image_url,
)
from link_preview.extraction.sources import (
    IMAGE_FALLBACK_SELECTOR,
    SCRAPE_SELECTORS,
    TITLE_SOURCES,
)
from link_preview.models.selectors import SelectorResult, SelectorResultItem, SelectorResultMap
from link_preview.providers.instagram import MEDIA_SELECTOR
from link_preview.providers.structured import STRUCTURED_DATA_SELECTOR


class TestScrapeSelectors:
    """Tests for the combined selector set."""

    def test_selectors_are_unique(self):
        assert len(SCRAPE_SELECTORS) == len(set(SCRAPE_SELECTORS))

    def test_includes_fallbacks_and_provider_selectors(self):
        assert IMAGE_FALLBACK_SELECTOR in SCRAPE_SELECTORS
        assert STRUCTURED_DATA_SELECTOR in SCRAPE_SELECTORS
        assert "a[href$='/stargazers']" in SCRAPE_SELECTORS
        assert "meta[name='imdb:rating']" in SCRAPE_SELECTORS

    def test_chain_order_preserved(self):
        assert SCRAPE_SELECTORS[0] == "meta[property='og:title']"

    def test_includes_instagram_media(self):
        assert MEDIA_SELECTOR in SCRAPE_SELECTORS


class TestFirstFromSources:
    """Tests for first_from_sources."""

    def test_skips_empty_candidates(self):
        selector_map = SelectorResultMap.from_results(
            [
                meta("meta[property='og:title']", "   "),
                SelectorResult(selector="head > title", results=[make_item("Document title")]),
            ]
        )
        assert first_from_sources(selector_map, TITLE_SOURCES) == "Document title"

    def test_nothing_found(self):
        assert first_from_sources(SelectorResultMap(), TITLE_SOURCES) is None


class TestParseLinkPreview:
    """Tests for parse_link_preview."""

    def test_open_graph_fields(self, sample_scrape_results):
        fetched_at = datetime(2024, 5, 1, tzinfo=timezone.utc)
        selector_map = SelectorResultMap.from_results(sample_scrape_results)

        preview = parse_link_preview("https://example.com/posts/1?ref=x", selector_map, fetched_at=fetched_at)

        assert preview.status == "success"
        assert preview.url == "https://example.com/posts/1?ref=x"
        assert preview.title == "Example Article"
        assert preview.description == "An example description."
        assert preview.image_url == "https://example.com/images/cover.jpg"
        assert preview.favicon_url == "https://example.com/favicon.ico"
        assert preview.site_name == "Example Blog"
        assert preview.author == "Ada Lovelace"
        assert preview.publisher == "Example Blog"
        assert preview.final_url == "https://example.com/posts/1"
        assert preview.fetched_at == fetched_at
        assert preview.raw

    def test_title_falls_back_to_document_title(self):
        selector_map = SelectorResultMap.from_results(
            [SelectorResult(selector="head > title", results=[make_item("  Plain\n Title ")])]
        )

        preview = parse_link_preview("https://example.com", selector_map)

        assert preview.title == "Plain Title"
        assert preview.description is None
        assert preview.image_url is None
        assert preview.final_url == "https://example.com"

    def test_canonical_used_when_no_og_url(self):
        selector_map = SelectorResultMap.from_results(
            [SelectorResult(selector="link[rel='canonical']", results=[make_item(href="/canonical")])]
        )

        preview = parse_link_preview("https://example.com/page?utm=1", selector_map)

        assert preview.canonical_url == "https://example.com/canonical"
        assert preview.final_url == "https://example.com/canonical"

    def test_unsafe_urls_dropped(self):
        selector_map = SelectorResultMap.from_results(
            [
                meta("meta[property='og:image']", "javascript:alert(1)"),
                SelectorResult(selector="link[rel='icon']", results=[make_item(href="data:image/png;base64,AA")]),
            ]
        )

        preview = parse_link_preview("https://example.com", selector_map)

        assert preview.image_url is None
        assert preview.favicon_url is None

    def test_image_url_is_proxied(self):
        selector_map = SelectorResultMap.from_results([meta("meta[property='og:image']", "https://cdn.test/a.png")])

        preview = parse_link_preview("https://example.com", selector_map, asset_proxy_origin="https://proxy.test")

        assert preview.image_url.startswith("https://proxy.test/?url=")

    def test_favicon_is_proxied_and_data_uri_kept(self):
        selector_map = SelectorResultMap.from_results(
            [
                SelectorResult(selector="link[rel='icon']", results=[make_item(href="/favicon.ico")]),
                meta("meta[property='og:image']", "data:image/png;base64,AAAA"),
            ]
        )

        preview = parse_link_preview("https://example.com", selector_map, asset_proxy_origin="https://proxy.test")

        assert preview.favicon_url == "https://proxy.test/?url=https%3A%2F%2Fexample.com%2Ffavicon.ico"
        assert preview.image_url == "data:image/png;base64,AAAA"

    def test_relative_urls_resolved_against_served_url(self):
        selector_map = SelectorResultMap.from_results(
            [meta("meta[property='og:image']", "cover.png")],
            final_url="https://www.example.com/blog/",
        )

        preview = parse_link_preview("https://example.com/blog", selector_map)

        assert preview.image_url == "https://www.example.com/blog/cover.png"
        assert preview.final_url == "https://www.example.com/blog/"

    def test_text_is_truncated(self):
        selector_map = SelectorResultMap.from_results([meta("meta[property='og:title']", "t" * 600)])

        preview = parse_link_preview("https://example.com", selector_map)

        assert len(preview.title) == 512


class TestPickFallbackImage:
    """Tests for the largest-image fallback."""

    def test_largest_area_wins(self):
        selector_map = SelectorResultMap.from_results(
            [
                SelectorResult(
                    selector="img",
                    results=[
                        make_item(src="/small.png", width="10", height="10"),
                        make_item(src="/large.png", width="800px", height="600"),
                        make_item(src="/medium.png", width="300", height="300"),
                    ],
                )
            ]
        )

        assert pick_fallback_image(selector_map, "https://example.com") == "https://example.com/large.png"

    def test_measured_dimensions_used(self):
        measured = SelectorResultItem(width=500, height=400, attributes=make_item(src="/measured.png").attributes)
        selector_map = SelectorResultMap.from_results(
            [SelectorResult(selector="img", results=[make_item(src="/first.png"), measured])]
        )

        assert pick_fallback_image(selector_map, "https://example.com") == "https://example.com/measured.png"

    def test_first_usable_image_without_dimensions(self):
        selector_map = SelectorResultMap.from_results(
            [
                SelectorResult(
                    selector="img",
                    results=[
                        make_item(src="javascript:void(0)"),
                        make_item(src="/a.png"),
                        make_item(src="/b.png"),
                    ],
                )
            ]
        )

        assert pick_fallback_image(selector_map, "https://example.com") == "https://example.com/a.png"

    def test_parse_uses_fallback(self):
        selector_map = SelectorResultMap.from_results(
            [SelectorResult(selector="img", results=[make_item(src="/only.png")])]
        )

        preview = parse_link_preview("https://example.com", selector_map)

        assert preview.image_url == "https://example.com/only.png"

    def test_no_images(self):
        assert pick_fallback_image(SelectorResultMap(), "https://example.com") is None


class TestInstagramPrimaryImage:
    """Tests for the Instagram post media override."""

    @staticmethod
    def media(src: str, width: float, height: float) -> SelectorResultItem:
        item = make_item(src=src)
        return item.model_copy(update={"width": width, "height": height})

    def test_post_media_replaces_og_image(self):
        selector_map = SelectorResultMap.from_results(
            [
                meta("meta[property='og:image']", "https://cdn.instagram.com/thumb.jpg"),
                SelectorResult(
                    selector=MEDIA_SELECTOR,
                    results=[
                        self.media("https://cdn.instagram.com/avatar.jpg", 32, 32),
                        self.media("https://cdn.instagram.com/post.jpg", 1080, 1080),
                        self.media("https://cdn.instagram.com/other.jpg", 640, 480),
                    ],
                ),
            ]
        )

        assert resolve_image_url("https://www.instagram.com/p/abc/", selector_map) == (
            "https://cdn.instagram.com/post.jpg"
        )

    def test_small_media_keeps_og_image(self):
        selector_map = SelectorResultMap.from_results(
            [
                meta("meta[property='og:image']", "https://cdn.instagram.com/thumb.jpg"),
                SelectorResult(
                    selector=MEDIA_SELECTOR,
                    results=[self.media("https://cdn.instagram.com/small.jpg", 300, 900)],
                ),
            ]
        )

        assert resolve_image_url("https://instagram.com/p/abc/", selector_map) == (
            "https://cdn.instagram.com/thumb.jpg"
        )

    def test_other_hosts_ignore_media(self):
        selector_map = SelectorResultMap.from_results(
            [
                meta("meta[property='og:image']", "https://example.com/og.jpg"),
                SelectorResult(
                    selector=MEDIA_SELECTOR,
                    results=[self.media("https://example.com/big.jpg", 2000, 2000)],
                ),
            ]
        )

        assert resolve_image_url("https://notinstagram.com/post", selector_map) == "https://example.com/og.jpg"
