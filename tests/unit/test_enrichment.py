"""Unit tests for category metadata assembly."""

import json

from conftest import make_item, meta

from link_preview.models.category import LinkClassification
from link_preview.models.preview import LinkPreview
from link_preview.models.selectors import SelectorResult, SelectorResultItem, SelectorResultMap
from link_preview.pipeline.enrichment import build_category_metadata
from link_preview.providers.domains import classify_url
from link_preview.providers.github import LANGUAGE_SELECTOR, STARS_SELECTOR
from link_preview.providers.structured import STRUCTURED_DATA_SELECTOR

GITHUB_URL = "https://github.com/encode/httpx"


def github_map() -> SelectorResultMap:
    return SelectorResultMap.from_results(
        [
            SelectorResult(selector=STARS_SELECTOR, results=[make_item("12.3k")]),
            SelectorResult(selector=LANGUAGE_SELECTOR, results=[make_item("Python")]),
        ]
    )


class TestBuildCategoryMetadata:
    """Tests for build_category_metadata."""

    def test_provider_facts_and_preview_image(self):
        preview = LinkPreview(status="success", url=GITHUB_URL, image_url="https://example.com/og.png")

        category = build_category_metadata(GITHUB_URL, preview, github_map(), classify_url(GITHUB_URL))

        assert category.category == "software"
        assert category.detected_provider == "github"
        assert category.source_url == GITHUB_URL
        assert category.image_url == "https://example.com/og.png"
        assert [(fact.label, fact.value) for fact in category.facts] == [
            ("Stars", "12,300"),
            ("Language", "Python"),
        ]
        assert category.raw["provider"]["name"] == "github"
        assert category.raw["provider"]["stars"] == "12,300"

    def test_category_gate_blocks_confident_mismatch(self):
        classification = LinkClassification(
            category="book", confidence=0.9, provider="github", reason="domain_rule"
        )

        category = build_category_metadata(GITHUB_URL, None, github_map(), classification)

        assert category.facts == []
        assert category.raw == {"provider": {"name": "github"}}

    def test_low_confidence_allows_mismatch(self):
        classification = LinkClassification(
            category="other", confidence=0.35, provider="github", reason="fallback"
        )

        category = build_category_metadata(GITHUB_URL, None, github_map(), classification)

        assert [fact.label for fact in category.facts] == ["Stars", "Language"]

    def test_structured_data_fills_image_and_facts(self):
        url = "https://example.com/recipes/pancakes"
        recipe = {
            "@type": "Recipe",
            "name": "Pancakes",
            "image": "https://example.com/pancakes.jpg",
            "recipeYield": "4",
        }
        selector_map = SelectorResultMap.from_results(
            [
                SelectorResult(
                    selector=STRUCTURED_DATA_SELECTOR,
                    results=[SelectorResultItem(text=json.dumps(recipe))],
                )
            ]
        )
        preview = LinkPreview(status="success", url=url)

        category = build_category_metadata(url, preview, selector_map, classify_url(url))

        assert category.category == "recipe"
        assert category.detected_provider == "example.com"
        assert category.image_url == "https://example.com/pancakes.jpg"
        assert [(fact.label, fact.value) for fact in category.facts] == [("Servings", "4")]
        assert category.raw["structured"]["name"] == "Pancakes"
        assert category.raw["provider"] == {"name": "example.com"}

    def test_nothing_to_enrich(self):
        category = build_category_metadata("", None, SelectorResultMap(), classify_url(""))

        assert category.category == "other"
        assert category.facts == []
        assert category.raw is None

    def test_hostile_provider_image_dropped(self):
        url = "https://dribbble.com/shots/123-logo"
        selector_map = SelectorResultMap.from_results([meta("meta[property='og:image']", "javascript:alert(1)")])
        preview = LinkPreview(status="success", url=url)

        category = build_category_metadata(url, preview, selector_map, classify_url(url))

        assert category.detected_provider == "dribbble"
        assert category.image_url is None

    def test_hostile_structured_image_dropped(self):
        url = "https://example.com/recipes/pancakes"
        recipe = {"@type": "Recipe", "name": "Pancakes", "image": "javascript:alert(1)", "recipeYield": "4"}
        selector_map = SelectorResultMap.from_results(
            [
                SelectorResult(
                    selector=STRUCTURED_DATA_SELECTOR,
                    results=[SelectorResultItem(text=json.dumps(recipe))],
                )
            ]
        )

        category = build_category_metadata(url, LinkPreview(status="success", url=url), selector_map, classify_url(url))

        assert category.category == "recipe"
        assert category.image_url is None

    def test_relative_enrichment_image_resolved_against_page(self):
        url = "https://dribbble.com/shots/123-logo"
        selector_map = SelectorResultMap.from_results([meta("meta[property='og:image']", "/uploads/shot.png")])
        preview = LinkPreview(status="success", url=url, final_url="https://cdn.dribbble.com/shots/123")

        category = build_category_metadata(url, preview, selector_map, classify_url(url))

        assert category.image_url == "https://cdn.dribbble.com/uploads/shot.png"
