"""Unit tests for the Dribbble enrichment handler."""

from conftest import make_item, meta

from link_preview.models.selectors import SelectorResult, SelectorResultMap
from link_preview.providers.dribbble import enrich_dribbble


class TestDribbbleEnrichment:
    """Tests for enrich_dribbble."""

    def test_shot_with_title_byline_and_stats(self):
        selector_map = SelectorResultMap.from_results(
            [
                meta("meta[property='og:title']", "Landing Page by Jane Doe on Dribbble"),
                meta("meta[property='og:image']", "https://cdn.dribbble.com/shot.png"),
                meta("meta[name='twitter:label1']", "Likes"),
                meta("meta[name='twitter:data1']", "1.2k"),
                SelectorResult(selector="a[href$='/views']", results=[make_item("3,400")]),
                meta("meta[name='keywords']", "ui, ux, web, app, mobile, design"),
            ]
        )

        enrichment = enrich_dribbble(selector_map)

        assert enrichment.image_url == "https://cdn.dribbble.com/shot.png"
        assert [(fact.label, fact.value) for fact in enrichment.facts] == [
            ("Designer", "Jane Doe"),
            ("Likes", "1,200"),
            ("Views", "3,400"),
            ("Tags", "ui, ux, web"),
        ]
        assert enrichment.raw["designer"] == "Jane Doe"
        assert enrichment.raw["stats"] == {"likes": "1.2k", "views": "3,400"}
        assert enrichment.raw["keywords"] == ["ui", "ux", "web", "app", "mobile"]
        assert "description" not in enrichment.raw

    def test_designer_from_twitter_creator(self):
        selector_map = SelectorResultMap.from_results(
            [meta("meta[name='twitter:creator']", "@janedoe")]
        )

        enrichment = enrich_dribbble(selector_map)

        assert enrichment.facts[0].label == "Designer"
        assert enrichment.facts[0].value == "janedoe"
        assert enrichment.raw["designer"] == "@janedoe"

    def test_meta_author_used_when_title_has_no_byline(self):
        selector_map = SelectorResultMap.from_results(
            [
                meta("meta[property='og:title']", "Landing Page"),
                meta("meta[name='author']", "Studio X on Dribbble"),
            ]
        )

        enrichment = enrich_dribbble(selector_map)

        assert enrichment.facts[0].value == "Studio X"

    def test_single_tag_label(self):
        selector_map = SelectorResultMap.from_results([meta("meta[name='keywords']", "branding")])

        enrichment = enrich_dribbble(selector_map)

        assert len(enrichment.facts) == 1
        assert enrichment.facts[0].label == "Tag"
        assert enrichment.facts[0].value == "branding"

    def test_empty_page(self):
        assert enrich_dribbble(SelectorResultMap()) is None
