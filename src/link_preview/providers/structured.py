"""
Category facts from schema.org JSON-LD blocks.

The blocks are collected by the same scrape call as everything else, so
structured enrichment never fetches the page a second time.
"""

import json
import re
from collections.abc import Callable
from typing import Any

import structlog

from link_preview.models.category import CategoryDetail, ProviderEnrichment
from link_preview.models.selectors import SelectorResultMap
from link_preview.providers.common import format_date

logger = structlog.get_logger(__name__)

STRUCTURED_DATA_SELECTOR = "script[type='application/ld+json']"
STRUCTURED_DATA_MAX_ITEMS = 8
STRUCTURED_DATA_FIELDS = (
    "name",
    "url",
    "image",
    "@type",
    "sameAs",
    "datePublished",
    "dateModified",
    "startDate",
    "endDate",
    "author",
    "creator",
    "publisher",
    "headline",
    "description",
    "aggregateRating",
    "recipeIngredient",
    "recipeInstructions",
    "offers",
    "genre",
    "keywords",
    "duration",
    "performer",
    "byArtist",
)

_DURATION_RE = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$", re.IGNORECASE)


# ─── JSON-LD Parsing ─────────────────────────────────────────────


def _pick_fields(entity: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    return {field: entity[field] for field in fields if field in entity}


def _flatten(parsed: Any) -> list[Any]:
    values = parsed if isinstance(parsed, list) else [parsed]
    flattened: list[Any] = []
    for value in values:
        if isinstance(value, dict) and isinstance(value.get("@graph"), list):
            flattened.extend(value["@graph"])
        else:
            flattened.append(value)
    return flattened


def parse_structured_data(selector_map: SelectorResultMap) -> list[dict[str, Any]]:
    """Decode JSON-LD entities, deduplicated on @type/name/url and capped."""
    entities: list[dict[str, Any]] = []
    seen: set[str] = set()

    for item in selector_map.items(STRUCTURED_DATA_SELECTOR):
        json_text = (item.text or item.html or "").strip()
        if not json_text:
            continue
        try:
            parsed = json.loads(json_text)
        except ValueError as e:
            logger.debug("structured_data_parse_failed", error=str(e))
            continue

        for entity in _flatten(parsed):
            if not isinstance(entity, dict):
                continue
            fingerprint = json.dumps(_pick_fields(entity, ("@type", "name", "url")), sort_keys=True, default=str)
            if fingerprint in seen:
                continue
            seen.add(fingerprint)
            entities.append(entity)
            if len(entities) >= STRUCTURED_DATA_MAX_ITEMS:
                return entities

    return entities


# ─── Value Helpers ───────────────────────────────────────────────


def _as_list(value: Any) -> list[Any]:
    if value is None or value == "":
        return []
    return value if isinstance(value, list) else [value]


def _matches_type(entity: dict[str, Any], types: tuple[str, ...]) -> bool:
    entity_types = {entry.lower() for entry in _as_list(entity.get("@type")) if isinstance(entry, str)}
    return any(candidate.lower() in entity_types for candidate in types)


def find_by_type(entities: list[dict[str, Any]], types: tuple[str, ...]) -> dict[str, Any] | None:
    for entity in entities:
        if _matches_type(entity, types):
            return entity
    return None


def _string_list(value: Any) -> list[str]:
    names: list[str] = []
    for entry in _as_list(value):
        if isinstance(entry, str):
            names.append(entry)
        elif isinstance(entry, dict) and isinstance(entry.get("name"), str):
            names.append(entry["name"])
    return names


def _text(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, dict) and value.get("name"):
        return str(value["name"])
    return None


def _image(value: Any) -> str | None:
    if isinstance(value, str):
        return value or None
    if isinstance(value, list) and value:
        return _image(value[0])
    if isinstance(value, dict) and isinstance(value.get("url"), str):
        return value["url"]
    return None


def format_duration(value: Any) -> str | None:
    """Render an ISO 8601 PT duration as e.g. "1h 30m"."""
    if not isinstance(value, str):
        return None
    match = _DURATION_RE.match(value)
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    parts = [f"{amount}{unit}" for amount, unit in ((hours, "h"), (minutes, "m"), (seconds, "s")) if amount]
    return " ".join(parts) or None


def _rating(entity: dict[str, Any]) -> dict[str, Any]:
    rating = entity.get("aggregateRating")
    return rating if isinstance(rating, dict) else {}


def _rating_count(entity: dict[str, Any]) -> str | None:
    rating = _rating(entity)
    return _text(rating.get("ratingCount") or rating.get("reviewCount"))


# ─── Per-Category Fact Builders ──────────────────────────────────

FactBuilder = Callable[[dict[str, Any]], list[tuple[str, str | None]]]


def _book_facts(book: dict[str, Any]) -> list[tuple[str, str | None]]:
    return [
        ("Authors", ", ".join(_string_list(book.get("author"))) or None),
        ("Rating", _text(_rating(book).get("ratingValue"))),
        ("Reviews", _rating_count(book)),
        ("Length", _text(book.get("numberOfPages") or book.get("bookFormat"))),
        ("Published", format_date(_text(book.get("datePublished")))),
    ]


def _movie_facts(movie: dict[str, Any]) -> list[tuple[str, str | None]]:
    return [
        ("Rating", _text(_rating(movie).get("ratingValue"))),
        ("Votes", _rating_count(movie)),
        ("Release", format_date(_text(movie.get("datePublished") or movie.get("dateCreated")))),
    ]


def _tv_facts(show: dict[str, Any]) -> list[tuple[str, str | None]]:
    return [
        ("Seasons", _text(show.get("numberOfSeasons") or show.get("seasonNumber"))),
        ("Episodes", _text(show.get("numberOfEpisodes"))),
        ("First aired", format_date(_text(show.get("datePublished") or show.get("dateCreated")))),
    ]


def _article_facts(article: dict[str, Any]) -> list[tuple[str, str | None]]:
    published = format_date(_text(article.get("datePublished")))
    updated = format_date(_text(article.get("dateModified")))
    return [
        ("Published", published),
        ("Updated", updated if updated != published else None),
    ]


def _podcast_facts(podcast: dict[str, Any]) -> list[tuple[str, str | None]]:
    return [
        ("Duration", format_duration(podcast.get("duration"))),
        ("Series", _text(podcast.get("partOfSeries")) or _text(podcast.get("isPartOf"))),
    ]


def _music_facts(music: dict[str, Any]) -> list[tuple[str, str | None]]:
    artists = _string_list(music.get("byArtist") or music.get("creator") or music.get("performer"))
    return [
        ("Artist", ", ".join(artists) or None),
        ("Length", format_duration(music.get("duration"))),
    ]


def _product_facts(product: dict[str, Any]) -> list[tuple[str, str | None]]:
    offers = product.get("offers")
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    price = None
    if isinstance(offers, dict) and offers.get("price") not in (None, ""):
        price = f"{offers['price']} {offers.get('priceCurrency') or ''}".strip()
    return [
        ("Price", price),
        ("Brand", _text(product.get("brand"))),
    ]


def _recipe_facts(recipe: dict[str, Any]) -> list[tuple[str, str | None]]:
    timing_parts = [
        f"{label} {duration}"
        for label, duration in (
            ("Prep", format_duration(recipe.get("prepTime"))),
            ("Cook", format_duration(recipe.get("cookTime"))),
            ("Total", format_duration(recipe.get("totalTime"))),
        )
        if duration
    ]
    ingredients = _string_list(recipe.get("recipeIngredient"))
    return [
        ("Servings", _text(_as_list(recipe.get("recipeYield"))[0]) if recipe.get("recipeYield") else None),
        ("Timing", " · ".join(timing_parts) or None),
        ("Ingredients", ", ".join(ingredients[:6]) or None),
    ]


def _course_facts(course: dict[str, Any]) -> list[tuple[str, str | None]]:
    return [("Provider", _text(course.get("provider")) or _text(course.get("publisher")))]


def _research_facts(paper: dict[str, Any]) -> list[tuple[str, str | None]]:
    return [
        ("Authors", ", ".join(_string_list(paper.get("author"))) or None),
        ("Published", format_date(_text(paper.get("datePublished")))),
    ]


def _event_facts(event: dict[str, Any]) -> list[tuple[str, str | None]]:
    start = format_date(_text(event.get("startDate")))
    end = format_date(_text(event.get("endDate")))
    dates = f"{start} → {end}" if start and end and start != end else start or end
    location = event.get("location")
    location_name = location.get("name") if isinstance(location, dict) else location
    return [
        ("Dates", dates),
        ("Location", _text(location_name) or _text(location)),
    ]


def _software_facts(software: dict[str, Any]) -> list[tuple[str, str | None]]:
    return [
        ("Platform", _text(software.get("operatingSystem"))),
        ("Category", _text(software.get("applicationCategory"))),
    ]


def _creative_facts(creative: dict[str, Any]) -> list[tuple[str, str | None]]:
    return [("Creator", _text(creative.get("author")) or _text(creative.get("creator")))]


# category -> (schema.org types, fact builder)
STRUCTURED_HANDLERS: dict[str, tuple[tuple[str, ...], FactBuilder]] = {
    "book": (("Book",), _book_facts),
    "movie": (("Movie", "VideoObject", "CreativeWork"), _movie_facts),
    "tv": (("TVSeries", "TVEpisode", "VideoObject"), _tv_facts),
    "article": (("NewsArticle", "Article", "BlogPosting"), _article_facts),
    "news": (("NewsArticle", "Article", "BlogPosting"), _article_facts),
    "podcast": (("PodcastEpisode", "PodcastSeries", "AudioObject"), _podcast_facts),
    "music": (("MusicRecording", "MusicAlbum", "MusicPlaylist"), _music_facts),
    "product": (("Product", "Offer"), _product_facts),
    "recipe": (("Recipe",), _recipe_facts),
    "course": (("Course", "EducationalOccupationalProgram"), _course_facts),
    "research": (("ScholarlyArticle", "ResearchArticle", "Report"), _research_facts),
    "event": (("Event", "MusicEvent", "BusinessEvent"), _event_facts),
    "software": (("SoftwareApplication", "SoftwareSourceCode"), _software_facts),
    "design_portfolio": (("CreativeWork", "CollectionPage", "Portfolio"), _creative_facts),
}


def enrich_structured_data(category: str, selector_map: SelectorResultMap) -> ProviderEnrichment | None:
    """Build facts for a category from the page's JSON-LD entities."""
    handler = STRUCTURED_HANDLERS.get(category)
    if handler is None:
        return None

    entities = parse_structured_data(selector_map)
    if not entities:
        return None

    types, build_facts = handler
    entity = find_by_type(entities, types)
    if entity is None:
        return None

    facts = [CategoryDetail(label=label, value=value) for label, value in build_facts(entity) if value]
    return ProviderEnrichment(
        image_url=_image(entity.get("image")),
        facts=facts,
        raw=_pick_fields(entity, STRUCTURED_DATA_FIELDS),
    )
