"""Film and TV ratings for imdb.com pages."""

from link_preview.models.category import CategoryDetail, ProviderEnrichment
from link_preview.models.selectors import SelectorResultMap
from link_preview.providers.common import (
    format_count_string,
    format_date,
    format_rating,
    raw_attribute,
    raw_text,
)

RATING_META_SELECTOR = "meta[name='imdb:rating']"
VOTES_META_SELECTOR = "meta[name='imdb:votes']"
RELEASE_DATE_SELECTOR = "meta[property='video:release_date']"
RATING_TEXT_SELECTOR = "span[data-testid='hero-rating-bar__aggregate-rating__score']"
RUNTIME_SELECTOR = "span[data-testid='title-techspec_runtime'] span"

SELECTORS = (
    RATING_META_SELECTOR,
    VOTES_META_SELECTOR,
    RELEASE_DATE_SELECTOR,
    RATING_TEXT_SELECTOR,
    RUNTIME_SELECTOR,
)


def enrich_imdb(selector_map: SelectorResultMap) -> ProviderEnrichment | None:
    # the meta tag wins over the on-page score when both exist
    rating = format_rating(
        raw_attribute(selector_map, RATING_META_SELECTOR, "content")
        or raw_text(selector_map, RATING_TEXT_SELECTOR)
    )
    votes = format_count_string(raw_attribute(selector_map, VOTES_META_SELECTOR, "content"))
    runtime = raw_text(selector_map, RUNTIME_SELECTOR)
    release_date_raw = raw_attribute(selector_map, RELEASE_DATE_SELECTOR, "content")
    release_date = format_date(release_date_raw)

    facts: list[CategoryDetail] = []
    if rating:
        facts.append(CategoryDetail(label="IMDb rating", value=f"{rating} / 10"))
    if votes:
        facts.append(CategoryDetail(label="Votes", value=votes))
    if runtime:
        facts.append(CategoryDetail(label="Runtime", value=runtime))
    if release_date:
        facts.append(CategoryDetail(label="Released", value=release_date))

    if not facts:
        return None

    return ProviderEnrichment(
        facts=facts,
        raw={
            "rating": rating,
            "votes": votes,
            "runtime": runtime,
            "releaseDate": release_date_raw,
        },
    )
