"""Book ratings for goodreads.com pages."""

from link_preview.models.category import CategoryDetail, ProviderEnrichment
from link_preview.models.selectors import SelectorResultMap
from link_preview.providers.common import format_count_string, format_rating, raw_attribute

RATING_AVERAGE_SELECTOR = "meta[property='books:rating:average']"
RATING_COUNT_SELECTOR = "meta[property='books:rating:count']"
ISBN_SELECTOR = "meta[property='books:isbn']"

SELECTORS = (RATING_AVERAGE_SELECTOR, RATING_COUNT_SELECTOR, ISBN_SELECTOR)


def enrich_goodreads(selector_map: SelectorResultMap) -> ProviderEnrichment | None:
    average = format_rating(raw_attribute(selector_map, RATING_AVERAGE_SELECTOR, "content"))
    count = format_count_string(raw_attribute(selector_map, RATING_COUNT_SELECTOR, "content"))
    isbn = raw_attribute(selector_map, ISBN_SELECTOR, "content")

    facts: list[CategoryDetail] = []
    if average:
        facts.append(CategoryDetail(label="Average rating", value=f"{average} / 5"))
    if count:
        facts.append(CategoryDetail(label="Ratings", value=count))
    if isbn:
        facts.append(CategoryDetail(label="ISBN", value=isbn))

    if not facts:
        return None

    return ProviderEnrichment(
        facts=facts,
        raw={"ratingAverage": average, "ratingCount": count, "isbn": isbn},
    )
