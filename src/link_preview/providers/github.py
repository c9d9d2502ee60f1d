"""Code repository stats for github.com pages."""

import re

from link_preview.models.category import CategoryDetail, ProviderEnrichment
from link_preview.models.selectors import SelectorResultMap
from link_preview.providers.common import format_count_string, normalize_whitespace, raw_text

STARS_SELECTOR = "a[href$='/stargazers']"
FORKS_SELECTOR = "a[href$='/network/members']"
WATCHERS_SELECTOR = "a[href$='/watchers']"
LANGUAGE_SELECTOR = "span[itemprop='programmingLanguage']"
UPDATED_SELECTOR = "relative-time"

SELECTORS = (
    STARS_SELECTOR,
    FORKS_SELECTOR,
    WATCHERS_SELECTOR,
    LANGUAGE_SELECTOR,
    UPDATED_SELECTOR,
)

_LEADING_ON_RE = re.compile(r"^on\s+", re.IGNORECASE)


def enrich_github(selector_map: SelectorResultMap) -> ProviderEnrichment | None:
    stars = format_count_string(raw_text(selector_map, STARS_SELECTOR))
    forks = format_count_string(raw_text(selector_map, FORKS_SELECTOR))
    watchers = format_count_string(raw_text(selector_map, WATCHERS_SELECTOR))
    language = raw_text(selector_map, LANGUAGE_SELECTOR)
    updated_raw = raw_text(selector_map, UPDATED_SELECTOR)

    facts: list[CategoryDetail] = []
    if stars:
        facts.append(CategoryDetail(label="Stars", value=stars))
    if forks:
        facts.append(CategoryDetail(label="Forks", value=forks))
    if watchers:
        facts.append(CategoryDetail(label="Watchers", value=watchers))
    if language:
        facts.append(CategoryDetail(label="Language", value=language))
    if updated_raw:
        updated = normalize_whitespace(_LEADING_ON_RE.sub("", updated_raw))
        if updated:
            facts.append(CategoryDetail(label="Updated", value=updated))

    if not facts:
        return None

    return ProviderEnrichment(
        facts=facts,
        raw={
            "stars": stars,
            "forks": forks,
            "watchers": watchers,
            "language": language,
            "updated": updated_raw,
        },
    )
