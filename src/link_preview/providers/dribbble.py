"""Design portfolio stats for dribbble.com shots."""

import re

from link_preview.models.category import CategoryDetail, ProviderEnrichment
from link_preview.models.selectors import SelectorResultMap
from link_preview.providers.common import (
    compact,
    format_count_string,
    normalize_whitespace,
    raw_attribute,
    raw_text,
    raw_value,
)

LIKES_SELECTORS = (
    "a[href$='/likes']",
    "[data-testid='shot-likes']",
    "[data-testid='shot-likes-count']",
    ".shot-stats [data-label='Likes']",
)

VIEWS_SELECTORS = (
    "a[href$='/views']",
    "[data-testid='shot-views']",
    "[data-testid='shot-views-count']",
    ".shot-stats [data-label='Views']",
)

COMMENTS_SELECTORS = (
    "a[href$='/comments']",
    "[data-testid='shot-comments']",
    "[data-testid='shot-comments-count']",
    ".shot-stats [data-label='Comments']",
)

AUTHOR_META_SELECTORS = (
    "meta[name='author']",
    "meta[property='article:author']",
)

DESIGNER_SELECTORS = (
    "meta[name='twitter:creator']",
    "a[rel='author']",
    ".shot-byline a",
)

KEYWORDS_SELECTORS = (
    "meta[name='keywords']",
    "meta[name='parsely-tags']",
    "meta[property='article:tag']",
)
TAG_LINK_SELECTOR = "a[rel='tag']"

IMAGE_SELECTORS = (
    "meta[property='og:image:secure_url']",
    "meta[property='og:image']",
    "meta[name='og:image']",
    "meta[name='twitter:image']",
    "meta[property='twitter:image']",
)

TITLE_SELECTOR = "meta[property='og:title']"
DOCUMENT_TITLE_SELECTOR = "head > title"
DESCRIPTION_SELECTORS = (
    "meta[property='og:description']",
    "meta[name='description']",
)

# twitter:label1..4 / twitter:data1..4 pairs
TWITTER_LABEL_PAIRS = tuple(
    (f"meta[name='twitter:label{index}']", f"meta[name='twitter:data{index}']") for index in range(1, 5)
)

SELECTORS = (
    *LIKES_SELECTORS,
    *VIEWS_SELECTORS,
    *COMMENTS_SELECTORS,
    *AUTHOR_META_SELECTORS,
    *DESIGNER_SELECTORS,
    *KEYWORDS_SELECTORS,
    TAG_LINK_SELECTOR,
    *IMAGE_SELECTORS,
    TITLE_SELECTOR,
    DOCUMENT_TITLE_SELECTOR,
    *DESCRIPTION_SELECTORS,
    *(selector for pair in TWITTER_LABEL_PAIRS for selector in pair),
)

MAX_KEYWORDS = 5
KEYWORDS_IN_FACT = 3

_STAT_LABELS = (("like", "likes"), ("view", "views"), ("comment", "comments"))
_KEYWORD_SPLIT_RE = re.compile(r"[,|]")
_TITLE_SUFFIX_RES = (
    re.compile(r"\|\s*dribbble$", re.IGNORECASE),
    re.compile(r"\son\s+dribbble$", re.IGNORECASE),
)
_BYLINE_SUFFIX_RE = re.compile(r"\s+on\s+dribbble$", re.IGNORECASE)


def _stat_key(label: str) -> str | None:
    lowered = label.lower()
    for needle, key in _STAT_LABELS:
        if needle in lowered:
            return key
    return None


def _twitter_stats(selector_map: SelectorResultMap) -> dict[str, str]:
    """Stats published as labeled meta pairs, matched by label substring."""
    stats: dict[str, str] = {}
    for label_selector, data_selector in TWITTER_LABEL_PAIRS:
        label = raw_attribute(selector_map, label_selector, "content")
        value = raw_attribute(selector_map, data_selector, "content")
        if not (label and value):
            continue
        key = _stat_key(label)
        if key and key not in stats:
            stats[key] = value
    return stats


def _stat(
    selector_map: SelectorResultMap,
    selectors: tuple[str, ...],
    seed: str | None,
) -> tuple[str | None, str | None]:
    """Return (raw, formatted) for a stat, preferring the labeled meta seed."""
    candidates = [seed] if seed else []
    candidates.extend(raw_value(selector_map, selector) for selector in selectors)
    for candidate in candidates:
        normalized = normalize_whitespace(candidate)
        if normalized:
            return candidate, format_count_string(normalized) or normalized
    return None, None


def _clean_designer(value: str | None) -> str | None:
    normalized = normalize_whitespace(value)
    if not normalized:
        return None
    normalized = normalized.removeprefix("@").strip()
    normalized = _BYLINE_SUFFIX_RE.sub("", normalized).strip()
    return normalized or None


def _title(selector_map: SelectorResultMap) -> str | None:
    return raw_attribute(selector_map, TITLE_SELECTOR, "content") or raw_text(
        selector_map, DOCUMENT_TITLE_SELECTOR
    )


def _designer(selector_map: SelectorResultMap) -> tuple[str | None, str | None]:
    """Return (display, raw) for the shot's designer."""
    candidates: list[str] = []

    title = _title(selector_map)
    if title:
        by_index = title.lower().rfind(" by ")
        if by_index != -1:
            byline = title[by_index + 4 :]
            for suffix in _TITLE_SUFFIX_RES:
                byline = suffix.sub("", byline)
            byline = normalize_whitespace(byline)
            if byline:
                candidates.append(byline)

    meta_author = None
    for selector in AUTHOR_META_SELECTORS:
        meta_author = raw_attribute(selector_map, selector, "content")
        if meta_author:
            break
    if meta_author:
        candidates.append(meta_author)
    candidates.extend(value for value in (raw_value(selector_map, s) for s in DESIGNER_SELECTORS) if value)

    for candidate in candidates:
        display = _clean_designer(candidate)
        if display:
            return display, candidate
    return None, None


def _keywords(selector_map: SelectorResultMap) -> list[str] | None:
    keyword_string = None
    for selector in KEYWORDS_SELECTORS:
        keyword_string = raw_attribute(selector_map, selector, "content")
        if keyword_string:
            break
    keyword_string = keyword_string or raw_text(selector_map, TAG_LINK_SELECTOR)
    if not keyword_string:
        return None

    unique: list[str] = []
    for part in _KEYWORD_SPLIT_RE.split(keyword_string):
        value = normalize_whitespace(part)
        if value and value not in unique:
            unique.append(value)
        if len(unique) == MAX_KEYWORDS:
            break
    return unique or None


def _image(selector_map: SelectorResultMap) -> str | None:
    for selector in IMAGE_SELECTORS:
        value = raw_attribute(selector_map, selector, "content")
        if value:
            return value
    return None


def enrich_dribbble(selector_map: SelectorResultMap) -> ProviderEnrichment | None:
    designer_display, designer_raw = _designer(selector_map)
    seeds = _twitter_stats(selector_map)
    likes_raw, likes = _stat(selector_map, LIKES_SELECTORS, seeds.get("likes"))
    views_raw, views = _stat(selector_map, VIEWS_SELECTORS, seeds.get("views"))
    comments_raw, comments = _stat(selector_map, COMMENTS_SELECTORS, seeds.get("comments"))
    keywords = _keywords(selector_map)
    image_url = _image(selector_map)

    description = None
    for selector in DESCRIPTION_SELECTORS:
        description = raw_attribute(selector_map, selector, "content")
        if description:
            break

    facts: list[CategoryDetail] = []
    if designer_display:
        facts.append(CategoryDetail(label="Designer", value=designer_display))
    if likes:
        facts.append(CategoryDetail(label="Likes", value=likes))
    if views:
        facts.append(CategoryDetail(label="Views", value=views))
    if comments:
        facts.append(CategoryDetail(label="Comments", value=comments))
    if keywords:
        facts.append(
            CategoryDetail(
                label="Tags" if len(keywords) > 1 else "Tag",
                value=", ".join(keywords[:KEYWORDS_IN_FACT]),
            )
        )

    raw = compact(
        {
            "title": _title(selector_map),
            "description": description,
            "designer": designer_raw or designer_display,
            "stats": compact(
                {
                    "likes": likes_raw or likes,
                    "views": views_raw or views,
                    "comments": comments_raw or comments,
                }
            ),
            "keywords": keywords,
        }
    )

    if not image_url and not facts and not raw:
        return None

    return ProviderEnrichment(image_url=image_url, facts=facts, raw=raw)
