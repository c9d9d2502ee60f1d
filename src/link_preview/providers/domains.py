"""Deterministic link category classification from the URL and page hints."""

import re
from dataclasses import dataclass
from urllib.parse import urlparse

import structlog

from link_preview.models.category import LINK_CATEGORIES, LinkClassification

logger = structlog.get_logger(__name__)

DEFAULT_DOMAIN_CONFIDENCE = 0.98
DEFAULT_PATH_CONFIDENCE = 0.8
PROVIDER_CONFIDENCE = 0.72
HEURISTIC_CONFIDENCE = 0.58
FALLBACK_CONFIDENCE = 0.35


@dataclass(frozen=True)
class DomainRule:
    domain: str
    category: str
    provider: str | None = None
    path_patterns: tuple[re.Pattern[str], ...] = ()
    confidence: float | None = None
    description: str | None = None


@dataclass(frozen=True)
class PathRule:
    pattern: re.Pattern[str]
    category: str
    confidence: float | None = None


DOMAIN_RULES: tuple[DomainRule, ...] = (
    DomainRule("github.com", "software", "github"),
    DomainRule("gitlab.com", "software"),
    DomainRule("bitbucket.org", "software"),
    DomainRule("npmjs.com", "software"),
    DomainRule("pypi.org", "software"),
    DomainRule("rubygems.org", "software"),
    DomainRule("imdb.com", "movie", "imdb"),
    DomainRule("letterboxd.com", "movie"),
    DomainRule("goodreads.com", "book", "goodreads"),
    DomainRule("audible.com", "book"),
    DomainRule("amazon.com", "product", "amazon"),
    DomainRule("amazon.co.uk", "product", "amazon"),
    DomainRule("amazon.in", "product", "amazon"),
    DomainRule("dribbble.com", "design_portfolio", "dribbble"),
    DomainRule("behance.net", "design_portfolio"),
    DomainRule("figma.com", "design_portfolio", "figma"),
    DomainRule("youtube.com", "tv", "youtube"),
    DomainRule("youtu.be", "tv", "youtube"),
    DomainRule("vimeo.com", "tv"),
    DomainRule("medium.com", "article", "medium"),
    DomainRule("substack.com", "article", "substack"),
    DomainRule("dev.to", "article"),
    DomainRule(
        "open.spotify.com",
        "podcast",
        "spotify",
        path_patterns=(re.compile(r"^/episode/", re.IGNORECASE), re.compile(r"^/show/", re.IGNORECASE)),
        confidence=0.9,
        description="spotify episode/show path",
    ),
    DomainRule("open.spotify.com", "music", "spotify"),
    DomainRule("spotify.com", "music", "spotify"),
    DomainRule("podcasts.apple.com", "podcast", "apple"),
    DomainRule("music.apple.com", "music", "apple"),
    DomainRule("netflix.com", "tv"),
    DomainRule("hulu.com", "tv"),
    DomainRule("itch.io", "software"),
    DomainRule("eventbrite.com", "event"),
    DomainRule("lu.ma", "event"),
    DomainRule("arxiv.org", "research"),
    DomainRule("doi.org", "research"),
)

PATH_RULES: tuple[PathRule, ...] = (
    PathRule(re.compile(r"\brecipe(s)?\b", re.IGNORECASE), "recipe"),
    PathRule(re.compile(r"\bpodcast(s)?\b|/episode/", re.IGNORECASE), "podcast"),
    PathRule(re.compile(r"\bcourse(s)?\b|tutorial|bootcamp|lesson|learn", re.IGNORECASE), "course"),
    PathRule(re.compile(r"\bresearch\b|arxiv|doi\.org|paper\b", re.IGNORECASE), "research"),
    PathRule(re.compile(r"\bevent\b|webinar|meetup|conference", re.IGNORECASE), "event"),
    PathRule(re.compile(r"shop|store|product|listing|item|cart", re.IGNORECASE), "product"),
    PathRule(re.compile(r"music|album|track|mixtape", re.IGNORECASE), "music"),
    PathRule(re.compile(r"movie|film|trailer", re.IGNORECASE), "movie"),
    PathRule(re.compile(r"series|season|episode", re.IGNORECASE), "tv"),
)

# hostname substring -> category
PROVIDER_CATEGORY_HINTS: dict[str, str] = {
    "youtube": "tv",
    "youtu": "tv",
    "spotify": "music",
    "soundcloud": "music",
    "bandcamp": "music",
    "github": "software",
    "gitlab": "software",
    "bitbucket": "software",
    "npm": "software",
    "pypi": "software",
    "dribbble": "design_portfolio",
    "behance": "design_portfolio",
    "figma": "design_portfolio",
    "medium": "article",
    "substack": "article",
    "devto": "article",
    "imdb": "movie",
    "goodreads": "book",
    "kindle": "book",
}

HEURISTIC_KEYWORDS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"blog|post", re.IGNORECASE), "article"),
    (re.compile(r"news|press", re.IGNORECASE), "news"),
    (re.compile(r"doc(s)?/|documentation|changelog", re.IGNORECASE), "software"),
    (re.compile(r"design|portfolio", re.IGNORECASE), "design_portfolio"),
)

# hostname substring -> enrichment provider token, checked in order
PROVIDER_HOST_TOKENS: tuple[tuple[str, str], ...] = (
    ("github.com", "github"),
    ("goodreads.com", "goodreads"),
    ("amazon.", "amazon"),
    ("imdb.com", "imdb"),
    ("netflix.com", "netflix"),
    ("behance.net", "behance"),
    ("dribbble.com", "dribbble"),
    ("spotify.com", "spotify"),
    ("apple.com", "apple"),
    ("youtube.com", "youtube"),
    ("youtu.be", "youtube"),
    ("medium.com", "medium"),
    ("substack.com", "substack"),
)


def _hostname(url: str) -> str | None:
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return None
    return hostname.lower() if hostname else None


def _apex(hostname: str) -> str:
    parts = hostname.split(".")
    if len(parts) <= 2:
        return hostname
    return ".".join(parts[-2:])


def _host_matches(hostname: str, candidate: str) -> bool:
    return hostname == candidate or hostname.endswith(f".{candidate}")


def _pick_domain_rule(hostname: str | None, path: str) -> DomainRule | None:
    if not hostname:
        return None
    apex = _apex(hostname)
    for rule in DOMAIN_RULES:
        if not (_host_matches(hostname, rule.domain) or _host_matches(apex, rule.domain)):
            continue
        if rule.path_patterns and not any(pattern.search(path) for pattern in rule.path_patterns):
            continue
        return rule
    return None


def _pick_provider_hint(hostname: str | None) -> tuple[str, str] | None:
    if not hostname:
        return None
    for provider, category in PROVIDER_CATEGORY_HINTS.items():
        if provider in hostname:
            return provider, category
    return None


def detect_provider(url: str | None, hint: str | None = None) -> str | None:
    """Enrichment provider token for a URL; the bare hostname when unknown."""
    if hint:
        return hint
    if not url:
        return None
    hostname = _hostname(url)
    if not hostname:
        return None
    for needle, provider in PROVIDER_HOST_TOKENS:
        if needle in hostname:
            return provider
    return hostname


def classify_url(url: str, site_name: str | None = None, title: str | None = None) -> LinkClassification:
    """
    Classify a URL into a link category.

    Rules are tried in order: exact domain rules, path keywords, hostname
    provider hints, free-text heuristics over host/path/site name/title, then
    the "other" fallback. Each tier carries a fixed confidence.
    """
    hostname = _hostname(url)
    try:
        path = urlparse(url).path or ""
    except ValueError:
        path = ""
    provider_hint = _pick_provider_hint(hostname)

    rule = _pick_domain_rule(hostname, path)
    if rule and rule.category in LINK_CATEGORIES:
        return LinkClassification(
            category=rule.category,
            confidence=rule.confidence or DEFAULT_DOMAIN_CONFIDENCE,
            provider=rule.provider or (provider_hint[0] if provider_hint else None),
            reason="domain_rule",
            rule=rule.description or rule.domain,
        )

    for path_rule in PATH_RULES:
        if path and path_rule.pattern.search(path):
            return LinkClassification(
                category=path_rule.category,
                confidence=path_rule.confidence or DEFAULT_PATH_CONFIDENCE,
                provider=provider_hint[0] if provider_hint else None,
                reason="path_rule",
                rule=path_rule.pattern.pattern,
            )

    if provider_hint:
        provider, category = provider_hint
        return LinkClassification(
            category=category,
            confidence=PROVIDER_CONFIDENCE,
            provider=provider,
            reason="provider_mapping",
            rule=provider,
        )

    ambient = f"{hostname or ''} {path} {site_name or ''} {title or ''}"
    for pattern, category in HEURISTIC_KEYWORDS:
        if pattern.search(ambient):
            return LinkClassification(
                category=category,
                confidence=HEURISTIC_CONFIDENCE,
                reason="heuristic",
            )

    logger.debug("category_fallback", url=url)
    return LinkClassification(category="other", confidence=FALLBACK_CONFIDENCE, reason="fallback")
