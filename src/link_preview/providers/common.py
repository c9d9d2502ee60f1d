"""Helpers shared by enrichment handlers. None of them raise on bad input."""

import math
import re
from collections.abc import Iterable
from datetime import datetime
from email.utils import parsedate_to_datetime

from link_preview.models.category import CategoryDetail
from link_preview.models.selectors import SelectorResultMap

_WHITESPACE_RE = re.compile(r"\s+")
_DIGIT_RE = re.compile(r"\d")
_LEADING_FLOAT_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)")

_DATE_FORMATS = ("%b %d, %Y", "%B %d, %Y", "%d %b %Y", "%d %B %Y", "%Y/%m/%d")


def normalize_whitespace(value: str | None) -> str | None:
    """Collapse whitespace runs and trim; None when nothing is left."""
    if not value:
        return None
    trimmed = _WHITESPACE_RE.sub(" ", value).strip()
    return trimmed or None


def raw_text(selector_map: SelectorResultMap, selector: str) -> str | None:
    item = selector_map.first(selector)
    return normalize_whitespace(item.text) if item else None


def raw_attribute(selector_map: SelectorResultMap, selector: str, attribute: str) -> str | None:
    item = selector_map.first(selector)
    return normalize_whitespace(item.attribute(attribute)) if item else None


def raw_value(selector_map: SelectorResultMap, selector: str) -> str | None:
    """Content attribute for meta selectors, element text otherwise."""
    if selector.startswith("meta["):
        return raw_attribute(selector_map, selector, "content")
    return raw_text(selector_map, selector)


def _parse_leading_float(value: str) -> float | None:
    match = _LEADING_FLOAT_RE.match(value.strip())
    if not match:
        return None
    return float(match.group(0))


def _extract_numeric_token(value: str | None) -> str | None:
    trimmed = normalize_whitespace(value)
    if not trimmed:
        return None
    for segment in trimmed.split(" "):
        if _DIGIT_RE.search(segment.replace(",", "").replace(".", "")):
            return segment
    return trimmed


def parse_count(value: str | None) -> int | None:
    """Parse counts such as "1,234", "1.2k" or "3M stars" into an int."""
    token = _extract_numeric_token(value)
    if not token:
        return None
    lower = token.lower()
    multiplier = 1_000 if lower.endswith("k") else 1_000_000 if lower.endswith("m") else 1
    numeric_part = lower if multiplier == 1 else lower[:-1]
    parsed = _parse_leading_float(numeric_part.replace(",", ""))
    if parsed is None:
        return None
    # half-up rounding
    return int(math.floor(parsed * multiplier + 0.5))


def format_count_string(value: str | None) -> str | None:
    """Format a count with thousands separators, passing unparseable text through."""
    number = parse_count(value)
    if number is not None:
        return f"{number:,}"
    return normalize_whitespace(value)


def format_rating(value: str | None) -> str | None:
    """Format a rating to two decimals, passing unparseable text through."""
    if not value:
        return None
    numeric = _parse_leading_float(value)
    if numeric is None:
        return normalize_whitespace(value)
    return f"{numeric:.2f}"


def parse_date(value: str | None) -> datetime | None:
    """Best-effort parse of ISO 8601, RFC 2822 and a few human date formats."""
    text = normalize_whitespace(value)
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def format_date(value: str | None) -> str | None:
    """Short US-style date such as "Jan 5, 2024"; None when unparseable."""
    parsed = parse_date(value)
    if parsed is None:
        return None
    return f"{parsed:%b} {parsed.day}, {parsed.year}"


def merge_facts(target: list[CategoryDetail], incoming: Iterable[CategoryDetail] | None) -> list[CategoryDetail]:
    """Append facts not already present (by label and value). Mutates and returns target."""
    if not incoming:
        return target
    seen = {f"{fact.label}::{fact.value}" for fact in target}
    for fact in incoming:
        key = f"{fact.label}::{fact.value}"
        if key not in seen:
            target.append(fact)
            seen.add(key)
    return target


def compact(data: dict[str, object]) -> dict[str, object] | None:
    """Drop None values; None when nothing remains."""
    entries = {key: value for key, value in data.items() if value is not None}
    return entries or None
