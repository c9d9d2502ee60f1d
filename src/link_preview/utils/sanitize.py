"""
URL and text sanitization for untrusted page metadata.

Every function here degrades to None (or passes input through) instead of
raising, so a hostile or malformed field never aborts an extraction.
"""

import ipaddress
import re
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

# Title/description/etc. limits applied to extracted text
TITLE_MAX_LENGTH = 512
DESCRIPTION_MAX_LENGTH = 2048
SITE_NAME_MAX_LENGTH = 256
AUTHOR_MAX_LENGTH = 256
PUBLISHER_MAX_LENGTH = 256
PUBLISHED_AT_MAX_LENGTH = 128

_HTTP_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_DATA_URI_RE = re.compile(r"^data:", re.IGNORECASE)
_UNSAFE_SCHEME_RE = re.compile(r"^(javascript|mailto):", re.IGNORECASE)
_URL_STRIPPED_CHARS_RE = re.compile(r"[\t\n\r]")
_WHITESPACE_RE = re.compile(r"\s+")

_BLOCKED_IPV4_NETWORKS = tuple(
    ipaddress.ip_network(cidr)
    for cidr in (
        "0.0.0.0/32",
        "10.0.0.0/8",
        "100.64.0.0/10",
        "127.0.0.0/8",
        "169.254.0.0/16",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "198.18.0.0/15",
        "224.0.0.0/3",
    )
)

_BLOCKED_IPV6_NETWORKS = tuple(
    ipaddress.ip_network(cidr)
    for cidr in (
        "::/128",
        "::1/128",
        "fe80::/10",
        "fc00::/7",
    )
)


def normalize_url(raw: str) -> str:
    """Prefix https:// when the URL has no http(s) scheme."""
    trimmed = raw.strip()
    if _HTTP_SCHEME_RE.match(trimmed):
        return trimmed
    return f"https://{trimmed}"


def sanitize_url(base: str | None, candidate: str | None, allow_data: bool = False) -> str | None:
    """
    Resolve a candidate URL against a base and keep it only if it is safe.

    Args:
        base: Absolute URL of the page the candidate was found on
        candidate: Raw attribute value (absolute, relative or protocol-relative)
        allow_data: Keep data: URIs verbatim instead of rejecting them

    Returns:
        Absolute http(s) URL, the data: URI when allowed, or None
    """
    if not candidate:
        return None
    trimmed = _URL_STRIPPED_CHARS_RE.sub("", candidate).strip()
    if not trimmed:
        return None

    if _DATA_URI_RE.match(trimmed):
        return trimmed if allow_data else None
    if _UNSAFE_SCHEME_RE.match(trimmed):
        return None

    try:
        resolved = urljoin(base or "", trimmed)
        parsed = urlparse(resolved)
    except ValueError:
        return None

    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        return None
    return resolved


def sanitize_image_url(base: str | None, candidate: str | None) -> str | None:
    """Like sanitize_url, but inline data: images are always kept."""
    return sanitize_url(base, candidate, allow_data=True)


def proxy_asset_url(url: str | None, proxy_origin: str | None) -> str | None:
    """Route an http(s) asset URL through the configured proxy origin."""
    if not url or not proxy_origin or _DATA_URI_RE.match(url):
        return url
    try:
        proxy = urlparse(proxy_origin)
    except ValueError:
        return url
    if proxy.scheme not in ("http", "https") or not proxy.netloc:
        return url

    params = [(k, v) for k, v in parse_qsl(proxy.query, keep_blank_values=True) if k != "url"]
    params.append(("url", url))
    return urlunparse(proxy._replace(path=proxy.path or "/", query=urlencode(params)))


def is_blocked_address(address: str) -> bool:
    """
    Return True when an IP address must never be fetched.

    Covers loopback, private, link-local, carrier-grade NAT, benchmarking,
    multicast/reserved and unspecified ranges. IPv4-mapped IPv6 addresses are
    judged on the embedded IPv4 address. Non-IP input returns False.
    """
    try:
        ip = ipaddress.ip_address(address.strip().strip("[]"))
    except ValueError:
        return False

    if isinstance(ip, ipaddress.IPv6Address):
        if ip.ipv4_mapped is not None:
            return _is_blocked_ipv4(ip.ipv4_mapped)
        return any(ip in network for network in _BLOCKED_IPV6_NETWORKS)
    return _is_blocked_ipv4(ip)


def _is_blocked_ipv4(ip: ipaddress.IPv4Address) -> bool:
    return any(ip in network for network in _BLOCKED_IPV4_NETWORKS)


def is_blocked_hostname(hostname: str | None) -> bool:
    """Reject localhost names and literal addresses in blocked ranges."""
    if not hostname:
        return True
    host = hostname.strip().lower().rstrip(".")
    if host == "localhost" or host.endswith(".localhost"):
        return True
    return is_blocked_address(host)


def sanitize_text(value: str | None, max_length: int) -> str | None:
    """Collapse whitespace, trim and truncate; None for empty input."""
    if not value:
        return None
    normalized = _WHITESPACE_RE.sub(" ", value).strip()
    if not normalized:
        return None
    return normalized[:max_length]
