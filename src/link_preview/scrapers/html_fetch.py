"""Direct HTML fetch renderer (no browser) with SSRF guards."""

import asyncio
import re
import socket
import time
from collections.abc import Callable, Sequence
from typing import Any, NamedTuple
from urllib.parse import urljoin, urlparse

import anyio
import httpx
import structlog
from bs4 import BeautifulSoup
from bs4.element import Tag

from link_preview.config import settings
from link_preview.exceptions import (
    FetchRejectedError,
    RenderConnectionError,
    RenderHTTPError,
    RenderRateLimitError,
    RenderTimeoutError,
)
from link_preview.models.selectors import SelectorAttribute, SelectorResultItem, SelectorResultMap
from link_preview.scrapers.base import parse_retry_after
from link_preview.utils.sanitize import is_blocked_address, is_blocked_hostname

logger = structlog.get_logger(__name__)

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})
HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")

IMAGE_EXTENSION_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "gif": "image/gif",
    "avif": "image/avif",
    "svg": "image/svg+xml",
}
_IMAGE_EXTENSION_RE = re.compile(r"\.(png|jpe?g|webp|gif|avif|svg)(?:[?#]|$)", re.IGNORECASE)


class FetchedResource(NamedTuple):
    """Body of a fetched URL after redirects."""

    url: str
    body: bytes
    content_type: str
    charset: str | None = None


async def resolve_host(hostname: str, port: int) -> list[str]:
    """Resolve a hostname to the list of addresses a connection could use."""
    infos = await anyio.getaddrinfo(hostname, port, type=socket.SOCK_STREAM)
    return [str(info[4][0]) for info in infos]


def pin_to_address(url: str, address: str) -> tuple[httpx.URL, dict[str, str], dict[str, Any]]:
    """
    Address a request at an already checked IP.

    The Host header and the TLS server name keep the requested hostname, so
    virtual hosting and certificate verification behave as for the plain URL.
    """
    requested = httpx.URL(url)
    target = requested.copy_with(host=f"[{address}]" if ":" in address else address)
    headers = {"Host": requested.netloc.decode("ascii")}
    extensions: dict[str, Any] = {}
    if requested.scheme == "https":
        extensions["sni_hostname"] = requested.raw_host.decode("ascii")
    return target, headers, extensions


def image_content_type(declared: str, url: str) -> str | None:
    """Declared image/* type, else a type guessed from the file extension."""
    if declared.startswith("image/"):
        return declared
    match = _IMAGE_EXTENSION_RE.search(url)
    return IMAGE_EXTENSION_TYPES[match.group(1).lower()] if match else None
def _element_to_item(element: Tag) -> SelectorResultItem:
    attributes: list[SelectorAttribute] = []
    for name, value in element.attrs.items():
        if isinstance(value, (list, tuple)):
            value = " ".join(value)
        attributes.append(SelectorAttribute(name=name, value=str(value)))
    return SelectorResultItem(
        text=element.get_text(),
        html=element.decode_contents(),
        attributes=attributes or None,
    )


def select_elements(
    html: bytes | str,
    selectors: Sequence[str],
    final_url: str | None = None,
    encoding: str | None = None,
) -> SelectorResultMap:
    """
    Evaluate CSS selectors against an HTML document.

    Selectors the parser cannot handle are skipped; selectors that match
    nothing are absent from the map, as with the rendering service.
    """
    soup = BeautifulSoup(html, "html.parser", from_encoding=encoding if isinstance(html, bytes) else None)
    entries: dict[str, list[SelectorResultItem]] = {}
    for selector in selectors:
        if selector in entries:
            continue
        try:
            elements = soup.select(selector)
        except Exception as e:
            logger.debug("selector_error", selector=selector, error=str(e))
            continue
        if elements:
            entries[selector] = [_element_to_item(element) for element in elements]
    return SelectorResultMap(entries, final_url=final_url)


class HtmlFetchRenderer:
    """
    Fetches the page over plain HTTP and evaluates selectors locally.

    Used when the browser rendering service is unavailable. Every hop of a
    redirect chain is resolved and checked against blocked address ranges,
    and the request is then sent to the checked address itself so a second
    DNS answer cannot redirect the connection.
    """

    def __init__(
        self,
        timeout_seconds: float | None = None,
        max_bytes: int | None = None,
        max_redirects: int | None = None,
        user_agent: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the fetch renderer.

        Args:
            timeout_seconds: Deadline for the whole fetch
            max_bytes: Maximum accepted page size
            max_redirects: Maximum redirect hops
            user_agent: User-Agent header
            http_client: HTTP client (optional). Requests are addressed by IP,
                so a client shared with other callers should not keep
                connections alive across hosts.
        """
        self._timeout = timeout_seconds or settings.fetch_timeout_seconds
        self._max_bytes = max_bytes or settings.fetch_max_bytes
        self._max_redirects = settings.fetch_max_redirects if max_redirects is None else max_redirects
        self._user_agent = user_agent or settings.fetch_user_agent
        self._http_client = http_client
        self._owns_client = http_client is None

    @property
    def name(self) -> str:
        """Return the renderer name."""
        return "html_fetch"

    @property
    def is_configured(self) -> bool:
        """No credentials needed."""
        return True

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is not None:
            return self._http_client
        # No keep-alive: a pooled connection to one IP must not serve another host
        return httpx.AsyncClient(
            timeout=float(self._timeout),
            verify=settings.get_ssl_context(),
            limits=httpx.Limits(max_keepalive_connections=0),
        )

    async def _resolve_safe_target(self, url: str) -> str:
        """
        Reject non-http(s) URLs and hosts resolving to blocked addresses.

        Returns:
            A resolved address that passed the check
        """
        try:
            parsed = urlparse(url)
            scheme = parsed.scheme
            hostname = parsed.hostname
            port = parsed.port
        except ValueError as e:
            raise FetchRejectedError(url, "blocked_scheme", f"Unparseable URL: {e}") from e

        if scheme not in ("http", "https"):
            raise FetchRejectedError(url, "blocked_scheme", f"Scheme {scheme!r} is not allowed")

        if not hostname or is_blocked_hostname(hostname):
            raise FetchRejectedError(url, "blocked_address", f"Host {hostname!r} is not allowed")

        try:
            addresses = await resolve_host(hostname, port or (443 if scheme == "https" else 80))
        except OSError as e:
            raise FetchRejectedError(url, "dns_error", f"Could not resolve {hostname}: {e}") from e

        if not addresses:
            raise FetchRejectedError(url, "dns_error", f"No addresses for {hostname}")
        for address in addresses:
            if is_blocked_address(address):
                logger.warning("fetch_blocked_address", url=url, hostname=hostname, address=address)
                raise FetchRejectedError(url, "blocked_address", f"{hostname} resolves to a blocked address")
        return addresses[0]

    async def _read_body(self, response: httpx.Response, url: str, max_bytes: int) -> bytes:
        declared = response.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > max_bytes:
            raise FetchRejectedError(url, "response_too_large", f"Body exceeds {max_bytes} bytes")

        chunks: list[bytes] = []
        total = 0
        async for chunk in response.aiter_bytes():
            total += len(chunk)
            if total > max_bytes:
                raise FetchRejectedError(url, "response_too_large", f"Body exceeds {max_bytes} bytes")
            chunks.append(chunk)
        return b"".join(chunks)

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.status_code == 429:
            raise RenderRateLimitError(
                self.name,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        raise RenderHTTPError(self.name, response.status_code, response.reason_phrase or "Request failed")

    async def _fetch(
        self,
        url: str,
        accept: str,
        content_type_for: Callable[[str, str], str | None],
        max_bytes: int,
    ) -> FetchedResource:
        """
        Fetch a URL, following redirects manually and pinning each hop.

        Args:
            url: URL to fetch
            accept: Accept header
            content_type_for: Maps (declared content type, URL) to the accepted
                content type, or None to reject the body
            max_bytes: Maximum accepted body size

        Raises:
            FetchRejectedError: unsafe target or unacceptable response
            PipelineFailure: HTTP, timeout or connection failure
        """
        client = await self._get_client()
        should_close = self._owns_client and self._http_client is None
        current = url
        headers = {"User-Agent": self._user_agent, "Accept": accept}

        try:
            with anyio.fail_after(self._timeout):
                for _ in range(self._max_redirects + 1):
                    address = await self._resolve_safe_target(current)
                    try:
                        target, pinned_headers, extensions = pin_to_address(current, address)
                    except httpx.InvalidURL as e:
                        raise FetchRejectedError(current, "blocked_scheme", f"Unparseable URL: {e}") from e
                    async with client.stream(
                        "GET",
                        target,
                        headers={**headers, **pinned_headers},
                        extensions=extensions,
                        follow_redirects=False,
                    ) as response:
                        if response.status_code in REDIRECT_STATUSES:
                            location = response.headers.get("location")
                            if not location:
                                raise RenderHTTPError(self.name, response.status_code, "Redirect without Location")
                            current = urljoin(current, location)
                            logger.debug("fetch_redirect", url=url, location=current)
                            continue

                        if not response.is_success:
                            self._raise_for_status(response)

                        declared = response.headers.get("content-type", "").split(";")[0].strip().lower()
                        content_type = content_type_for(declared, current)
                        if content_type is None:
                            raise FetchRejectedError(
                                current,
                                "invalid_content_type",
                                f"Unsupported content type {declared or 'unknown'!r}",
                            )

                        body = await self._read_body(response, current, max_bytes)
                        return FetchedResource(current, body, content_type, response.charset_encoding)

                raise FetchRejectedError(url, "too_many_redirects", f"More than {self._max_redirects} redirects")
        except TimeoutError as e:
            raise RenderTimeoutError(self.name, self._timeout) from e
        except httpx.TimeoutException as e:
            raise RenderTimeoutError(self.name, self._timeout) from e
        except httpx.RequestError as e:
            raise RenderConnectionError(self.name, str(e) or e.__class__.__name__) from e
        finally:
            if should_close:
                await client.aclose()

    async def fetch(self, url: str) -> tuple[str, bytes, str | None]:
        """
        Fetch an HTML page.

        Returns:
            (final URL, body bytes, declared charset)
        """
        page = await self._fetch(
            url,
            "text/html,application/xhtml+xml;q=0.9,*/*;q=0.5",
            lambda declared, _url: declared if declared in HTML_CONTENT_TYPES else None,
            self._max_bytes,
        )
        return page.url, page.body, page.charset

    async def fetch_image(self, url: str, max_bytes: int | None = None) -> FetchedResource:
        """
        Fetch an image under the same address checks as pages.

        The content type comes from the response header when it names an
        image, otherwise from the URL's file extension.
        """
        return await self._fetch(
            url,
            "image/avif,image/webp,image/*;q=0.9,*/*;q=0.5",
            image_content_type,
            max_bytes or settings.image_max_bytes,
        )

    async def scrape(self, url: str, selectors: Sequence[str]) -> SelectorResultMap:
        """
        Fetch a page and evaluate selectors against its HTML.

        Args:
            url: Normalized URL to fetch
            selectors: CSS selectors to evaluate

        Returns:
            SelectorResultMap carrying the post-redirect URL as final_url
        """
        start_time = time.monotonic()
        final_url, body, encoding = await self.fetch(url)

        # BeautifulSoup is synchronous
        loop = asyncio.get_running_loop()
        selector_map = await loop.run_in_executor(None, select_elements, body, selectors, final_url, encoding)

        logger.info(
            "html_fetch_complete",
            url=url,
            final_url=final_url,
            bytes=len(body),
            matched_selectors=len(selector_map),
            elapsed_ms=(time.monotonic() - start_time) * 1000,
        )
        return selector_map

    async def close(self) -> None:
        """Close the renderer and release resources."""
        pass

