"""Copies of preview images kept in blob storage."""

import base64
import binascii
import io
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from urllib.parse import unquote_to_bytes

import structlog
from PIL import Image, UnidentifiedImageError

from link_preview.config import settings
from link_preview.exceptions import PipelineFailure
from link_preview.models.preview import utc_now
from link_preview.pipeline.stores import BlobStore
from link_preview.scrapers.html_fetch import FetchedResource

logger = structlog.get_logger(__name__)

_DATA_URI_RE = re.compile(r"^data:([^,]*),(.*)$", re.IGNORECASE | re.DOTALL)


class ImageFetcher(Protocol):
    """Downloads an image under the fetch safety checks."""

    async def fetch_image(self, url: str, max_bytes: int | None = None) -> FetchedResource: ...


@dataclass(frozen=True)
class CachedImage:
    """A stored image copy and its pixel size."""

    storage_id: str
    updated_at: datetime
    width: int
    height: int


def read_dimensions(data: bytes) -> tuple[int, int] | None:
    """Pixel size from the image header, or None when it cannot be decoded."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError):
        return None
    return (width, height) if width and height else None


def decode_data_uri(uri: str) -> tuple[bytes, str] | None:
    """Payload and media type of a data: URI."""
    match = _DATA_URI_RE.match(uri)
    if not match:
        return None
    params = match.group(1).split(";")
    content_type = params[0].strip().lower()
    payload = match.group(2)
    try:
        if any(param.strip().lower() == "base64" for param in params[1:]):
            data = base64.b64decode("".join(payload.split()), validate=True)
        else:
            data = unquote_to_bytes(payload)
    except (binascii.Error, ValueError):
        return None
    return data, content_type


class PreviewImageCache:
    """
    Stores a copy of a preview's resolved image.

    Best effort throughout: a failed download, a non-image body or an
    undecodable image is logged and the preview is saved without a copy.
    """

    def __init__(self, blobs: BlobStore, fetcher: ImageFetcher, max_bytes: int | None = None) -> None:
        self._blobs = blobs
        self._fetcher = fetcher
        self._max_bytes = max_bytes or settings.image_max_bytes

    async def _load(self, image_url: str) -> tuple[bytes, str] | None:
        if image_url.lower().startswith("data:"):
            decoded = decode_data_uri(image_url)
            if decoded is None or len(decoded[0]) > self._max_bytes:
                return None
            return decoded

        try:
            fetched = await self._fetcher.fetch_image(image_url, self._max_bytes)
        except PipelineFailure as e:
            logger.warning(
                "preview_image_fetch_failed",
                url=image_url,
                failure_type=e.failure_type.value,
                error=e.message,
            )
            return None
        return fetched.body, fetched.content_type

    async def store(self, image_url: str) -> CachedImage | None:
        """
        Download, validate and store an image.

        Args:
            image_url: Sanitized http(s) or data: image URL

        Returns:
            The stored copy, or None when nothing was stored
        """
        loaded = await self._load(image_url)
        if loaded is None:
            return None
        data, content_type = loaded
        if not content_type.startswith("image/"):
            logger.info("preview_image_skipped", url=image_url[:200], reason="not an image")
            return None

        dimensions = read_dimensions(data)
        if dimensions is None:
            logger.info("preview_image_skipped", url=image_url[:200], reason="unreadable image")
            return None

        storage_id = await self._blobs.store(data, content_type)
        width, height = dimensions
        logger.info(
            "preview_image_stored",
            url=image_url[:200],
            storage_id=storage_id,
            width=width,
            height=height,
            bytes=len(data),
        )
        return CachedImage(storage_id=storage_id, updated_at=utc_now(), width=width, height=height)

    async def release(self, storage_id: str) -> None:
        """Delete a copy no longer referenced by any preview."""
        await self._blobs.delete(storage_id)
        logger.info("preview_image_released", storage_id=storage_id)
