"""
Instagram primary image.

Instagram's og:image is a small cropped thumbnail. The rendered post media
inside <article>/<main> is the better preview image, so for Instagram hosts
the largest rendered image of at least MIN_DIMENSION on both sides wins.
"""

from urllib.parse import urlparse

from link_preview.models.selectors import SelectorResultMap
from link_preview.utils.sanitize import sanitize_url

INSTAGRAM_HOSTNAME = "instagram.com"
MEDIA_SELECTOR = "article img, main img"
MIN_DIMENSION = 400


def is_instagram_url(url: str | None) -> bool:
    if not url:
        return False
    try:
        hostname = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return hostname == INSTAGRAM_HOSTNAME or hostname.endswith(f".{INSTAGRAM_HOSTNAME}")


def pick_primary_image(selector_map: SelectorResultMap, base_url: str) -> str | None:
    """
    Largest post image by rendered area.

    Only http(s) sources count; data: placeholders and images without a
    measured size are ignored.
    """
    best: tuple[float, str] | None = None
    for item in selector_map.items(MEDIA_SELECTOR):
        width, height = item.width or 0, item.height or 0
        if width < MIN_DIMENSION or height < MIN_DIMENSION:
            continue
        url = sanitize_url(base_url, item.attribute("src"))
        if not url:
            continue
        area = width * height
        if best is None or area > best[0]:
            best = (area, url)
    return best[1] if best else None
