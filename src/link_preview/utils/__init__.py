"""Utility modules for the link preview pipeline."""

from link_preview.utils.sanitize import (
    is_blocked_address,
    is_blocked_hostname,
    normalize_url,
    sanitize_image_url,
    sanitize_text,
    sanitize_url,
)

__all__ = [
    "is_blocked_address",
    "is_blocked_hostname",
    "normalize_url",
    "sanitize_image_url",
    "sanitize_text",
    "sanitize_url",
]
