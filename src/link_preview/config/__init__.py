"""Configuration module."""

from link_preview.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
