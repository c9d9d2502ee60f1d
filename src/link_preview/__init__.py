"""Link Preview Pipeline: link metadata extraction, screenshots and provider enrichment."""

__version__ = "0.1.0"
