"""Selector result model shared by extraction and enrichment."""

from collections.abc import Iterable

from pydantic import BaseModel, Field


class SelectorAttribute(BaseModel):
    """A single attribute captured from a matched element."""

    name: str
    value: str

    model_config = {"extra": "ignore"}


class SelectorResultItem(BaseModel):
    """One element matched by a selector."""

    text: str | None = None
    html: str | None = None
    attributes: list[SelectorAttribute] | None = None
    width: float | None = None
    height: float | None = None

    model_config = {"extra": "ignore"}

    def attribute(self, name: str) -> str | None:
        """Return the value of an attribute (case-insensitive), or None."""
        if not self.attributes:
            return None
        wanted = name.lower()
        for attr in self.attributes:
            if attr.name.lower() == wanted:
                return attr.value
        return None


class SelectorResult(BaseModel):
    """All elements matched by one selector, in document order."""

    selector: str
    results: list[SelectorResultItem] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class SelectorResultMap:
    """
    Ordered mapping of selector -> matched elements.

    Built once per extraction attempt and consumed by the preview parser and
    every enrichment handler. It is never persisted; the preview keeps only the
    first item per selector as a debug payload.
    """

    def __init__(
        self,
        entries: dict[str, list[SelectorResultItem]] | None = None,
        final_url: str | None = None,
    ) -> None:
        self._entries: dict[str, list[SelectorResultItem]] = dict(entries or {})
        # URL the page was actually served from, when the renderer knows it
        self.final_url = final_url

    @classmethod
    def from_results(
        cls,
        results: Iterable[SelectorResult],
        final_url: str | None = None,
    ) -> "SelectorResultMap":
        """Build a map from rendering service results; later duplicates are ignored."""
        entries: dict[str, list[SelectorResultItem]] = {}
        for result in results:
            if not result.selector or result.selector in entries:
                continue
            entries[result.selector] = list(result.results)
        return cls(entries, final_url=final_url)

    @classmethod
    def from_debug_entries(cls, entries: Iterable[SelectorResult] | None) -> "SelectorResultMap":
        """Rebuild a map from a stored preview's debug entries."""
        return cls.from_results(entries or [])

    def __contains__(self, selector: object) -> bool:
        return selector in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def selectors(self) -> list[str]:
        return list(self._entries)

    def items(self, selector: str) -> list[SelectorResultItem]:
        return self._entries.get(selector, [])

    def first(self, selector: str) -> SelectorResultItem | None:
        items = self._entries.get(selector)
        return items[0] if items else None

    def text(self, selector: str) -> str | None:
        """Trimmed text of the first match, or None when empty."""
        item = self.first(selector)
        if item is None or item.text is None:
            return None
        value = item.text.strip()
        return value or None

    def attribute(self, selector: str, name: str) -> str | None:
        """Trimmed attribute of the first match, or None when empty."""
        item = self.first(selector)
        if item is None:
            return None
        value = item.attribute(name)
        if value is None:
            return None
        value = value.strip()
        return value or None

    def first_text(self, selectors: Iterable[str]) -> str | None:
        for selector in selectors:
            value = self.text(selector)
            if value:
                return value
        return None

    def first_attribute(self, selectors: Iterable[str], name: str) -> str | None:
        for selector in selectors:
            value = self.attribute(selector, name)
            if value:
                return value
        return None

    def to_debug_entries(self) -> list[SelectorResult]:
        """First item per selector, without html, for the preview's raw payload."""
        entries: list[SelectorResult] = []
        for selector, items in self._entries.items():
            if not items:
                continue
            first = items[0]
            entries.append(
                SelectorResult(
                    selector=selector,
                    results=[
                        SelectorResultItem(
                            text=first.text,
                            attributes=first.attributes,
                            width=first.width,
                            height=first.height,
                        )
                    ],
                )
            )
        return entries
