"""Marketplace pricing for Amazon product pages."""

from link_preview.models.category import CategoryDetail, ProviderEnrichment
from link_preview.models.selectors import SelectorResultMap
from link_preview.providers.common import raw_attribute, raw_text

PRICE_TEXT_SELECTORS = (
    "#priceblock_ourprice",
    "#priceblock_dealprice",
    ".a-price .a-offscreen",
)
PRICE_META_SELECTORS = (
    "meta[name='price']",
    "meta[property='og:price:amount']",
)
CURRENCY_SELECTOR = "meta[property='og:price:currency']"

SELECTORS = (*PRICE_META_SELECTORS, CURRENCY_SELECTOR, *PRICE_TEXT_SELECTORS)


def _price_text(selector_map: SelectorResultMap) -> str | None:
    for selector in PRICE_TEXT_SELECTORS:
        value = raw_text(selector_map, selector)
        if value:
            return value
    for selector in PRICE_META_SELECTORS:
        value = raw_attribute(selector_map, selector, "content")
        if value:
            return value
    return None


def enrich_amazon(selector_map: SelectorResultMap) -> ProviderEnrichment | None:
    """
    Combine an on-page price with the declared currency.

    A currency without a price still yields a Price fact holding the currency
    code; neither present means no enrichment.
    """
    price = _price_text(selector_map)
    currency = raw_attribute(selector_map, CURRENCY_SELECTOR, "content")

    if not price and not currency:
        return None

    label = f"{price or ''} {currency}".strip() if currency else price
    return ProviderEnrichment(
        facts=[CategoryDetail(label="Price", value=label)] if label else [],
        raw={"price": price, "currency": currency},
    )
