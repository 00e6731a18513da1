"""Read product lists out of JSON API responses captured while a page rendered."""
import logging
from decimal import Decimal
from typing import Any, Iterator, Optional

from pricewatch.parse.containers import ProductDraft
from pricewatch.parse.normalize import ZERO, extract_brand, normalize_image_url, parse_price
from pricewatch.parse.pricing import PriceResolution

logger = logging.getLogger(__name__)

TITLE_KEYS = ("name", "title", "productName", "product_name", "displayName")
PRICE_KEYS = ("salePrice", "sale_price", "finalPrice", "currentPrice", "price", "amount")
REGULAR_PRICE_KEYS = ("wasPrice", "was_price", "regularPrice", "regular_price", "listPrice", "originalPrice", "rrp")
IMAGE_KEYS = ("image", "imageUrl", "image_url", "thumbnail", "images", "img")
URL_KEYS = ("url", "productUrl", "product_url", "link", "href", "slug")

MAX_DEPTH = 8
MIN_LIST_LENGTH = 3


def _first(item: dict, keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = item.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def _as_price(value: Any) -> Decimal:
    if isinstance(value, dict):
        value = _first(value, ("value", "amount", "price", "formatted", "formattedValue"))
    if isinstance(value, bool) or value is None:
        return ZERO
    return parse_price(str(value))


def _as_string(value: Any) -> str:
    if isinstance(value, list):
        value = value[0] if value else ""
    if isinstance(value, dict):
        value = _first(value, ("url", "src", "href", "name"))
    return str(value).strip() if value else ""


def looks_like_product(item: Any) -> bool:
    return isinstance(item, dict) and _first(item, TITLE_KEYS) is not None and _first(item, PRICE_KEYS) is not None


def iter_product_lists(payload: Any, depth: int = 0) -> Iterator[list[dict]]:
    """Yield every list inside ``payload`` whose items mostly look like products."""
    if depth > MAX_DEPTH:
        return
    if isinstance(payload, list):
        dicts = [item for item in payload if isinstance(item, dict)]
        if len(dicts) >= MIN_LIST_LENGTH:
            hits = sum(1 for item in dicts if looks_like_product(item))
            if hits * 2 > len(dicts):
                yield [item for item in dicts if looks_like_product(item)]
                return
        for item in payload:
            yield from iter_product_lists(item, depth + 1)
    elif isinstance(payload, dict):
        for value in payload.values():
            yield from iter_product_lists(value, depth + 1)


def draft_from_item(item: dict, base_url: str) -> Optional[ProductDraft]:
    title = str(_first(item, TITLE_KEYS) or "").strip()
    if not title:
        return None
    price = _as_price(_first(item, PRICE_KEYS))
    if price <= 0:
        return None
    regular = _as_price(_first(item, REGULAR_PRICE_KEYS))
    pricing = PriceResolution(
        price=price,
        regular_price=regular if regular > price else None,
        rule="json",
    )
    link = _as_string(_first(item, URL_KEYS))
    return ProductDraft(
        title=title,
        pricing=pricing,
        image=normalize_image_url(_as_string(_first(item, IMAGE_KEYS)), base_url),
        url=normalize_image_url(link, base_url) if link else base_url,
        brand=_as_string(item.get("brand")) or extract_brand(title),
    )


def drafts_from_payloads(payloads: list[Any], base_url: str, limit: int) -> list[ProductDraft]:
    """Drafts from the largest product-like list found across captured payloads."""
    best: list[dict] = []
    for payload in payloads:
        for items in iter_product_lists(payload):
            if len(items) > len(best):
                best = items
    drafts: list[ProductDraft] = []
    for item in best:
        if len(drafts) >= limit:
            break
        draft = draft_from_item(item, base_url)
        if draft is not None:
            drafts.append(draft)
    if drafts:
        logger.debug(f"Recovered {len(drafts)} products from captured JSON")
    return drafts
