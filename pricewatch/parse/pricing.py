"""
Sale-price resolution for product cards.

Competitor markup differs per site and often per card, so the resolver walks a
ladder of rules and the first rule that produces a price wins:

1. distinct was-price and now-price elements (sale when was > now)
2. textual "original price" markers (Was, RRP, Originally, Normally, PRICE DROP)
3. a single generic price element (no sale)
4. the last dollar amount in the card text (no sale)
5. the largest bare decimal between 5 and 10000 (no sale)

No rule matching means the card has no price and must be dropped.
"""
import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from selectolax.parser import HTMLParser, Node

from pricewatch.parse.normalize import ZERO, parse_price

logger = logging.getLogger(__name__)

WAS_PRICE_SELECTORS = [
    ".was-price",
    ".old-price",
    ".regular-price",
    ".original-price",
    ".list-price",
    ".price-was",
    "del",
    "s",
    "strike",
    "[class*='was']",
    "[class*='original']",
]

NOW_PRICE_SELECTORS = [
    ".sale-price",
    ".special-price",
    ".now-price",
    ".current-price",
    ".price-now",
    ".price.sale",
    "[class*='sale-price']",
    "[class*='price-now']",
    "[class*='now-price']",
    "ins",
]

GENERIC_PRICE_SELECTORS = NOW_PRICE_SELECTORS + [
    "[itemprop='price']",
    "[data-price-type='finalPrice']",
    ".price",
    ".amount",
    ".woocommerce-Price-amount",
    "[data-price]",
    "[class*='price']",
    "[class*='Price']",
]

_AMOUNT = r"(\d[\d,]*(?:\.\d{1,2})?)"
DOLLAR_RE = re.compile(r"\$\s?" + _AMOUNT)
BARE_DECIMAL_RE = re.compile(r"(?<![\d.,])(\d{1,3}(?:,\d{3})+|\d+)\.(\d{2})(?![\d.])")

# Each marker captures the original price, except the badge which anchors on the largest amount.
ORIGINAL_PRICE_MARKERS = [
    ("was", re.compile(r"\bWas:?\s*\$\s?" + _AMOUNT, re.IGNORECASE)),
    ("rrp", re.compile(r"\bRRP:?\s*\$\s?" + _AMOUNT, re.IGNORECASE)),
    ("originally", re.compile(r"\bOriginally:?\s*\$\s?" + _AMOUNT, re.IGNORECASE)),
    ("normally", re.compile(r"\bNormally:?\s*\$\s?" + _AMOUNT, re.IGNORECASE)),
    ("price_drop", re.compile(r"(?:\b\d{1,2}\s?%\s*)?PRICE\s*DROP|\b\d{1,2}\s?%\s*OFF\b", re.IGNORECASE)),
]

_STRUCK_CLASS_RE = re.compile(r"(?:^|[\s_-])(?:was|old|original|regular|strike|rrp|list-price)", re.IGNORECASE)
_STRUCK_TAGS = {"del", "s", "strike"}

MIN_PLAUSIBLE = Decimal("5")
MAX_PLAUSIBLE = Decimal("10000")


@dataclass(frozen=True)
class PriceResolution:
    price: Decimal
    regular_price: Optional[Decimal] = None
    rule: str = ""

    @property
    def on_sale(self) -> bool:
        return self.regular_price is not None


def container_text(node: Node) -> str:
    """Visible text of a card plus aria-labels (some sites put Was/Now there)."""
    parts = [node.text(separator=" ", strip=True)]
    labels = [node.attributes.get("aria-label")] + [n.attributes.get("aria-label") for n in node.css("[aria-label]")]
    for label in labels:
        if label and label not in parts:
            parts.append(label)
    return " ".join(part for part in parts if part)


def price_from_text(text: str | None) -> Decimal:
    """First dollar amount in the text, else the whole text parsed as a price."""
    if not text:
        return ZERO
    match = DOLLAR_RE.search(text)
    if match:
        return parse_price(match.group(1))
    return parse_price(text)


def dollar_amounts(text: str) -> list[Decimal]:
    amounts = []
    for match in DOLLAR_RE.finditer(text):
        value = parse_price(match.group(1))
        if value > 0:
            amounts.append(value)
    return amounts


def _is_struck(node: Node) -> bool:
    if node.tag in _STRUCK_TAGS:
        return True
    classes = node.attributes.get("class") or ""
    return bool(_STRUCK_CLASS_RE.search(classes))


def _unstruck_text(node: Node) -> str:
    """Text of a price element with its struck-through descendants removed."""
    body = HTMLParser(node.html or "").body
    if body is None:
        return node.text(separator=" ", strip=True)
    while True:
        struck = next((child for child in body.css("*") if child.tag != "body" and _is_struck(child)), None)
        if struck is None:
            break
        struck.decompose()
    return body.text(separator=" ", strip=True)


def _node_price(node: Node, drop_struck: bool = False) -> Decimal:
    content = node.attributes.get("content") or node.attributes.get("data-price")
    if content:
        value = parse_price(content)
        if value > 0:
            return value
    text = _unstruck_text(node) if drop_struck else node.text(separator=" ", strip=True)
    return price_from_text(text)


def _first_selector_price(node: Node, selectors: list[str], skip_struck: bool = False) -> Decimal:
    for selector in selectors:
        for candidate in node.css(selector):
            if skip_struck and _is_struck(candidate):
                continue
            value = _node_price(candidate, drop_struck=skip_struck)
            if value > 0:
                return value
            break
    return ZERO


def _resolve_was_now(node: Node) -> Optional[PriceResolution]:
    was = _first_selector_price(node, WAS_PRICE_SELECTORS)
    if was <= 0:
        return None
    now = _first_selector_price(node, NOW_PRICE_SELECTORS, skip_struck=True)
    if now <= 0:
        # Struck-through price next to a plain price element
        now = _first_selector_price(node, GENERIC_PRICE_SELECTORS, skip_struck=True)
    if was > 0 and now > 0 and was > now:
        return PriceResolution(price=now, regular_price=was, rule="was_now")
    return None


def _resolve_markers(text: str) -> Optional[PriceResolution]:
    amounts = dollar_amounts(text)
    if not amounts:
        return None
    for name, pattern in ORIGINAL_PRICE_MARKERS:
        match = pattern.search(text)
        if not match:
            continue
        if match.groups() and match.group(1):
            anchor = parse_price(match.group(1))
        else:
            anchor = max(amounts)
        if anchor <= 0:
            continue
        # TODO: revisit the half-price floor once clearance listings (>50% off) are sampled
        floor = anchor / 2
        for candidate in amounts:
            if floor < candidate < anchor:
                return PriceResolution(price=candidate, regular_price=anchor, rule=f"marker:{name}")
    return None


def _resolve_price_element(node: Node) -> Optional[PriceResolution]:
    value = _first_selector_price(node, GENERIC_PRICE_SELECTORS, skip_struck=True)
    if value > 0:
        return PriceResolution(price=value, rule="price_element")
    return None


def _resolve_dollar_scan(text: str) -> Optional[PriceResolution]:
    amounts = dollar_amounts(text)
    if amounts:
        # Sale price conventionally follows the struck-through original.
        return PriceResolution(price=amounts[-1], rule="dollar_scan")
    return None


def _resolve_number_scan(text: str) -> Optional[PriceResolution]:
    candidates = []
    for match in BARE_DECIMAL_RE.finditer(text):
        value = parse_price(match.group(0))
        if MIN_PLAUSIBLE <= value <= MAX_PLAUSIBLE:
            candidates.append(value)
    if candidates:
        return PriceResolution(price=max(candidates), rule="number_scan")
    return None


def resolve_price(node: Node) -> Optional[PriceResolution]:
    """Resolve the payable price (and pre-sale price, if any) of a product card."""
    resolution = _resolve_was_now(node)
    if resolution:
        return resolution

    text = container_text(node)
    resolution = _resolve_markers(text)
    if resolution:
        return resolution

    resolution = _resolve_price_element(node)
    if resolution:
        return resolution

    for rule in (_resolve_dollar_scan, _resolve_number_scan):
        resolution = rule(text)
        if resolution:
            return resolution

    logger.debug("No price found in container")
    return None
