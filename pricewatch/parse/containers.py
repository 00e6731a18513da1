"""Locate product cards on a listing page and extract one draft per card."""
import logging
import re
from dataclasses import dataclass
from typing import Optional

from selectolax.parser import HTMLParser, Node

from pricewatch.parse.normalize import extract_brand, normalize_image_url
from pricewatch.parse.pricing import PriceResolution, resolve_price
from pricewatch.parse.promotions import detect_promotion
from pricewatch.sites.registry import SiteProfile

logger = logging.getLogger(__name__)

IMAGE_ATTRIBUTES = ("src", "data-src", "data-lazy-src", "data-original")


@dataclass
class ProductDraft:
    """Everything a card yields before model-number resolution and SKU assignment."""

    title: str
    pricing: PriceResolution
    image: str
    url: str
    brand: str
    has_promotion: bool = False
    promotion_text: Optional[str] = None


def find_containers(
    parser: HTMLParser, selectors: tuple[str, ...], min_matches: int
) -> tuple[Optional[str], list[Node]]:
    """First selector with at least ``min_matches`` hits, and its nodes in document order."""
    for selector in selectors:
        nodes = parser.css(selector)
        if len(nodes) >= min_matches:
            logger.debug(f"Selector '{selector}' matched {len(nodes)} containers")
            return selector, nodes
        if nodes:
            logger.debug(f"Selector '{selector}' matched only {len(nodes)} containers, skipping")
    return None, []


def _clean_text(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def extract_title(node: Node, selectors: tuple[str, ...]) -> str:
    """First non-empty title text, else an anchor title or image alt attribute."""
    for selector in selectors:
        for candidate in node.css(selector):
            text = _clean_text(candidate.text(separator=" ", strip=True))
            if text:
                return text
            break

    for anchor in node.css("a[title]"):
        text = _clean_text(anchor.attributes.get("title") or "")
        if text:
            return text
    for image in node.css("img[alt]"):
        text = _clean_text(image.attributes.get("alt") or "")
        if text:
            return text
    return ""


def extract_image(node: Node, base_url: str) -> str:
    image = node.css_first("img")
    if image is None:
        return ""
    for attribute in IMAGE_ATTRIBUTES:
        src = image.attributes.get(attribute)
        if src:
            return normalize_image_url(src, base_url)
    return ""


def extract_link(node: Node, base_url: str) -> str:
    href = node.attributes.get("href") if node.tag == "a" else None
    if not href:
        anchor = node.css_first("a[href]")
        href = anchor.attributes.get("href") if anchor is not None else None
    if not href:
        return base_url
    return normalize_image_url(href, base_url)


def extract_from_container(node: Node, profile: SiteProfile, base_url: str) -> Optional[ProductDraft]:
    """
    Extract a draft product from one card.

    Returns None when the card has no usable title, is rejected by the site's
    title filter, or carries no price.
    """
    title = extract_title(node, profile.title_selectors)
    if len(title) < max(profile.min_title_length, 1):
        return None
    if profile.title_filter and not profile.title_filter(title):
        return None

    pricing = resolve_price(node)
    if pricing is None:
        logger.debug(f"Dropping '{title}': no price")
        return None

    has_promotion, promotion_text = detect_promotion(node)
    if profile.promotion_override:
        override = profile.promotion_override(node)
        if override:
            has_promotion, promotion_text = True, override

    return ProductDraft(
        title=title,
        pricing=pricing,
        image=extract_image(node, base_url),
        url=extract_link(node, base_url),
        brand=extract_brand(title),
        has_promotion=has_promotion,
        promotion_text=promotion_text,
    )


def extract_drafts(parser: HTMLParser, profile: SiteProfile, base_url: str, limit: int) -> tuple[Optional[str], list[ProductDraft]]:
    """Run card extraction over the first accepted container selector, up to ``limit`` drafts."""
    selector, nodes = find_containers(parser, profile.container_selectors, profile.min_matches)
    drafts: list[ProductDraft] = []
    for node in nodes:
        if len(drafts) >= limit:
            break
        try:
            draft = extract_from_container(node, profile, base_url)
        except Exception as e:
            logger.debug(f"Skipping container after parse error: {e}")
            continue
        if draft is not None:
            drafts.append(draft)
    return selector, drafts
