"""Promotion badge detection (marketing call-outs, independent of sale pricing)."""
import re
from typing import Optional

from selectolax.parser import Node

PROMOTION_SELECTORS = [
    ".promo-badge",
    ".promotion",
    ".offer",
    ".special",
    ".sale-badge",
    ".discount-badge",
    "[class*='badge']",
    "[class*='promo']",
    "[class*='offer']",
    ".redemption",
    ".cashback",
    ".bonus",
    "[data-promotion]",
]

# Overlays are generic image call-outs; only offer-like wording counts.
OVERLAY_SELECTORS = [
    ".product-badge",
    ".overlay",
    ".product-overlay",
    "[class*='overlay']",
    "[class*='sticker']",
]
OVERLAY_KEYWORDS = re.compile(r"bonus|redemption|redeem|cashback|cash back", re.IGNORECASE)

MAX_PROMOTION_TEXT = 120

_OVERLAY_CLASS = re.compile(r"product-badge|overlay|sticker", re.IGNORECASE)


def _is_overlay(node: Node) -> bool:
    return bool(_OVERLAY_CLASS.search(node.attributes.get("class") or ""))


def _clean(text: str) -> str:
    text = re.sub(r"\s+", " ", text).strip()
    return text[:MAX_PROMOTION_TEXT]


def detect_promotion(node: Node) -> tuple[bool, Optional[str]]:
    """Return (has_promotion, promotion_text) for a product card."""
    for selector in PROMOTION_SELECTORS:
        for badge in node.css(selector):
            if _is_overlay(badge):
                continue
            text = _clean(badge.text(separator=" ", strip=True))
            if text:
                return True, text

    for selector in OVERLAY_SELECTORS:
        for overlay in node.css(selector):
            text = _clean(overlay.text(separator=" ", strip=True) or overlay.attributes.get("alt") or "")
            if text and OVERLAY_KEYWORDS.search(text):
                return True, text

    return False, None
