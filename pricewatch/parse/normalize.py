"""Text normalizers: prices, URLs, brand and model inference."""
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from urllib.parse import urljoin, urlparse

from pricewatch.parse.models import (
    MODEL_NOT_FOUND,
    UNKNOWN_BRAND,
    UNKNOWN_COMPETITOR,
    UNKNOWN_MODEL,
)

ZERO = Decimal("0")
CENT = Decimal("0.01")

# Checked first so the generic patterns cannot capture a truncated brand
# ("SP" from "SP Tools", "Black" from "Black+Decker").
KNOWN_BRANDS = [
    "Makita", "DeWalt", "Milwaukee", "Bosch", "Ryobi", "Stanley", "Black+Decker",
    "Festool", "Metabo", "Hilti",
    "SP Tools", "Kincrome", "Sidchrome", "GearWrench", "Teng Tools", "Bahco",
    "Matson", "Schumacher", "NOCO", "Century", "Projecta", "CTEK", "Optimate",
    "Ozito", "AEG", "Hitachi", "Panasonic", "Craftsman", "Ridgid",
    "SCA", "ToolPRO", "Blackridge", "Mechpro", "Arlec",
]

_BRAND_PATTERNS = [
    re.compile(
        r"^(" + "|".join(re.escape(b) for b in sorted(KNOWN_BRANDS, key=len, reverse=True)) + r")(?![A-Za-z])",
        re.IGNORECASE,
    ),
    re.compile(r"^([A-Z][A-Z0-9]+(?:\s+[A-Z][a-z]+)?)"),
    re.compile(r"^([A-Z][a-z]+)"),
]

_MODEL_PATTERNS = [
    re.compile(r"([A-Z]{2}\d{5})", re.IGNORECASE),
    re.compile(r"([A-Z]+\d{3,})", re.IGNORECASE),
    re.compile(r"(\b\d{5,}\b)"),
    re.compile(r"(Model\s+[A-Z0-9-]+)", re.IGNORECASE),
    re.compile(r"([A-Z0-9-]{6,})"),
]

_CATEGORY_PATTERNS = [
    re.compile(r"/category/([^/]+)", re.IGNORECASE),
    re.compile(r"/collections/([^/]+)", re.IGNORECASE),
    re.compile(r"/c/([^/]+)", re.IGNORECASE),
    re.compile(r"/([^/]+)/[^/]*$"),
]

MODEL_SENTINELS = {"", MODEL_NOT_FOUND.upper(), UNKNOWN_MODEL.upper()}


def parse_price(text: str | None) -> Decimal:
    """
    Parse a price string like "$1,299.00" or "Now: $99".
    Keeps digits, dots and commas, drops thousands separators.
    Returns 0 when nothing usable remains. Values are rounded to cents.
    """
    if not text:
        return ZERO
    cleaned = re.sub(r"[^\d.,]", "", str(text)).replace(",", "")
    if not cleaned:
        return ZERO
    try:
        value = Decimal(cleaned)
        if not value.is_finite() or value < 0:
            return ZERO
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return ZERO


def normalize_image_url(src: str | None, base_url: str) -> str:
    """Make an image or link URL absolute against the listing page URL."""
    if not src:
        return ""
    src = src.strip()
    if not src:
        return ""
    if src.startswith("data:"):
        return src
    if src.startswith("//"):
        return "https:" + src
    if src.startswith("http://") or src.startswith("https://"):
        return src
    base = urlparse(base_url)
    if src.startswith("/"):
        return f"{base.scheme}://{base.netloc}{src}"
    return urljoin(base_url, src)


def extract_brand(title: str) -> str:
    """Infer the brand from the start of a product title."""
    title = (title or "").strip()
    for pattern in _BRAND_PATTERNS:
        match = pattern.match(title)
        if match:
            return match.group(1).strip()
    return UNKNOWN_BRAND


def extract_model(title: str, brand: str) -> str:
    """Infer a model number from a title using common model-number shapes."""
    title = (title or "").strip()
    for pattern in _MODEL_PATTERNS:
        match = pattern.search(title)
        if match:
            return match.group(1).upper()

    # No recognisable shape: first token after the brand
    remainder = title.replace(brand, "", 1) if brand else title
    remainder = remainder.strip().lstrip("- ").strip()
    if not remainder:
        return UNKNOWN_MODEL
    return remainder.split()[0]


def normalize_model_number(value: str | None) -> str | None:
    """Canonical form used to group catalog products. None for sentinels."""
    if value is None:
        return None
    normalized = re.sub(r"\s+", " ", value).strip().upper()
    if normalized in MODEL_SENTINELS:
        return None
    return normalized


def is_usable_model(value: str | None) -> bool:
    return normalize_model_number(value) is not None


def hostname_key(url: str) -> str:
    """Lowercased hostname without a leading www."""
    host = (urlparse(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def category_from_url(url: str) -> str:
    """Human readable category name from the listing URL path."""
    try:
        path = urlparse(url).path
    except ValueError:
        return "Products"
    for pattern in _CATEGORY_PATTERNS:
        match = pattern.search(path)
        if match:
            words = re.sub(r"[-_]+", " ", match.group(1)).split()
            if words:
                return " ".join(word.capitalize() for word in words)
    return "Products"


def competitor_name_from_url(url: str) -> str:
    """Display name for a site without a registry entry."""
    try:
        host = hostname_key(url)
    except ValueError:
        return UNKNOWN_COMPETITOR
    if not host:
        return UNKNOWN_COMPETITOR
    first = host.split(".")[0]
    return first[:1].upper() + first[1:]
