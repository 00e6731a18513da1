"""
Competitor registry.

Each competitor is a data entry: display name, hostname fragments, container and
title selectors, SKU prefix and rendering backend. Sites that need bespoke
behaviour attach a small hook (title filter or promotion override) instead of
getting their own extractor.
"""
from dataclasses import dataclass, replace
from typing import Callable, Optional

from selectolax.parser import Node

from pricewatch.parse.models import Backend

TitleFilter = Callable[[str], bool]
PromotionOverride = Callable[[Node], Optional[str]]

GENERIC_TITLE_SELECTORS = ["h1", "h2", "h3", "h4", "[class*='title']", "[class*='name']"]


@dataclass(frozen=True)
class SiteProfile:
    """Strategy descriptor for one competitor."""

    key: str
    name: str
    domains: tuple[str, ...]
    sku_prefix: str
    container_selectors: tuple[str, ...]
    title_selectors: tuple[str, ...]
    backend: Backend = "static"
    # Fewer matches than this means the selector hit something other than a listing grid.
    min_matches: int = 5
    min_title_length: int = 1
    title_filter: Optional[TitleFilter] = None
    promotion_override: Optional[PromotionOverride] = None
    load_more_selectors: tuple[str, ...] = ()

    def matches_host(self, host: str) -> bool:
        return any(domain in host for domain in self.domains)


def keyword_filter(*keywords: str) -> TitleFilter:
    """Keep only titles that mention one of the keywords (case-insensitive)."""
    lowered = tuple(k.lower() for k in keywords)

    def _accept(title: str) -> bool:
        text = title.lower()
        return any(k in text for k in lowered)

    return _accept


def club_price_override(node: Node) -> Optional[str]:
    """Supercheap Auto shows a member-only price badge on some cards."""
    if node.css_first(".club-price, .member-price") is not None:
        return "Club Price Available"
    return None


SITES: tuple[SiteProfile, ...] = (
    SiteProfile(
        key="sydneytools",
        name="Sydney Tools",
        domains=("sydneytools",),
        sku_prefix="SYDNEY",
        container_selectors=(".product-card", ".ant-card"),
        title_selectors=(".ant-card-meta-title", ".product-title"),
        backend="browser",
    ),
    SiteProfile(
        key="bunnings",
        name="Bunnings",
        domains=("bunnings",),
        sku_prefix="BUNNINGS",
        container_selectors=(
            "[data-locator='product-tile']",
            ".product-tile",
            "article[class*='ProductTile']",
        ),
        title_selectors=("[data-locator='product-title']", "h3", ".product-title"),
    ),
    SiteProfile(
        key="totaltools",
        name="Total Tools",
        domains=("totaltools",),
        sku_prefix="TOTAL",
        container_selectors=(".product-item", ".product-tile", "[class*='product-card']"),
        title_selectors=(".product-item-name", ".product-name", "h3"),
    ),
    SiteProfile(
        key="tradetools",
        name="Trade Tools",
        domains=("tradetools",),
        sku_prefix="TRADE",
        container_selectors=(".product", ".product-item", ".grid-item"),
        title_selectors=(".product-name", "h2", "h3"),
        backend="browser",
        load_more_selectors=("button:has-text('Load More')", "button:has-text('Show More')"),
    ),
    SiteProfile(
        key="supercheapauto",
        name="Supercheap Auto",
        domains=("supercheapauto",),
        sku_prefix="SCA",
        container_selectors=("[data-testid='product-tile']", ".product-tile", ".product-item"),
        title_selectors=("[data-testid='product-title']", ".product-title", "h3"),
        promotion_override=club_price_override,
    ),
    SiteProfile(
        key="repco",
        name="Repco",
        domains=("repco",),
        sku_prefix="REPCO",
        container_selectors=(".product-tile", ".product-item", "[class*='ProductCard']"),
        title_selectors=(".product-tile__title", ".product-name", "h3"),
    ),
    SiteProfile(
        key="autobarn",
        name="Autobarn",
        domains=("autobarn",),
        sku_prefix="AUTO",
        container_selectors=(".product", ".product-item", ".product-card"),
        title_selectors=(".product-name", "h3", ".title"),
    ),
    SiteProfile(
        key="mitre10",
        name="Mitre 10",
        domains=("mitre10",),
        sku_prefix="MITRE",
        container_selectors=(".product-tile", ".product-item", "article[class*='product']"),
        title_selectors=(".product-tile__title", ".product-name", "h3"),
    ),
    SiteProfile(
        key="gasweld",
        name="Gasweld",
        domains=("gasweld",),
        sku_prefix="GAS",
        container_selectors=(".product", ".product-item", ".grid-item"),
        title_selectors=(".product-title", "h3", ".title"),
    ),
    SiteProfile(
        key="toolswarehouse",
        name="Tools Warehouse",
        domains=("toolswarehouse",),
        sku_prefix="TOOLS",
        container_selectors=(".product-item", ".product", ".item"),
        title_selectors=(".product-name", "h3", ".title"),
    ),
    SiteProfile(
        key="toolkitdepot",
        name="Toolkit Depot",
        domains=("toolkitdepot",),
        sku_prefix="TOOLKIT",
        container_selectors=(
            ".product-item",
            ".product-card",
            ".woocommerce-loop-product",
            ".product",
        ),
        title_selectors=("h2 a", "h3 a", ".product-title a", ".woocommerce-loop-product__title"),
        # Catalogue scope is automotive power: chargers, batteries, jump starters
        title_filter=keyword_filter("charger", "battery", "jump starter", "booster", "power"),
    ),
)

GENERIC = SiteProfile(
    key="generic",
    name="",
    domains=(),
    sku_prefix="",
    container_selectors=(
        ".product",
        ".product-item",
        ".product-card",
        "[class*='product']",
        ".item",
        "[data-product]",
        "article",
    ),
    title_selectors=tuple(GENERIC_TITLE_SELECTORS),
    min_matches=6,
    min_title_length=4,
)


def find_site(host: str, sites: tuple[SiteProfile, ...] = SITES) -> Optional[SiteProfile]:
    """Registry entry whose domain fragment appears in the hostname."""
    for site in sites:
        if site.matches_host(host):
            return site
    return None


def generic_profile(competitor_name: str) -> SiteProfile:
    """Generic profile labelled for an unrecognised site."""
    return replace(GENERIC, name=competitor_name, sku_prefix=competitor_name.upper().replace(" ", ""))
