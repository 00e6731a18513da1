"""Listing-page extraction shared by every site profile, including the generic one."""
import logging
from typing import Optional, Protocol

from pydantic import ValidationError

from pricewatch.config import config
from pricewatch.enrich.model_number import ModelResolver
from pricewatch.fetch.page import RenderedPage
from pricewatch.parse.containers import ProductDraft, extract_drafts
from pricewatch.parse.json_products import drafts_from_payloads
from pricewatch.parse.models import ScrapedProduct, ScrapingResult
from pricewatch.parse.normalize import category_from_url
from pricewatch.sites.registry import SiteProfile

logger = logging.getLogger(__name__)


class PageFetcher(Protocol):
    backend: str

    async def render(self, url: str, load_more_selectors: tuple[str, ...] = ()) -> RenderedPage:
        ...


class SiteExtractor:
    """Fetches a listing page through one backend and turns its cards into products."""

    def __init__(
        self,
        profile: SiteProfile,
        fetcher: PageFetcher,
        resolver: Optional[ModelResolver] = None,
        max_products: Optional[int] = None,
        json_fallback_threshold: Optional[int] = None,
    ):
        self.profile = profile
        self.fetcher = fetcher
        self.resolver = resolver or ModelResolver()
        self.max_products = max_products or config.MAX_PRODUCTS
        self.json_fallback_threshold = (
            config.JSON_FALLBACK_THRESHOLD if json_fallback_threshold is None else json_fallback_threshold
        )

    def _empty(self, url: str, error: Optional[str] = None) -> ScrapingResult:
        return ScrapingResult(
            competitor_name=self.profile.name,
            source_url=url,
            category_name=category_from_url(url),
            backend=self.fetcher.backend,
            error=error,
        )

    async def extract(self, url: str) -> ScrapingResult:
        """
        Scrape one listing page.

        Never raises: a fetch or parse failure yields an empty result with
        ``error`` set, so one failing competitor cannot abort a batch.
        """
        logger.info(f"Scraping {self.profile.name} ({self.fetcher.backend}): {url}")
        try:
            page = await self.fetcher.render(url, self.profile.load_more_selectors)
            drafts = self._drafts_from_page(page)
            products = await self._build_products(drafts, url)
        except Exception as e:
            logger.error(f"Scrape failed for {self.profile.name} {url}: {type(e).__name__}: {e}")
            return self._empty(url, error=f"{type(e).__name__}: {e}")

        logger.info(f"{self.profile.name}: {len(products)} products from {url}")
        return ScrapingResult(
            products=products,
            competitor_name=self.profile.name,
            source_url=url,
            category_name=category_from_url(url),
            backend=self.fetcher.backend,
        )

    def _drafts_from_page(self, page: RenderedPage) -> list[ProductDraft]:
        base_url = page.url
        selector, drafts = extract_drafts(page.parser, self.profile, base_url, self.max_products)
        if selector:
            logger.debug(f"{self.profile.name}: selector '{selector}' gave {len(drafts)} drafts")
        else:
            logger.debug(f"{self.profile.name}: no container selector reached {self.profile.min_matches} matches")

        if len(drafts) < self.json_fallback_threshold and page.json_payloads:
            json_drafts = drafts_from_payloads(page.json_payloads, base_url, self.max_products)
            if len(json_drafts) > len(drafts):
                logger.info(
                    f"{self.profile.name}: using {len(json_drafts)} products from captured JSON "
                    f"(DOM gave {len(drafts)})"
                )
                return json_drafts
        return drafts

    async def _build_products(self, drafts: list[ProductDraft], url: str) -> list[ScrapedProduct]:
        if not drafts:
            return []
        models = await self.resolver.resolve_many(
            [draft.title for draft in drafts],
            [draft.brand for draft in drafts],
        )
        category = category_from_url(url)
        products: list[ScrapedProduct] = []
        for draft, model in zip(drafts, models):
            try:
                product = ScrapedProduct(
                    title=draft.title,
                    price=draft.pricing.price,
                    regular_price=draft.pricing.regular_price,
                    image=draft.image,
                    url=draft.url,
                    brand=draft.brand,
                    model=model,
                    category=category,
                    sku=f"{self.profile.sku_prefix}-{len(products) + 1:03d}",
                    competitor_name=self.profile.name,
                    has_promotion=draft.has_promotion,
                    promotion_text=draft.promotion_text,
                )
            except ValidationError as e:
                logger.debug(f"Skipping invalid product '{draft.title}': {e}")
                continue
            products.append(product)
            if len(products) >= self.max_products:
                break
        return products
