"""Catalog-level matching: merge duplicates, compare prices, backfill model numbers."""
import asyncio
import logging
from typing import Optional

from pricewatch.config import config
from pricewatch.enrich.model_number import ModelNumberService
from pricewatch.parse.models import (
    CatalogProduct,
    CompetitorPrice,
    EnhanceResult,
    MergeResult,
    ProductMatch,
)
from pricewatch.parse.normalize import is_usable_model, normalize_model_number
from pricewatch.store.catalog import CatalogStore

logger = logging.getLogger(__name__)


class ProductMatcher:
    """Operates on whatever the storage collaborator holds; never issues raw queries."""

    def __init__(
        self,
        store: CatalogStore,
        service: Optional[ModelNumberService] = None,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
    ):
        self.store = store
        self.service = service
        self.batch_size = batch_size or config.MODEL_BATCH_SIZE
        self.batch_delay = config.MODEL_BATCH_DELAY if batch_delay is None else batch_delay

    async def match_and_merge(self) -> MergeResult:
        """
        Merge catalog products sharing a model number.

        The first product of each group survives; listings of the others move
        onto it and the duplicates are deleted. ``merged`` counts removed
        duplicates, ``matched`` counts moved listings. A failing group is
        recorded in ``errors`` and the pass continues.
        """
        result = MergeResult()
        try:
            products = await self.store.list_catalog_products()
        except Exception as e:
            logger.error(f"Could not load catalog products: {e}")
            result.errors.append(f"Error loading catalog products: {e}")
            return result

        groups: dict[str, list[CatalogProduct]] = {}
        for product in products:
            key = normalize_model_number(product.model_number)
            if key:
                groups.setdefault(key, []).append(product)

        for model_number, group in groups.items():
            if len(group) < 2:
                continue
            canonical = group[0]
            logger.info(f"Found {len(group)} products with model {model_number}")
            try:
                for duplicate in group[1:]:
                    listings = await self.store.list_listings_by_product(duplicate.id)
                    for listing in listings:
                        await self.store.update_listing(listing.id, {"product_id": canonical.id})
                        result.matched += 1
                    await self.store.delete_catalog_product(duplicate.id)
                    result.merged += 1
                    logger.info(f"Merged '{duplicate.name}' into '{canonical.name}'")
            except Exception as e:
                logger.warning(f"Error merging model {model_number}: {e}")
                result.errors.append(f"Error merging model {model_number}: {e}")

        return result

    async def price_comparison(self) -> list[ProductMatch]:
        """Price spread per catalog product, biggest spread first."""
        matches: list[ProductMatch] = []
        products = await self.store.list_catalog_products()
        for product in products:
            if not is_usable_model(product.model_number):
                continue

            match = ProductMatch(
                catalog_product_id=product.id,
                model_number=product.model_number,
                product_name=product.name,
                brand=product.brand,
            )
            listings = await self.store.list_listings_by_product(product.id)
            if not listings:
                # First-party product
                match.own_price = product.price

            for listing in listings:
                history = await self.store.get_listing_history(listing.id, 1)
                if not history:
                    continue
                latest = history[0]
                match.competitor_prices.append(
                    CompetitorPrice(
                        competitor_name=listing.competitor_id,
                        price=latest.price,
                        url=listing.url,
                        last_updated=latest.scraped_at,
                    )
                )

            prices = [p for p in [match.own_price, *(cp.price for cp in match.competitor_prices)] if p and p > 0]
            if len(prices) >= 2:
                match.best_price = min(prices)
                match.worst_price = max(prices)
                match.price_difference = match.worst_price - match.best_price
            matches.append(match)

        matches.sort(key=lambda m: m.price_difference or 0, reverse=True)
        return matches

    async def enhance_model_numbers(self) -> EnhanceResult:
        """Ask the model-number service about products without a usable model number."""
        result = EnhanceResult()
        if self.service is None:
            result.errors.append("No model-number service configured")
            return result

        products = [p for p in await self.store.list_catalog_products() if not is_usable_model(p.model_number)]
        for start in range(0, len(products), self.batch_size):
            batch = products[start:start + self.batch_size]
            answers = await asyncio.gather(
                *(self.service.extract_model(product.name) for product in batch),
                return_exceptions=True,
            )
            for product, answer in zip(batch, answers):
                if isinstance(answer, Exception):
                    result.errors.append(f"Error updating {product.name}: {answer}")
                    continue
                if not is_usable_model(answer):
                    continue
                try:
                    await self.store.update_catalog_product(product.id, {"model_number": answer.strip()})
                except Exception as e:
                    result.errors.append(f"Error updating {product.name}: {e}")
                    continue
                result.updated += 1
                logger.info(f"Model for '{product.name}': {answer}")
            if start + self.batch_size < len(products):
                await asyncio.sleep(self.batch_delay)
        return result
