"""Fold a scraping result into the catalog: products, listings and snapshots."""
import logging
from typing import Optional

from pricewatch.parse.models import (
    CatalogProduct,
    CompetitorListing,
    IngestResult,
    ScrapedProduct,
    ScrapingResult,
    utcnow,
)
from pricewatch.parse.normalize import normalize_model_number
from pricewatch.store.catalog import CatalogStore

logger = logging.getLogger(__name__)


class CatalogIngestor:
    """Matches scraped products to catalog products by model number, else by title."""

    def __init__(self, store: CatalogStore):
        self.store = store

    async def ingest(self, result: ScrapingResult) -> IngestResult:
        outcome = IngestResult()
        if not result.products:
            return outcome

        by_model: dict[str, CatalogProduct] = {}
        by_name: dict[str, CatalogProduct] = {}
        for product in await self.store.list_catalog_products():
            key = normalize_model_number(product.model_number)
            if key:
                by_model.setdefault(key, product)
            by_name.setdefault(product.name.strip().lower(), product)

        for scraped in result.products:
            try:
                catalog = self._find(scraped, by_model, by_name)
                if catalog is None:
                    catalog = await self.store.create_catalog_product(
                        {
                            "name": scraped.title,
                            "brand": scraped.brand,
                            "model_number": normalize_model_number(scraped.model),
                        }
                    )
                    outcome.products_created += 1
                    if catalog.model_number:
                        by_model[catalog.model_number] = catalog
                    by_name[catalog.name.strip().lower()] = catalog
                else:
                    outcome.products_matched += 1

                listing, created = await self._upsert_listing(catalog, scraped, result.competitor_name)
                if created:
                    outcome.listings_created += 1
                else:
                    outcome.listings_updated += 1

                await self.store.create_listing_snapshot(
                    {
                        "listing_id": listing.id,
                        "price": scraped.price,
                        "regular_price": scraped.regular_price,
                        "promotion_text": scraped.promotion_text,
                        "scraped_at": result.extracted_at,
                    }
                )
                outcome.snapshots += 1
            except Exception as e:
                logger.warning(f"Could not ingest '{scraped.title}': {e}")
                outcome.errors.append(f"Error ingesting {scraped.title}: {e}")

        logger.info(
            f"Ingested {result.competitor_name}: {outcome.products_created} new products, "
            f"{outcome.listings_created} new listings, {outcome.snapshots} snapshots"
        )
        return outcome

    @staticmethod
    def _find(
        scraped: ScrapedProduct,
        by_model: dict[str, CatalogProduct],
        by_name: dict[str, CatalogProduct],
    ) -> Optional[CatalogProduct]:
        key = normalize_model_number(scraped.model)
        if key and key in by_model:
            return by_model[key]
        return by_name.get(scraped.title.strip().lower())

    async def _upsert_listing(
        self, catalog: CatalogProduct, scraped: ScrapedProduct, competitor: str
    ) -> tuple[CompetitorListing, bool]:
        for listing in await self.store.list_listings_by_product(catalog.id):
            if listing.competitor_id == competitor and listing.url == scraped.url:
                updated = await self.store.update_listing(
                    listing.id, {"last_seen_price": scraped.price, "last_seen_at": utcnow()}
                )
                return updated, False

        listing = await self.store.create_listing(
            {
                "product_id": catalog.id,
                "competitor_id": competitor,
                "url": scraped.url,
                "last_seen_price": scraped.price,
            }
        )
        return listing, True
