"""Catalog storage contract and an in-memory implementation."""
from typing import Any, Optional, Protocol

from pricewatch.parse.models import (
    CatalogProduct,
    CompetitorListing,
    ListingSnapshot,
    utcnow,
)


class CatalogStore(Protocol):
    """What the matcher and ingestor need from persistent storage."""

    async def list_catalog_products(self) -> list[CatalogProduct]: ...

    async def get_catalog_product_by_id(self, product_id: str) -> Optional[CatalogProduct]: ...

    async def create_catalog_product(self, fields: dict[str, Any]) -> CatalogProduct: ...

    async def update_catalog_product(self, product_id: str, fields: dict[str, Any]) -> CatalogProduct: ...

    async def delete_catalog_product(self, product_id: str) -> None: ...

    async def list_listings_by_product(self, product_id: str) -> list[CompetitorListing]: ...

    async def create_listing(self, fields: dict[str, Any]) -> CompetitorListing: ...

    async def update_listing(self, listing_id: str, fields: dict[str, Any]) -> CompetitorListing: ...

    async def create_listing_snapshot(self, fields: dict[str, Any]) -> ListingSnapshot: ...

    async def get_listing_history(self, listing_id: str, limit: int = 30) -> list[ListingSnapshot]: ...


class InMemoryCatalogStore:
    """Dict-backed store for tests and dry runs. Insertion order is preserved."""

    def __init__(self):
        self.products: dict[str, CatalogProduct] = {}
        self.listings: dict[str, CompetitorListing] = {}
        self.snapshots: dict[str, list[ListingSnapshot]] = {}

    async def list_catalog_products(self) -> list[CatalogProduct]:
        return list(self.products.values())

    async def get_catalog_product_by_id(self, product_id: str) -> Optional[CatalogProduct]:
        return self.products.get(product_id)

    async def create_catalog_product(self, fields: dict[str, Any]) -> CatalogProduct:
        product = CatalogProduct(**fields)
        self.products[product.id] = product
        return product

    async def update_catalog_product(self, product_id: str, fields: dict[str, Any]) -> CatalogProduct:
        if product_id not in self.products:
            raise KeyError(f"catalog product {product_id} not found")
        updated = self.products[product_id].model_copy(update={**fields, "updated_at": utcnow()})
        self.products[product_id] = updated
        return updated

    async def delete_catalog_product(self, product_id: str) -> None:
        if self.products.pop(product_id, None) is None:
            raise KeyError(f"catalog product {product_id} not found")

    async def list_listings_by_product(self, product_id: str) -> list[CompetitorListing]:
        return [listing for listing in self.listings.values() if listing.product_id == product_id]

    async def create_listing(self, fields: dict[str, Any]) -> CompetitorListing:
        listing = CompetitorListing(**fields)
        self.listings[listing.id] = listing
        self.snapshots.setdefault(listing.id, [])
        return listing

    async def update_listing(self, listing_id: str, fields: dict[str, Any]) -> CompetitorListing:
        if listing_id not in self.listings:
            raise KeyError(f"listing {listing_id} not found")
        updated = self.listings[listing_id].model_copy(update=fields)
        self.listings[listing_id] = updated
        return updated

    async def create_listing_snapshot(self, fields: dict[str, Any]) -> ListingSnapshot:
        snapshot = ListingSnapshot(**fields)
        if snapshot.listing_id not in self.listings:
            raise KeyError(f"listing {snapshot.listing_id} not found")
        self.snapshots.setdefault(snapshot.listing_id, []).append(snapshot)
        return snapshot

    async def get_listing_history(self, listing_id: str, limit: int = 30) -> list[ListingSnapshot]:
        """Most recent first."""
        snapshots = self.snapshots.get(listing_id, [])
        # Later writes win ties on scraped_at
        order = sorted(range(len(snapshots)), key=lambda i: (snapshots[i].scraped_at, i), reverse=True)
        return [snapshots[i] for i in order[:limit]]
