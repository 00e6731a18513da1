"""Data models for scraped products and the competitor catalog."""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

UNKNOWN_BRAND = "Unknown"
UNKNOWN_MODEL = "Unknown"
MODEL_NOT_FOUND = "N/A"
UNKNOWN_COMPETITOR = "Unknown Competitor"

Backend = Literal["static", "browser"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class ScrapedProduct(BaseModel):
    """One product card extracted from a competitor listing page."""

    title: str
    price: Decimal = Field(..., ge=0, description="Currently payable price")
    regular_price: Optional[Decimal] = Field(
        default=None, ge=0, description="Pre-discount price; None means no sale detected"
    )
    image: str = ""
    url: str
    brand: str = UNKNOWN_BRAND
    model: str = UNKNOWN_MODEL
    category: str = "Products"
    sku: str
    competitor_name: str
    has_promotion: bool = False
    promotion_text: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @model_validator(mode="after")
    def _sale_requires_reduction(self) -> "ScrapedProduct":
        # A regular price that is not above the payable price is not a sale.
        if self.regular_price is not None and self.regular_price <= self.price:
            self.regular_price = None
        return self

    @property
    def on_sale(self) -> bool:
        return self.regular_price is not None


class ScrapingResult(BaseModel):
    """Products from one listing page plus run metadata."""

    products: list[ScrapedProduct] = Field(default_factory=list)
    competitor_name: str
    source_url: str
    category_name: str = "Products"
    extracted_at: datetime = Field(default_factory=utcnow)
    backend: Optional[Backend] = None
    error: Optional[str] = Field(default=None, description="Why the run came back empty")

    @property
    def total_products(self) -> int:
        return len(self.products)

    def to_record(self) -> dict:
        """JSON-ready record including the derived product count."""
        record = self.model_dump(mode="json")
        record["total_products"] = self.total_products
        return record


class CatalogProduct(BaseModel):
    """Canonical product, keyed by normalized model number."""

    id: str = Field(default_factory=new_id)
    name: str
    brand: str = UNKNOWN_BRAND
    model_number: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, description="First-party price, if any")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class CompetitorListing(BaseModel):
    """One competitor's product page tracked against a catalog product."""

    id: str = Field(default_factory=new_id)
    product_id: str
    competitor_id: str
    url: str
    last_seen_price: Optional[Decimal] = None
    first_seen_at: datetime = Field(default_factory=utcnow)
    last_seen_at: datetime = Field(default_factory=utcnow)


class ListingSnapshot(BaseModel):
    """Point-in-time price observation. Never mutated once written."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    listing_id: str
    price: Decimal
    regular_price: Optional[Decimal] = None
    in_stock: bool = True
    promotion_text: Optional[str] = None
    scraped_at: datetime = Field(default_factory=utcnow)


class CompetitorPrice(BaseModel):
    competitor_name: str
    price: Decimal
    url: str
    last_updated: datetime


class ProductMatch(BaseModel):
    """Price comparison row for one catalog product."""

    catalog_product_id: str
    model_number: str
    product_name: str
    brand: str = UNKNOWN_BRAND
    own_price: Optional[Decimal] = None
    competitor_prices: list[CompetitorPrice] = Field(default_factory=list)
    best_price: Optional[Decimal] = None
    worst_price: Optional[Decimal] = None
    price_difference: Optional[Decimal] = None


class MergeResult(BaseModel):
    merged: int = 0
    matched: int = 0
    errors: list[str] = Field(default_factory=list)


class EnhanceResult(BaseModel):
    updated: int = 0
    errors: list[str] = Field(default_factory=list)


class IngestResult(BaseModel):
    products_created: int = 0
    products_matched: int = 0
    listings_created: int = 0
    listings_updated: int = 0
    snapshots: int = 0
    errors: list[str] = Field(default_factory=list)
