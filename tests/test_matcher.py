"""Tests for catalog matching, price comparison and model-number backfill."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from pricewatch.match.matcher import ProductMatcher
from pricewatch.store.catalog import InMemoryCatalogStore

T0 = datetime(2024, 5, 1, tzinfo=timezone.utc)


class FlakyStore(InMemoryCatalogStore):
    """Refuses to delete one product."""

    def __init__(self, stuck_id=None):
        super().__init__()
        self.stuck_id = stuck_id

    async def delete_catalog_product(self, product_id):
        if product_id == self.stuck_id:
            raise RuntimeError("row locked")
        await super().delete_catalog_product(product_id)


async def _listing(store, product, competitor, prices):
    listing = await store.create_listing(
        {"product_id": product.id, "competitor_id": competitor, "url": f"https://{competitor}.test/{product.id}"}
    )
    for offset, price in enumerate(prices):
        await store.create_listing_snapshot(
            {"listing_id": listing.id, "price": Decimal(price), "scraped_at": T0 + timedelta(days=offset)}
        )
    return listing


@pytest.mark.asyncio
async def test_merge_duplicates_by_model_number():
    """Test that three GB40 products collapse into the first one."""
    store = InMemoryCatalogStore()
    first = await store.create_catalog_product({"name": "NOCO Boost GB40", "model_number": "GB40"})
    second = await store.create_catalog_product({"name": "NOCO GB40 Jump Starter", "model_number": "gb40 "})
    third = await store.create_catalog_product({"name": "Boost Plus GB40", "model_number": "GB40"})
    other = await store.create_catalog_product({"name": "NOCO GB70", "model_number": "GB70"})
    await _listing(store, second, "Bunnings", ["199"])
    await _listing(store, third, "Repco", ["189"])
    await _listing(store, third, "Autobarn", ["195"])

    result = await ProductMatcher(store).match_and_merge()

    assert result.merged == 2
    assert result.matched == 3
    assert result.errors == []
    remaining = await store.list_catalog_products()
    assert [p.id for p in remaining] == [first.id, other.id]
    assert len(await store.list_listings_by_product(first.id)) == 3


@pytest.mark.asyncio
async def test_sentinel_models_are_never_merged():
    """Test that products without a real model number stay apart."""
    store = InMemoryCatalogStore()
    for name, model in [("A", "N/A"), ("B", "N/A"), ("C", "Unknown"), ("D", None), ("E", "")]:
        await store.create_catalog_product({"name": name, "model_number": model})

    result = await ProductMatcher(store).match_and_merge()

    assert result.merged == 0
    assert len(await store.list_catalog_products()) == 5


@pytest.mark.asyncio
async def test_failing_group_does_not_stop_the_pass():
    """Test that an error in one group is recorded and other groups still merge."""
    store = FlakyStore()
    await store.create_catalog_product({"name": "X one", "model_number": "X100"})
    stuck = await store.create_catalog_product({"name": "X two", "model_number": "X100"})
    await store.create_catalog_product({"name": "Y one", "model_number": "Y200"})
    await store.create_catalog_product({"name": "Y two", "model_number": "Y200"})
    store.stuck_id = stuck.id

    result = await ProductMatcher(store).match_and_merge()

    assert result.merged == 1
    assert len(result.errors) == 1
    assert "X100" in result.errors[0]
    assert len(await store.list_catalog_products()) == 3


@pytest.mark.asyncio
async def test_price_comparison_uses_latest_snapshot_and_sorts():
    """Test spreads, latest prices and descending order."""
    store = InMemoryCatalogStore()
    wide = await store.create_catalog_product({"name": "Charger", "model_number": "MXS5"})
    narrow = await store.create_catalog_product({"name": "Booster", "model_number": "GB40"})
    single = await store.create_catalog_product({"name": "Tester", "model_number": "BT1"})
    await store.create_catalog_product({"name": "Mystery", "model_number": "N/A"})

    await _listing(store, narrow, "Repco", ["300", "199"])
    await _listing(store, narrow, "Bunnings", ["205"])
    await _listing(store, wide, "Repco", ["150"])
    await _listing(store, wide, "Autobarn", ["99", "120"])
    await _listing(store, single, "Repco", ["50"])

    matches = await ProductMatcher(store).price_comparison()

    assert [m.model_number for m in matches] == ["MXS5", "GB40", "BT1"]
    top = matches[0]
    assert top.best_price == Decimal("120")
    assert top.worst_price == Decimal("150")
    assert top.price_difference == Decimal("30")
    assert matches[1].price_difference == Decimal("6")
    assert matches[1].competitor_prices[0].last_updated == T0 + timedelta(days=1)
    assert matches[2].best_price is None
    assert matches[2].price_difference is None


@pytest.mark.asyncio
async def test_price_comparison_own_price_for_first_party_products():
    """Test that a product without listings reports its own price."""
    store = InMemoryCatalogStore()
    await store.create_catalog_product({"name": "House brand", "model_number": "HB1", "price": Decimal("42")})

    matches = await ProductMatcher(store).price_comparison()

    assert matches[0].own_price == Decimal("42")
    assert matches[0].competitor_prices == []


@pytest.mark.asyncio
async def test_enhance_model_numbers(fake_model_service):
    """Test backfilling missing model numbers through the service."""
    store = InMemoryCatalogStore()
    known = await store.create_catalog_product({"name": "Ctek MXS5", "model_number": "MXS5"})
    missing = await store.create_catalog_product({"name": "Projecta smart charger", "model_number": None})
    hopeless = await store.create_catalog_product({"name": "Mystery box", "model_number": "N/A"})
    broken = await store.create_catalog_product({"name": "Broken item", "model_number": "Unknown"})
    service = fake_model_service(answers={"Projecta smart charger": "IC1500"}, fail=("Broken item",))

    result = await ProductMatcher(store, service=service, batch_delay=0).enhance_model_numbers()

    assert result.updated == 1
    assert len(result.errors) == 1
    assert (await store.get_catalog_product_by_id(missing.id)).model_number == "IC1500"
    assert (await store.get_catalog_product_by_id(hopeless.id)).model_number == "N/A"
    assert (await store.get_catalog_product_by_id(broken.id)).model_number == "Unknown"
    assert known.name not in service.calls


@pytest.mark.asyncio
async def test_enhance_without_service_reports_error():
    """Test that enhancement without a service is a recorded no-op."""
    store = InMemoryCatalogStore()
    await store.create_catalog_product({"name": "Thing", "model_number": None})

    result = await ProductMatcher(store).enhance_model_numbers()

    assert result.updated == 0
    assert result.errors
