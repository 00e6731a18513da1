"""Tests for product lists recovered from captured JSON."""
from decimal import Decimal

from pricewatch.parse.json_products import drafts_from_payloads, iter_product_lists, looks_like_product

BASE = "https://www.sydneytools.com.au/category/chargers"


def _items(count, **extra):
    return [{"name": f"Ctek MXS{i}00", "price": f"${50 + i}.00", "url": f"/p/{i}", **extra} for i in range(count)]


def test_looks_like_product():
    """Test the title-and-price heuristic."""
    assert looks_like_product({"title": "Drill", "salePrice": 10})
    assert not looks_like_product({"title": "Drill"})
    assert not looks_like_product(["Drill", 10])


def test_iter_product_lists_finds_nested_lists():
    """Test discovery below wrapper objects."""
    payload = {"meta": {"page": 1}, "results": [{"hits": _items(4)}], "facets": [{"name": "Brand"}] * 5}
    lists = list(iter_product_lists(payload))
    assert len(lists) == 1
    assert len(lists[0]) == 4


def test_short_lists_are_ignored():
    """Test that tiny lists are not taken for product grids."""
    assert list(iter_product_lists({"items": _items(2)})) == []


def test_largest_list_wins_and_limit_applies():
    """Test list choice across payloads and the product cap."""
    payloads = [{"recommended": _items(3)}, {"data": {"products": _items(12)}}]
    drafts = drafts_from_payloads(payloads, BASE, limit=10)
    assert len(drafts) == 10
    assert drafts[0].url == "https://www.sydneytools.com.au/p/0"
    assert drafts[0].pricing.price == Decimal("50.00")
    assert drafts[0].pricing.rule == "json"


def test_regular_price_only_when_higher():
    """Test the sale invariant on JSON prices."""
    items = [
        {"name": "A thing", "price": 80, "wasPrice": 100},
        {"name": "B thing", "price": 80, "wasPrice": 80},
        {"name": "C thing", "price": {"value": 0}},
        {"name": "D thing", "price": 5, "brand": {"name": "Projecta"}, "images": ["//cdn.test/d.jpg"]},
    ]
    drafts = drafts_from_payloads([items], BASE, limit=50)

    assert [d.title for d in drafts] == ["A thing", "B thing", "D thing"]
    assert drafts[0].pricing.regular_price == Decimal("100.00")
    assert drafts[1].pricing.regular_price is None
    assert drafts[2].brand == "Projecta"
    assert drafts[2].image == "https://cdn.test/d.jpg"
