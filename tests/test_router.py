"""Tests for URL routing."""
import pytest

from pricewatch.enrich.model_number import ModelResolver
from pricewatch.scrape.router import InvalidURLError, Router, validate_url


def _router(fake_fetcher, browser=True, overrides=None, html=""):
    fetchers = {
        "static": fake_fetcher(html=html, backend="static"),
        "browser": fake_fetcher(html=html, backend="browser") if browser else None,
    }
    return Router(fetchers, resolver=ModelResolver(None, batch_delay=0), backend_overrides=overrides or {})


def test_known_host_selects_profile(fake_fetcher):
    """Test that a registry hostname gets its own profile."""
    router = _router(fake_fetcher)
    extractor = router.extractor_for("https://www.bunnings.com.au/our-range/tools")
    assert extractor.profile.key == "bunnings"
    assert extractor.profile.name == "Bunnings"
    assert extractor.fetcher.backend == "static"


def test_browser_profile_uses_browser_fetcher(fake_fetcher):
    """Test that script-rendered sites go through the browser backend."""
    router = _router(fake_fetcher)
    extractor = router.extractor_for("https://sydneytools.com.au/category/battery-chargers")
    assert extractor.profile.key == "sydneytools"
    assert extractor.fetcher.backend == "browser"


def test_browser_disabled_falls_back_to_static(fake_fetcher):
    """Test the static fallback when no browser is available."""
    router = _router(fake_fetcher, browser=False)
    extractor = router.extractor_for("https://sydneytools.com.au/category/battery-chargers")
    assert extractor.fetcher.backend == "static"


def test_unknown_host_gets_generic_profile(fake_fetcher):
    """Test that unrecognised sites use the generic extractor."""
    router = _router(fake_fetcher)
    extractor = router.extractor_for("https://www.acmetools.com.au/c/drills")
    assert extractor.profile.key == "generic"
    assert extractor.profile.name == "Acmetools"
    assert extractor.profile.sku_prefix == "ACMETOOLS"
    assert extractor.profile.min_matches == 6


def test_backend_override(fake_fetcher):
    """Test that a configured override wins over the profile default."""
    router = _router(fake_fetcher, overrides={"bunnings": "browser"})
    extractor = router.extractor_for("https://www.bunnings.com.au/x")
    assert extractor.fetcher.backend == "browser"


@pytest.mark.parametrize("url", ["not a url", "ftp://bunnings.com.au/x", "", "https://"])
def test_validate_url_rejects(url):
    """Test that malformed or non-http URLs are rejected."""
    with pytest.raises(InvalidURLError):
        validate_url(url)


def test_validate_url_returns_host():
    """Test the normalised hostname."""
    assert validate_url("HTTPS://WWW.Repco.com.au/batteries") == "repco.com.au"


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["not a url", "ftp://bunnings.com.au/x"])
async def test_scrape_invalid_url_makes_no_request(fake_fetcher, url):
    """Test that an invalid URL yields an error result without fetching."""
    router = _router(fake_fetcher)
    result = await router.scrape(url)

    assert result.competitor_name == "Unknown Competitor"
    assert result.products == []
    assert result.error
    assert router.fetchers["static"].calls == []
    assert router.fetchers["browser"].calls == []


@pytest.mark.asyncio
async def test_scrape_dispatches_to_extractor(fake_fetcher, card, page):
    """Test a full routed scrape of a registry site."""
    cards = [
        card(f"Ctek Charger MXS{i}", f'<span class="price">${100 + i}.00</span>', index=i, css_class="product-tile")
        for i in range(5)
    ]
    router = _router(fake_fetcher, html=page(cards))
    result = await router.scrape("https://www.repco.com.au/batteries")

    assert result.competitor_name == "Repco"
    assert result.total_products == 5
    assert result.products[0].sku == "REPCO-001"
    assert router.fetchers["static"].calls == ["https://www.repco.com.au/batteries"]
