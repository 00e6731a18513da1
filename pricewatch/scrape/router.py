"""Pick the extractor and rendering backend for a listing URL."""
import logging
from typing import Mapping, Optional
from urllib.parse import urlparse

from pricewatch.config import config
from pricewatch.enrich.model_number import ModelResolver
from pricewatch.parse.models import UNKNOWN_COMPETITOR, ScrapingResult
from pricewatch.parse.normalize import competitor_name_from_url, hostname_key
from pricewatch.scrape.extractor import PageFetcher, SiteExtractor
from pricewatch.sites.registry import SITES, SiteProfile, find_site, generic_profile

logger = logging.getLogger(__name__)


class InvalidURLError(ValueError):
    """Listing URL is not an absolute http(s) URL."""


def validate_url(url: str) -> str:
    """Return the lowercased hostname key of an absolute http(s) URL."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidURLError("empty URL")
    try:
        parsed = urlparse(url.strip())
        host = hostname_key(url.strip())
    except ValueError as e:
        raise InvalidURLError(f"malformed URL {url!r}: {e}") from e
    if parsed.scheme not in ("http", "https") or not host:
        raise InvalidURLError(f"not an absolute http(s) URL: {url!r}")
    return host


class Router:
    """Maps hostnames to site profiles and backends, defaulting to the generic profile."""

    def __init__(
        self,
        fetchers: Mapping[str, Optional[PageFetcher]],
        resolver: Optional[ModelResolver] = None,
        sites: tuple[SiteProfile, ...] = SITES,
        backend_overrides: Optional[Mapping[str, str]] = None,
    ):
        self.fetchers = fetchers
        self.resolver = resolver or ModelResolver()
        self.sites = sites
        self.backend_overrides = config.BACKEND_OVERRIDES if backend_overrides is None else backend_overrides

    def profile_for(self, url: str) -> SiteProfile:
        """Site profile for a URL. Raises InvalidURLError for malformed input."""
        host = validate_url(url)
        site = find_site(host, self.sites)
        if site is not None:
            return site
        return generic_profile(competitor_name_from_url(url))

    def backend_for(self, profile: SiteProfile, host: str) -> str:
        for pattern, backend in self.backend_overrides.items():
            if pattern in host:
                return backend
        return profile.backend

    def _fetcher(self, backend: str) -> PageFetcher:
        fetcher = self.fetchers.get(backend)
        if fetcher is None:
            # e.g. browser disabled for this run
            logger.debug(f"No '{backend}' fetcher configured, using static")
            fetcher = self.fetchers["static"]
        return fetcher

    def extractor_for(self, url: str) -> SiteExtractor:
        profile = self.profile_for(url)
        backend = self.backend_for(profile, hostname_key(url))
        return SiteExtractor(profile, self._fetcher(backend), resolver=self.resolver)

    async def scrape(self, url: str) -> ScrapingResult:
        """Scrape a URL with the matching extractor. Never raises."""
        try:
            extractor = self.extractor_for(url)
        except InvalidURLError as e:
            logger.warning(f"Skipping URL: {e}")
            return ScrapingResult(
                competitor_name=UNKNOWN_COMPETITOR,
                source_url=str(url),
                error=str(e),
            )
        return await extractor.extract(url)
