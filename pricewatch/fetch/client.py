"""Static rendering backend: plain HTTP GET with retries."""
import logging
from typing import Optional

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pricewatch.config import config
from pricewatch.fetch.page import RenderedPage
from pricewatch.fetch.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-AU,en;q=0.9",
}


class StaticFetcher:
    """HTTP client with per-host rate limiting and retries on network errors."""

    backend = "static"

    def __init__(self, client: Optional[httpx.AsyncClient] = None, rate_per_domain: Optional[float] = None):
        limits = httpx.Limits(
            max_connections=20,
            max_keepalive_connections=10,
        )
        self.client = client or httpx.AsyncClient(
            timeout=config.HTTP_TIMEOUT,
            follow_redirects=True,
            limits=limits,
            headers={"User-Agent": config.USER_AGENT, **DEFAULT_HEADERS},
        )
        rate = config.RATE_PER_DOMAIN if rate_per_domain is None else rate_per_domain
        self.rate_limiter = RateLimiter(rate)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    @retry(
        stop=stop_after_attempt(config.MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
        reraise=True,
    )
    async def fetch(self, url: str) -> httpx.Response:
        """GET a URL. Raises ``httpx.HTTPStatusError`` on non-2xx."""
        await self.rate_limiter.acquire(url)
        try:
            response = await self.client.get(url)
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            logger.warning(f"Network error for {url}: {e}")
            raise
        response.raise_for_status()
        return response

    async def render(self, url: str, load_more_selectors: tuple[str, ...] = ()) -> RenderedPage:
        response = await self.fetch(url)
        return RenderedPage(url=str(response.url), html=response.text, backend="static")
