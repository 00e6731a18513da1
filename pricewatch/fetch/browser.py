"""
Browser rendering backend (Playwright, Chromium).

One browser process per fetcher, launched lazily on first use. Every render
gets its own browser context so concurrent renders never share cookies, storage
or pages. Contexts are closed on every exit path, the browser when the fetcher
is closed.
"""
import asyncio
import logging
from typing import Any, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Response,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from pricewatch.config import config
from pricewatch.fetch.page import RenderedPage

logger = logging.getLogger(__name__)

DEFAULT_LOAD_MORE_SELECTORS = (
    "button:has-text('Load More')",
    "button:has-text('Show More')",
    "a:has-text('Load More')",
    "[class*='load-more']",
)

SCROLL_SCRIPT = "(step) => window.scrollBy(0, Math.max(document.body.scrollHeight / step, 400))"
AT_BOTTOM_SCRIPT = "() => window.innerHeight + window.scrollY >= document.body.scrollHeight - 2"
OUTER_HTML_SCRIPT = "() => document.documentElement.outerHTML"


class BrowserFetcher:
    """Renders JavaScript-heavy listing pages and captures their JSON traffic."""

    backend = "browser"

    def __init__(self, headless: Optional[bool] = None):
        self.headless = config.BROWSER_HEADLESS if headless is None else headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launch_lock = asyncio.Lock()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def _ensure_browser(self) -> Browser:
        async with self._launch_lock:
            if self._browser is None:
                logger.info("Launching Chromium")
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    args=["--no-sandbox", "--disable-dev-shm-usage"],
                )
            return self._browser

    async def aclose(self) -> None:
        """Close the browser and stop Playwright. Safe to call more than once."""
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        try:
            if browser is not None:
                await browser.close()
        finally:
            if playwright is not None:
                await playwright.stop()

    async def render(self, url: str, load_more_selectors: tuple[str, ...] = ()) -> RenderedPage:
        """Navigate, settle, scroll, expand and return the live DOM."""
        browser = await self._ensure_browser()
        context: BrowserContext = await browser.new_context(
            user_agent=config.USER_AGENT,
            viewport={"width": 1366, "height": 900},
        )
        captured: list[asyncio.Task] = []

        def _on_response(response: Response) -> None:
            if _is_json_response(response):
                captured.append(asyncio.ensure_future(response.json()))

        try:
            page = await context.new_page()
            page.on("response", _on_response)

            # Navigation errors and timeouts propagate
            await page.goto(url, wait_until="domcontentloaded", timeout=config.NAV_TIMEOUT_MS)
            await _wait_for_network_idle(page)
            await _auto_scroll(page)
            await _click_load_more(page, load_more_selectors or DEFAULT_LOAD_MORE_SELECTORS)

            html = await page.evaluate(OUTER_HTML_SCRIPT)
            payloads = await _collect_payloads(captured)
            logger.debug(f"Rendered {url}: {len(html)} chars, {len(payloads)} JSON payloads")
            return RenderedPage(url=page.url, html=html, backend="browser", json_payloads=payloads)
        finally:
            for task in captured:
                if not task.done():
                    task.cancel()
            await context.close()


def _is_json_response(response: Response) -> bool:
    if response.request.resource_type not in ("xhr", "fetch"):
        return False
    content_type = response.headers.get("content-type", "")
    return "json" in content_type and response.ok


async def _wait_for_network_idle(page: Page) -> None:
    try:
        await page.wait_for_load_state("networkidle", timeout=config.NETWORK_IDLE_TIMEOUT_MS)
    except PlaywrightTimeoutError:
        logger.debug(f"Network idle wait timed out for {page.url}, continuing")


async def _auto_scroll(page: Page) -> None:
    """Scroll down in steps so lazy-loaded cards render."""
    for _ in range(config.SCROLL_STEPS):
        await page.evaluate(SCROLL_SCRIPT, config.SCROLL_STEPS)
        await page.wait_for_timeout(config.SCROLL_PAUSE_MS)
        if await page.evaluate(AT_BOTTOM_SCRIPT):
            break


async def _click_load_more(page: Page, selectors: tuple[str, ...]) -> None:
    clicks = 0
    while clicks < config.LOAD_MORE_CLICKS:
        button = None
        for selector in selectors:
            candidate = page.locator(selector).first
            try:
                if await candidate.is_visible():
                    button = candidate
                    break
            except PlaywrightTimeoutError:
                continue
        if button is None:
            return
        try:
            await button.click(timeout=5000)
        except PlaywrightTimeoutError:
            logger.debug(f"'Load more' click timed out on {page.url}")
            return
        clicks += 1
        await _wait_for_network_idle(page)
        await _auto_scroll(page)


async def _collect_payloads(tasks: list[asyncio.Task]) -> list[Any]:
    if not tasks:
        return []
    results = await asyncio.gather(*tasks, return_exceptions=True)
    return [result for result in results if not isinstance(result, BaseException)]
