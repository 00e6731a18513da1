"""Batch scraping across many competitor listing pages."""
import asyncio
import logging
import uuid
from contextlib import AsyncExitStack
from typing import Mapping, Optional

from pricewatch.config import config
from pricewatch.enrich.model_number import ModelResolver, build_model_service
from pricewatch.fetch.browser import BrowserFetcher
from pricewatch.fetch.client import StaticFetcher
from pricewatch.jobs.metrics import Metrics
from pricewatch.match.ingest import CatalogIngestor
from pricewatch.parse.models import ScrapingResult
from pricewatch.scrape.extractor import PageFetcher
from pricewatch.scrape.router import Router
from pricewatch.store.catalog import CatalogStore
from pricewatch.store.spool import ResultSpool
from pricewatch.store.state import StateDB, status_of

logger = logging.getLogger(__name__)

# Progress line every N pages
REPORT_EVERY = 10


class ScanAlreadyRunningError(RuntimeError):
    """A batch scan was started while another one is still in progress."""


class BatchRunner:
    """
    Scrapes a list of listing URLs with bounded concurrency.

    Fetchers are scoped to one run: a static client and, when enabled, a
    lazily launched browser are created at the start of ``run`` and released
    when it returns or raises. Overlapping runs on the same runner are refused.
    """

    def __init__(
        self,
        concurrency: Optional[int] = None,
        use_browser: bool = True,
        state_db: Optional[StateDB] = None,
        spool: Optional[ResultSpool] = None,
        store: Optional[CatalogStore] = None,
        fetchers: Optional[Mapping[str, Optional[PageFetcher]]] = None,
        resolver: Optional[ModelResolver] = None,
    ):
        self.concurrency = concurrency or config.CONCURRENCY
        self.use_browser = use_browser
        self.state_db = state_db
        self.spool = spool
        self.ingestor = CatalogIngestor(store) if store is not None else None
        self._fetchers = fetchers
        self._resolver = resolver
        self._running = False
        self.run_id: Optional[str] = None
        self.metrics: Optional[Metrics] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(self, urls: list[str]) -> list[ScrapingResult]:
        """Scrape every URL; results come back in input order."""
        if self._running:
            raise ScanAlreadyRunningError("a scan is already running")
        self._running = True
        self.run_id = str(uuid.uuid4())
        self.metrics = Metrics(len(urls))
        logger.info(f"Run ID: {self.run_id} ({len(urls)} URLs, concurrency {self.concurrency})")
        try:
            if self.state_db is not None:
                await self.state_db.initialize()
            async with AsyncExitStack() as stack:
                router = await self._build_router(stack)
                semaphore = asyncio.Semaphore(self.concurrency)

                async def process(url: str) -> ScrapingResult:
                    async with semaphore:
                        return await self._process_url(router, url)

                results = await asyncio.gather(*(process(url) for url in urls))
            self._final_report()
            return list(results)
        finally:
            self._running = False

    async def _build_router(self, stack: AsyncExitStack) -> Router:
        resolver = self._resolver
        if resolver is None:
            service = build_model_service()
            if service is not None:
                await stack.enter_async_context(service)
            resolver = ModelResolver(service)

        fetchers = self._fetchers
        if fetchers is None:
            static = await stack.enter_async_context(StaticFetcher())
            browser = await stack.enter_async_context(BrowserFetcher()) if self.use_browser else None
            fetchers = {"static": static, "browser": browser}
        return Router(fetchers, resolver=resolver)

    async def _process_url(self, router: Router, url: str) -> ScrapingResult:
        result = await router.scrape(url)
        status = status_of(result)
        self.metrics.record(result.competitor_name, status, result.total_products)
        if self.metrics.counters["processed"] % REPORT_EVERY == 0:
            self.metrics.report()

        # Bookkeeping failures are logged, the page result stands
        if self.state_db is not None:
            try:
                await self.state_db.record(result)
            except Exception as e:
                logger.error(f"Could not record state for {url}: {e}")
        if self.spool is not None:
            try:
                await self.spool.write_result(result, self.run_id)
            except Exception as e:
                logger.error(f"Could not spool result for {url}: {e}")
        if self.ingestor is not None and result.products:
            ingest = await self.ingestor.ingest(result)
            for error in ingest.errors:
                logger.warning(error)
        return result

    def _final_report(self) -> None:
        summary = self.metrics.get_summary()
        logger.info("=" * 60)
        logger.info("FINAL REPORT")
        logger.info(f"Run ID: {self.run_id}")
        logger.info(f"Elapsed: {summary['elapsed_seconds']:.1f}s")
        logger.info(f"Pages: {summary['processed']}/{summary['total']}")
        logger.info(f"OK: {summary['ok']} | Empty: {summary['empty']} | Failed: {summary['failed']}")
        logger.info(f"Products: {summary['products']}")
        for name, stats in summary["competitors"].items():
            logger.info(
                f"  {name}: ok={stats.get('ok', 0)} empty={stats.get('empty', 0)} "
                f"failed={stats.get('failed', 0)} products={stats.get('products', 0)}"
            )
        logger.info("=" * 60)
