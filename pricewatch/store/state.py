"""SQLite record of the last scrape outcome per listing-page URL."""
import logging
from pathlib import Path
from typing import Optional

import aiosqlite

from pricewatch.config import STATE_DB
from pricewatch.parse.models import ScrapingResult

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_EMPTY = "empty"
STATUS_FAILED = "failed"


def status_of(result: ScrapingResult) -> str:
    if result.error:
        return STATUS_FAILED
    if not result.products:
        return STATUS_EMPTY
    return STATUS_OK


class StateDB:
    """Tracks which listing pages were scraped, when, and how it went."""

    def __init__(self, db_path: Path = STATE_DB):
        self.db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS page_runs (
                    url TEXT PRIMARY KEY,
                    competitor TEXT NOT NULL,
                    status TEXT NOT NULL,
                    product_count INTEGER NOT NULL DEFAULT 0,
                    backend TEXT,
                    scraped_at TIMESTAMP,
                    error TEXT
                )
                """
            )
            await db.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_page_runs_status ON page_runs(status)
                """
            )
            await db.commit()
            logger.info(f"State database initialized at {self.db_path}")

    async def record(self, result: ScrapingResult) -> str:
        """Store the outcome of one page run and return its status."""
        status = status_of(result)
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO page_runs
                    (url, competitor, status, product_count, backend, scraped_at, error)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    result.source_url,
                    result.competitor_name,
                    status,
                    result.total_products,
                    result.backend,
                    result.extracted_at.isoformat(),
                    result.error[:500] if result.error else None,
                ),
            )
            await db.commit()
        return status

    async def get(self, url: str) -> Optional[dict]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM page_runs WHERE url = ?", (url,))
            row = await cursor.fetchone()
            return dict(row) if row else None

    async def failed_urls(self) -> list[str]:
        """URLs whose last run failed, for a retry pass."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT url FROM page_runs WHERE status = ? ORDER BY url",
                (STATUS_FAILED,),
            )
            return [row[0] for row in await cursor.fetchall()]

    async def get_stats(self) -> dict:
        """Page counts per status."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT status, COUNT(*) FROM page_runs
                GROUP BY status
                """
            )
            return {row[0]: row[1] for row in await cursor.fetchall()}
