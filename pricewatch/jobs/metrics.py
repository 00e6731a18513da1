"""Batch run metrics, overall and per competitor."""
import time
import logging
from collections import defaultdict
from typing import Dict

logger = logging.getLogger(__name__)


class Metrics:
    """Counts page outcomes and products so a batch reports per-competitor results."""

    def __init__(self, total: int):
        self.total = total
        self.start_time = time.time()
        self.counters: Dict[str, int] = defaultdict(int)
        self.per_competitor: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))

    def increment(self, key: str, amount: int = 1) -> None:
        self.counters[key] += amount

    def record(self, competitor: str, status: str, products: int) -> None:
        """Record one page outcome (``ok``, ``empty`` or ``failed``)."""
        self.increment("processed")
        self.increment(status)
        self.increment("products", products)
        stats = self.per_competitor[competitor]
        stats[status] += 1
        stats["products"] += products

    def get_rate(self) -> float:
        """Pages per second so far."""
        elapsed = time.time() - self.start_time
        processed = self.counters.get("processed", 0)
        if elapsed > 0:
            return processed / elapsed
        return 0.0

    def report(self) -> None:
        processed = self.counters.get("processed", 0)
        logger.info(
            f"Progress: {processed}/{self.total} ({processed*100//self.total if self.total > 0 else 0}%) | "
            f"Rate: {self.get_rate():.2f} pages/s | "
            f"OK: {self.counters.get('ok', 0)} | "
            f"Empty: {self.counters.get('empty', 0)} | "
            f"Failed: {self.counters.get('failed', 0)}"
        )

    def get_summary(self) -> Dict:
        return {
            "total": self.total,
            "processed": self.counters.get("processed", 0),
            "ok": self.counters.get("ok", 0),
            "empty": self.counters.get("empty", 0),
            "failed": self.counters.get("failed", 0),
            "products": self.counters.get("products", 0),
            "rate": self.get_rate(),
            "elapsed_seconds": time.time() - self.start_time,
            "competitors": {name: dict(stats) for name, stats in sorted(self.per_competitor.items())},
        }
