"""JSONL spool of scraping results, one file per batch run."""
import logging
from pathlib import Path
from typing import Iterator

import aiofiles
import orjson

from pricewatch.config import SPOOL_DIR
from pricewatch.parse.models import ScrapingResult

logger = logging.getLogger(__name__)


class ResultSpool:
    """Appends every result of a run to ``run_<id>.jsonl``."""

    def __init__(self, spool_dir: Path = SPOOL_DIR):
        self.spool_dir = Path(spool_dir)
        self.spool_dir.mkdir(parents=True, exist_ok=True)

    def _get_spool_file(self, run_id: str) -> Path:
        return self.spool_dir / f"run_{run_id}.jsonl"

    async def write_result(self, result: ScrapingResult, run_id: str) -> None:
        """Append one result as a JSON line."""
        spool_file = self._get_spool_file(run_id)
        line = orjson.dumps(result.to_record()) + b"\n"
        async with aiofiles.open(spool_file, "ab") as f:
            await f.write(line)

    async def read_run(self, run_id: str) -> list[dict]:
        """Read back all records of a run, skipping corrupt lines."""
        spool_file = self._get_spool_file(run_id)
        if not spool_file.exists():
            return []

        records = []
        async with aiofiles.open(spool_file, "rb") as f:
            async for line in f:
                if not line.strip():
                    continue
                try:
                    records.append(orjson.loads(line))
                except orjson.JSONDecodeError as e:
                    logger.warning(f"Error reading spool line in {spool_file.name}: {e}")
        return records

    def list_spool_files(self) -> Iterator[Path]:
        return self.spool_dir.glob("run_*.jsonl")
