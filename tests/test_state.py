"""Tests for the state database and the result spool."""
import pytest

from pricewatch.parse.models import ScrapingResult
from pricewatch.store.spool import ResultSpool
from pricewatch.store.state import STATUS_EMPTY, STATUS_FAILED, StateDB, status_of


def _result(url, error=None):
    return ScrapingResult(competitor_name="Bunnings", source_url=url, backend="static", error=error)


def test_status_of():
    """Test status classification."""
    assert status_of(_result("https://a.test/x")) == STATUS_EMPTY
    assert status_of(_result("https://a.test/x", error="Timeout")) == STATUS_FAILED


@pytest.mark.asyncio
async def test_record_replaces_previous_outcome(tmp_path):
    """Test that the latest run of a URL wins."""
    db = StateDB(tmp_path / "nested" / "state.db")
    await db.initialize()

    await db.record(_result("https://a.test/x", error="ConnectError: refused"))
    assert await db.failed_urls() == ["https://a.test/x"]

    await db.record(_result("https://a.test/x"))
    row = await db.get("https://a.test/x")
    assert row["status"] == STATUS_EMPTY
    assert row["error"] is None
    assert await db.failed_urls() == []
    assert await db.get_stats() == {STATUS_EMPTY: 1}


@pytest.mark.asyncio
async def test_get_unknown_url(tmp_path):
    """Test lookup of a URL that was never scraped."""
    db = StateDB(tmp_path / "state.db")
    await db.initialize()
    assert await db.get("https://nowhere.test/") is None


@pytest.mark.asyncio
async def test_spool_round_trip_skips_corrupt_lines(tmp_path):
    """Test reading a run back, including a damaged line."""
    spool = ResultSpool(tmp_path / "spool")
    await spool.write_result(_result("https://a.test/1"), "abc")
    with open(tmp_path / "spool" / "run_abc.jsonl", "ab") as f:
        f.write(b"{not json\n")
    await spool.write_result(_result("https://a.test/2", error="boom"), "abc")

    records = await spool.read_run("abc")

    assert [r["source_url"] for r in records] == ["https://a.test/1", "https://a.test/2"]
    assert records[0]["total_products"] == 0
    assert records[1]["error"] == "boom"
    assert [p.name for p in spool.list_spool_files()] == ["run_abc.jsonl"]
    assert await spool.read_run("missing") == []
