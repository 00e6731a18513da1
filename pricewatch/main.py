"""Main entry point with CLI."""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pricewatch.config import config, Config
from pricewatch.jobs.runner import BatchRunner
from pricewatch.logging_conf import setup_logging
from pricewatch.store.spool import ResultSpool
from pricewatch.store.state import StateDB

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Competitor price monitor")

    parser.add_argument(
        "urls",
        nargs="*",
        help="Competitor listing-page URLs",
    )
    parser.add_argument(
        "--urls-file",
        type=Path,
        default=None,
        help="File with one listing URL per line (# comments allowed)",
    )

    # Mode flags
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Development mode (verbose logs, low concurrency)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help=f"Concurrent site extractions (default: {config.CONCURRENCY})",
    )
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Never launch a browser; browser sites are fetched statically",
    )
    parser.add_argument(
        "--no-spool",
        action="store_true",
        help="Don't write results to the JSONL spool",
    )

    return parser.parse_args(argv)


def read_urls_file(path: Path) -> list[str]:
    urls = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            urls.append(line)
    return urls


def collect_urls(args: argparse.Namespace) -> list[str]:
    """Command line URLs followed by file URLs, duplicates dropped."""
    urls = list(args.urls)
    if args.urls_file:
        urls.extend(read_urls_file(args.urls_file))
    return list(dict.fromkeys(urls))


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    setup_logging()
    args = parse_args(argv)

    if args.dev:
        logging.getLogger().setLevel(logging.DEBUG)
    concurrency = args.concurrency if args.concurrency is not None else (1 if args.dev else config.CONCURRENCY)

    try:
        Config.validate()
        if concurrency <= 0:
            raise ValueError("--concurrency must be positive")
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    try:
        urls = collect_urls(args)
    except OSError as e:
        logger.error(f"Could not read URL file: {e}")
        sys.exit(1)
    if not urls:
        logger.error("No URLs given (pass URLs or --urls-file)")
        sys.exit(1)

    logger.info("=" * 60)
    logger.info("Price monitor starting")
    logger.info(f"Mode: {'DEV' if args.dev else 'PROD'}")
    logger.info(f"URLs: {len(urls)}")
    logger.info(f"Concurrency: {concurrency}")
    logger.info(f"Browser: {'off' if args.no_browser else 'on'}")
    logger.info(f"Spool: {'off' if args.no_spool else 'on'}")
    logger.info("=" * 60)

    runner = BatchRunner(
        concurrency=concurrency,
        use_browser=not args.no_browser,
        state_db=StateDB(),
        spool=None if args.no_spool else ResultSpool(),
    )
    try:
        results = asyncio.run(runner.run(urls))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)

    for result in results:
        status = f"error: {result.error}" if result.error else f"{result.total_products} products"
        print(f"{result.competitor_name}\t{result.source_url}\t{status}")


if __name__ == "__main__":
    main()
