"""Binance trading-competition announcement sync runner."""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.adapters.binance_client import BinanceClient
from src.adapters.http_client import HttpClient
from src.adapters.repository_factory import create_repository
from src.config.logging_config import get_logger, setup_logging
from src.config.settings import get_settings
from src.domain.exceptions import ConfigurationError, RepositoryError, SourceFetchError
from src.use_cases.sync_binance_tournaments import sync_binance_tournaments_use_case

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync Binance tournament announcements")
    parser.add_argument(
        "--max-items", type=int, default=None, help="Override binance.max_items"
    )
    parser.add_argument("--log-level", default=None, help="Override log level")
    parser.add_argument("--json-logs", action="store_true", help="JSON log output")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = get_settings()
    except ConfigurationError as e:
        setup_logging()
        logger.error("configuration_invalid", error=str(e))
        return 2

    setup_logging(args.log_level or settings.log_level, args.json_logs or settings.log_json)
    if args.max_items is not None:
        settings.binance_max_items = args.max_items

    try:
        store = create_repository(settings)
    except ConfigurationError as e:
        logger.error("configuration_invalid", error=str(e))
        return 2
    except RepositoryError as e:
        logger.error("repository_unavailable", error=str(e))
        return 1

    http = HttpClient(
        user_agent=settings.http_user_agent,
        timeout_seconds=settings.http_timeout_seconds,
    )
    try:
        result = sync_binance_tournaments_use_case(BinanceClient(http), store, settings)
    except SourceFetchError as e:
        logger.error("binance_catalog_unavailable", error=str(e))
        return 1
    finally:
        http.close()
        store.close()

    print(
        f"processed={result.processed} inserted={result.inserted} "
        f"updated={result.updated} edits={result.edit_suggestions} "
        f"skipped={result.skipped} errors={result.errors}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
