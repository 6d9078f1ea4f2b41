"""Capture T0/T+5m/T+15m pair prices for approved events. Intended for cron."""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.adapters.http_client import HttpClient
from src.adapters.mexc_client import MexcClient
from src.adapters.repository_factory import create_repository
from src.config.logging_config import get_logger, setup_logging
from src.config.settings import get_settings
from src.domain.exceptions import ConfigurationError, RepositoryError
from src.use_cases.capture_price_reaction import capture_price_reaction_use_case

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Capture price reaction around events")
    parser.add_argument("--log-level", default=None, help="Override log level")
    parser.add_argument("--json-logs", action="store_true", help="JSON log output")
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ConfigurationError as e:
        setup_logging()
        logger.error("configuration_invalid", error=str(e))
        return 2

    setup_logging(args.log_level or settings.log_level, args.json_logs or settings.log_json)

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
        result = capture_price_reaction_use_case(
            MexcClient(http, base_url=settings.mexc_api_base_url), store, settings
        )
    except RepositoryError as e:
        logger.error("price_reaction_failed", error=str(e))
        return 1
    finally:
        http.close()
        store.close()

    print(
        f"processed={result.processed} inserted={result.inserted} "
        f"updated={result.updated} skipped={result.skipped} errors={result.errors}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
