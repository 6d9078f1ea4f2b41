"""Resolve circulating supply and MEXC pair links for approved events."""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.adapters.coingecko_client import CoinGeckoClient
from src.adapters.http_client import HttpClient
from src.adapters.repository_factory import create_repository
from src.config.logging_config import get_logger, setup_logging
from src.config.settings import get_settings
from src.domain.exceptions import ConfigurationError, RepositoryError
from src.use_cases.resolve_coin_info import resolve_coin_info_use_case

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Resolve coin metadata via CoinGecko")
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

    api_key = (
        settings.coingecko_api_key.get_secret_value()
        if settings.coingecko_api_key
        else None
    )
    http = HttpClient(
        user_agent=settings.http_user_agent,
        timeout_seconds=settings.http_timeout_seconds,
    )
    try:
        result = resolve_coin_info_use_case(
            CoinGeckoClient(http, api_key=api_key), store, settings
        )
    except RepositoryError as e:
        logger.error("coin_info_failed", error=str(e))
        return 1
    finally:
        http.close()
        store.close()

    print(
        f"total={result.total} resolved={result.resolved} "
        f"skipped={result.skipped} failures={result.failures}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
