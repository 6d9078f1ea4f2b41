"""Telegram channel sync runner.

Scrapes the public web preview of every enabled channel once and upserts
new event drafts. Intended for cron.
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.adapters.http_client import HttpClient
from src.adapters.repository_factory import create_repository
from src.adapters.telegram_web_client import TelegramWebClient
from src.config.logging_config import get_logger, setup_logging
from src.config.settings import get_settings
from src.domain.exceptions import ConfigurationError, RepositoryError
from src.use_cases.sync_telegram_channels import sync_telegram_channels_use_case

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync Telegram event channels")
    parser.add_argument(
        "--channel",
        action="append",
        default=[],
        help="Only sync this channel username (repeatable)",
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

    if args.channel:
        selected = []
        for name in args.channel:
            channel = settings.get_telegram_channel_config(name)
            if channel is None:
                logger.error("telegram_channel_unknown", channel=name)
                return 2
            selected.append(channel)
        settings.telegram_channels = selected

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
        result = sync_telegram_channels_use_case(TelegramWebClient(http), store, settings)
    finally:
        http.close()
        store.close()

    for summary in result.channels:
        status = "ok" if summary.ok else f"FAILED ({summary.error})"
        print(
            f"{summary.channel}: {status} new={summary.new_message_count} "
            f"parsed={summary.parsed} inserted={summary.inserted} "
            f"updated={summary.updated} edits={summary.edit_suggestions} "
            f"skipped={summary.skipped} errors={summary.errors} "
            f"watermark={summary.last_watermark}"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
