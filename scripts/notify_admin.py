"""Announce new pending auto-drafts in the moderators' Telegram chat.

Needs TELEGRAM_BOT_TOKEN in .env and admin_notify.chat_id in config (or
TELEGRAM_ADMIN_CHAT_ID). Intended for cron.
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.adapters.http_client import HttpClient
from src.adapters.repository_factory import create_repository
from src.adapters.telegram_bot_client import TelegramBotClient
from src.config.logging_config import get_logger, setup_logging
from src.config.settings import get_settings
from src.domain.exceptions import ConfigurationError, RepositoryError
from src.use_cases.notify_admin import notify_admin_use_case

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Notify moderators of new drafts")
    parser.add_argument(
        "--max", type=int, default=None, help="Override messages sent per run"
    )
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

    if settings.telegram_bot_token is None or not settings.telegram_admin_chat_id:
        logger.error(
            "configuration_invalid",
            error="TELEGRAM_BOT_TOKEN and admin_notify.chat_id are required",
        )
        return 2
    if args.max is not None:
        settings.admin_notify_max_per_run = max(args.max, 1)

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
    bot = TelegramBotClient(
        http,
        settings.telegram_bot_token.get_secret_value(),
        settings.telegram_admin_chat_id,
    )
    try:
        result = notify_admin_use_case(bot, store, settings)
    except RepositoryError as e:
        logger.error("admin_notify_failed", error=str(e))
        return 1
    finally:
        http.close()
        store.close()

    print(f"total={result.total} sent={result.sent} failures={result.failures}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
