"""Delete events older than the retention window."""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.adapters.repository_factory import create_repository
from src.config.logging_config import get_logger, setup_logging
from src.config.settings import get_settings
from src.domain.exceptions import ConfigurationError, RepositoryError
from src.use_cases.delete_old_events import delete_old_events_use_case

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Delete past events")
    parser.add_argument(
        "--days", type=int, default=None, help="Override retention.days"
    )
    parser.add_argument("--log-level", default=None, help="Override log level")
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ConfigurationError as e:
        setup_logging()
        logger.error("configuration_invalid", error=str(e))
        return 2

    setup_logging(args.log_level or settings.log_level, settings.log_json)
    if args.days is not None:
        settings.event_retention_days = args.days

    try:
        store = create_repository(settings)
        try:
            result = delete_old_events_use_case(store, settings)
        finally:
            store.close()
    except ConfigurationError as e:
        logger.error("configuration_invalid", error=str(e))
        return 2
    except RepositoryError as e:
        logger.error("retention_failed", error=str(e))
        return 1

    print(
        f"cutoff={result.cutoff.isoformat()} "
        f"deleted_approved={result.deleted_approved} "
        f"deleted_pending={result.deleted_pending}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
