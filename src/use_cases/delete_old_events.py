"""Retention cleanup of past events."""

from datetime import datetime

from src.config.logging_config import get_logger
from src.config.settings import Settings
from src.domain.models import RetentionResult
from src.domain.protocols import EventStoreProtocol
from src.services.date_resolver import days_ago

logger = get_logger(__name__)


def delete_old_events_use_case(
    store: EventStoreProtocol,
    settings: Settings,
    now: datetime | None = None,
) -> RetentionResult:
    """Delete approved events (with their edit suggestions) and pending drafts
    starting more than `event_retention_days` ago.

    Raises:
        RepositoryError: On storage errors
    """
    cutoff = days_ago(settings.event_retention_days, now)
    deleted_approved = store.delete_approved_before(cutoff)
    deleted_pending = store.delete_pending_before(cutoff)

    result = RetentionResult(
        deleted_approved=deleted_approved,
        deleted_pending=deleted_pending,
        cutoff=cutoff,
    )
    logger.info(
        "old_events_deleted",
        deleted_approved=deleted_approved,
        deleted_pending=deleted_pending,
        cutoff=cutoff.isoformat(),
    )
    return result
