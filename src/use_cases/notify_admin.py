"""Announce new pending auto-drafts to the moderators' Telegram chat.

Drafts are announced oldest first and stamped as notified only after the
message went out, so a failed send is retried on the next run.
"""

from src.config.logging_config import get_logger
from src.config.settings import Settings
from src.domain.exceptions import RepositoryError, SourceFetchError
from src.domain.models import AdminNotifyResult, PersistedEvent
from src.domain.protocols import AdminNotifierProtocol, EventStoreProtocol
from src.services.date_resolver import format_local

logger = get_logger(__name__)

PLACEHOLDER = "n/a"


def format_pending_message(event: PersistedEvent) -> str:
    """Moderator notice for one pending auto-draft (start in Kyiv time)."""
    lines = [
        "🆕 New auto-draft",
        "",
        f"Title: {event.title or PLACEHOLDER}",
        f"Start: {format_local(event.start_at)} (Kyiv)",
        f"Type: {event.type or PLACEHOLDER}",
    ]
    if event.link:
        lines.append(f"Link: {event.link}")
    return "\n".join(lines)


def notify_admin_use_case(
    notifier: AdminNotifierProtocol,
    store: EventStoreProtocol,
    settings: Settings,
) -> AdminNotifyResult:
    """Send one message per unannounced pending draft.

    Args:
        notifier: Moderator chat client
        store: Event store
        settings: Application settings (per-run cap)

    Returns:
        AdminNotifyResult with counts

    Raises:
        RepositoryError: If the pending drafts cannot be read
    """
    result = AdminNotifyResult()
    events = store.list_unnotified_pending_events(settings.admin_notify_max_per_run)
    result.total = len(events)

    for event in events:
        try:
            notifier.send_message(format_pending_message(event))
        except SourceFetchError as e:
            logger.warning("admin_notify_send_failed", event_id=event.id, error=str(e))
            result.failures += 1
            continue

        try:
            store.mark_pending_notified(event.id)
        except RepositoryError as e:
            logger.error("admin_notify_mark_failed", event_id=event.id, error=str(e))
            result.failures += 1
            continue
        result.sent += 1

    logger.info("admin_notify_completed", **result.model_dump())
    return result
