"""Deduplication and upsert engine for scraped event drafts.

Precedence:
1. Approved match on (event_type_slug, coin_name, start_at):
   never overwrite, queue an edit suggestion with the differing fields
2. Pending match on (source, source_key): patch in place
3. Pending match on exact (title, start_at, link) when no key: skip
4. Otherwise insert a new pending auto-draft

Store errors propagate; callers count them per event.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

import pytz

from src.config.logging_config import get_logger
from src.domain.deduplication_constants import COMPARABLE_FIELDS, PENDING_PATCHABLE_FIELDS
from src.domain.models import (
    CoinEntry,
    EditSuggestion,
    EventDraft,
    PersistedEvent,
    UpsertOutcome,
)
from src.domain.parsing_constants import MAX_DESCRIPTION_LENGTH
from src.domain.protocols import EventStoreProtocol

logger = get_logger(__name__)

REQUIRED_DRAFT_FIELDS: tuple[str, ...] = ("title", "start_at", "type", "event_type_slug")


def validate_draft(draft: EventDraft) -> list[str]:
    """Check that a draft carries every field persistence requires.

    Args:
        draft: Parser output

    Returns:
        List of errors (empty if valid)

    Example:
        >>> validate_draft(EventDraft(title="X"))
        ['Missing start_at', 'Missing type', 'Missing event_type_slug']
    """
    errors: list[str] = []
    for field_name in REQUIRED_DRAFT_FIELDS:
        value = getattr(draft, field_name)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(f"Missing {field_name}")

    if draft.start_at is not None and draft.start_at.tzinfo is None:
        errors.append("start_at must be timezone-aware")
    if (
        draft.description is not None
        and len(draft.description) > MAX_DESCRIPTION_LENGTH
    ):
        errors.append(
            f"Description too long: {len(draft.description)} (max {MAX_DESCRIPTION_LENGTH})"
        )
    return errors


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str | list | dict):
        return len(value) == 0
    return False


def _normalize_for_compare(value: Any) -> Any:
    """Bring values to a canonical, comparable shape."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = pytz.UTC.localize(value)
        return value.astimezone(pytz.UTC)
    if isinstance(value, Decimal):
        return value.normalize()
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        return [_normalize_for_compare(item) for item in value]
    if isinstance(value, CoinEntry):
        return (
            value.name,
            value.quantity.normalize() if value.quantity is not None else None,
        )
    return value


def to_payload_value(value: Any) -> Any:
    """Convert a field value into a JSON-serializable payload value."""
    if isinstance(value, datetime):
        return _normalize_for_compare(value).isoformat()
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, CoinEntry):
        return {
            "name": value.name,
            "quantity": to_payload_value(value.quantity),
        }
    if isinstance(value, list):
        return [to_payload_value(item) for item in value]
    return value


def diff_against_approved(draft: EventDraft, approved: PersistedEvent) -> dict[str, Any]:
    """Collect comparable fields where the draft differs from the approved event.

    Empty draft fields are never proposed: a scraper that failed to see a
    value must not suggest erasing it.

    Args:
        draft: Freshly parsed draft
        approved: Matching approved event

    Returns:
        Mapping field -> proposed JSON-serializable value (empty when identical)
    """
    changes: dict[str, Any] = {}
    for field_name in COMPARABLE_FIELDS:
        new_value = getattr(draft, field_name)
        if _is_empty(new_value):
            continue
        old_value = getattr(approved, field_name)
        if _normalize_for_compare(new_value) != _normalize_for_compare(old_value):
            changes[field_name] = to_payload_value(new_value)
    return changes


def pending_patch(draft: EventDraft) -> dict[str, Any]:
    """Non-empty patchable fields of a draft, as stored values."""
    patch: dict[str, Any] = {}
    for field_name in PENDING_PATCHABLE_FIELDS:
        value = getattr(draft, field_name)
        if not _is_empty(value):
            patch[field_name] = value
    return patch


class EventUpserter:
    """Pushes validated drafts into the event store without duplicating.

    Example:
        >>> upserter = EventUpserter(store)
        >>> upserter.upsert(draft)
        <UpsertOutcome.INSERTED: 'inserted'>
    """

    def __init__(self, store: EventStoreProtocol) -> None:
        """Initialize upserter.

        Args:
            store: Event store implementation
        """
        self.store = store

    def upsert(self, draft: EventDraft) -> UpsertOutcome:
        """Deduplicate and persist one draft.

        Args:
            draft: Validated draft (title, start_at, type, slug present)

        Returns:
            Outcome of the operation

        Raises:
            RepositoryError: On storage errors
        """
        start_at = draft.start_at
        if start_at is None or validate_draft(draft):
            return UpsertOutcome.SKIPPED

        approved = self.store.find_approved_event(
            draft.event_type_slug, draft.coin_name, start_at
        )
        if approved is not None:
            return self._suggest_edit(draft, approved)

        if draft.source and draft.source_key:
            existing = self.store.find_pending_by_source_key(
                draft.source, draft.source_key
            )
            if existing is not None:
                self.store.update_pending_event(existing.id, pending_patch(draft))
                logger.debug(
                    "pending_event_updated",
                    event_id=existing.id,
                    source=draft.source,
                    source_key=draft.source_key,
                )
                return UpsertOutcome.UPDATED
        else:
            existing = self.store.find_pending_exact(draft.title, start_at, draft.link)
            if existing is not None:
                return UpsertOutcome.SKIPPED

        event_id = self.store.insert_pending_event(draft)
        logger.info(
            "pending_event_inserted",
            event_id=event_id,
            title=draft.title,
            source=draft.source,
            source_key=draft.source_key,
        )
        return UpsertOutcome.INSERTED

    def _suggest_edit(
        self, draft: EventDraft, approved: PersistedEvent
    ) -> UpsertOutcome:
        changes = diff_against_approved(draft, approved)
        if not changes:
            return UpsertOutcome.SKIPPED

        if self.store.has_edit_suggestion(approved.id, changes):
            return UpsertOutcome.SKIPPED

        suggestion_id = self.store.insert_edit_suggestion(
            EditSuggestion(event_id=approved.id, payload=changes)
        )
        logger.info(
            "edit_suggestion_created",
            event_id=approved.id,
            suggestion_id=suggestion_id,
            fields=sorted(changes),
        )
        return UpsertOutcome.EDIT_SUGGESTED
