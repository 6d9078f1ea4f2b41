"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os
from collections.abc import Generator
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
import pytz

from src.adapters.repository_factory import create_repository
from src.config.settings import Settings
from src.domain.models import EventDraft, RawMessage, SourceKind, TelegramChannelConfig
from src.domain.protocols import EventStoreProtocol


@pytest.fixture
def settings(
    tmp_path_factory: pytest.TempPathFactory, request: pytest.FixtureRequest
) -> Settings:
    """Create settings configured for the requested database backend."""

    base_settings = Settings()

    backend = "sqlite"
    if hasattr(request.node, "callspec"):
        backend = request.node.callspec.params.get("repo", backend)

    if request.node.get_closest_marker("postgres"):
        backend = "postgres"

    if backend == "postgres":
        if os.environ.get("TEST_POSTGRES", "0") != "1":
            pytest.skip("PostgreSQL tests disabled (TEST_POSTGRES!=1)")
        if not os.environ.get("POSTGRES_PASSWORD"):
            pytest.skip("POSTGRES_PASSWORD not set for PostgreSQL tests")
        return base_settings.model_copy(update={"database_type": "postgres"})

    temp_dir = tmp_path_factory.mktemp("db")
    db_path = temp_dir / "test.sqlite"
    return base_settings.model_copy(
        update={"database_type": "sqlite", "db_path": str(db_path)}
    )


DATABASE_BACKENDS = [
    "sqlite",
    pytest.param("postgres", marks=pytest.mark.postgres),
]

POSTGRES_TABLES = (
    "event_price_reaction",
    "event_edits_pending",
    "events_approved",
    "auto_events_pending",
    "tg_scrape_state",
)


def _truncate_postgres(repository: Any) -> None:
    """Start every PostgreSQL test from empty tables (schema comes from alembic)."""
    repository._execute(
        f"TRUNCATE {', '.join(POSTGRES_TABLES)} RESTART IDENTITY", ()
    )


@pytest.fixture
def repo(settings: Settings) -> Generator[EventStoreProtocol, None, None]:
    """Provide an event store instance for the configured backend."""

    repository = create_repository(settings)
    if settings.database_type == "postgres":
        _truncate_postgres(repository)

    try:
        yield repository
    finally:
        repository.close()

        if settings.database_type == "sqlite":
            db_path = Path(settings.db_path)
            if db_path.exists():
                try:
                    db_path.unlink()
                except OSError:
                    pass


@pytest.fixture
def now() -> datetime:
    """Reference time: Jan 5, 2026, 09:00 UTC (11:00 Kyiv)."""
    return datetime(2026, 1, 5, 9, 0, tzinfo=pytz.UTC)


def make_message(
    text: str,
    message_id: int = 101,
    channel: str = "testchannel",
    published_at: datetime | None = None,
) -> RawMessage:
    """Build a RawMessage with a t.me post URL."""
    return RawMessage(
        message_id=message_id,
        channel=channel,
        text=text,
        published_at=published_at,
        url=f"https://t.me/{channel}/{message_id}",
    )


@pytest.fixture
def sample_draft() -> EventDraft:
    """Keyed Binance Alpha draft."""
    return EventDraft(
        title="Foo Network Binance Alpha Airdrop",
        description="Amount: 320 tokens",
        start_at=datetime(2026, 1, 8, 10, 0, tzinfo=pytz.UTC),
        timezone="Kyiv",
        type="Binance Alpha",
        event_type_slug="binance-alpha",
        coin_name="FOO",
        source="binance_alpha",
        source_key="BINANCE_ALPHA|FOO|2026-01-08 10:00",
    )


@pytest.fixture
def alpha_channel() -> TelegramChannelConfig:
    return TelegramChannelConfig(
        username="alphadropbinance",
        trigger="new binance alpha airdrop",
        source_kind=SourceKind.BINANCE_ALPHA,
    )


ALPHA_POST_HTML = (
    "\U0001f525 <b>New Binance Alpha Airdrop</b><br/>"
    "Token: Foo Network (FOO)<br/>"
    "Amount: 320 FOO<br/>"
    "Alpha Points: 220<br/>"
    "Claim starts: Jan 8, 10:00 UTC"
)

OKX_POST_TEXT = "\n".join(
    [
        "New OKX Boost X Launch Event!",
        "Vision X Launch",
        "Total Rewards: 6 170 000 VSNV",
        "Claim Date: 15.01.2026, 14:00",
        "X Launch Ends: 22.01.2026, 14:00",
    ]
)

TOKEN_SPLASH_POST_TEXT = "\n".join(
    [
        "New token splash: $ABC",
        "Общая награда: 1 000 000 ABC",
        "Начало: 2026-01-08 10:00 UTC",
        "Конец: 2026-01-15 10:00 UTC",
    ]
)

LAUNCHPOOL_POST_TEXT = "\n".join(
    [
        "Stake VIRTUAL with 100.00% APR (Non-VIP) (link)",
        "APR: 100.00%",
        "Period: 7 days",
        "Quota: 985.5K VIRTUAL",
        "Start: 2026-01-08 10:00 UTC",
        "End: 2026-01-15 10:00 UTC",
    ]
)

LEGACY_LAUNCHPOOL_POST_TEXT = "\n".join(
    [
        "New Launchpool",
        "Token: Foo Network (FOO)",
        "Reward: 2,000,000 FOO",
        "Duration: 2026-01-08 10:00 UTC - 2026-01-15 10:00 UTC",
    ]
)


def make_channel_page(channel: str, posts: list[tuple[int, str]]) -> str:
    """Render a minimal t.me/s preview page with one widget per (id, html) post."""
    widgets = []
    for message_id, text in posts:
        widgets.append(
            "<article>"
            f'<div class="tgme_widget_message" data-post="{channel}/{message_id}">'
            f'<div class="tgme_widget_message_text js-message_text" dir="auto">{text}</div>'
            '<div class="tgme_widget_message_footer">'
            '<time datetime="2026-01-05T08:00:00+00:00">08:00</time>'
            "</div></div></article>"
        )
    return "<html><body>" + "".join(widgets) + "</body></html>"
