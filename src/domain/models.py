"""Domain models for the crypto events calendar.

All models use Pydantic v2 for validation and serialization.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class SourceKind(str, Enum):
    """Content source understood by a dedicated parser."""

    BINANCE_ALPHA = "binance_alpha"
    OKX_BOOST = "okx_boost"
    TOKEN_SPLASH = "token_splash"
    LAUNCHPOOL = "launchpool"
    LAUNCHPOOL_LEGACY = "launchpool_legacy"
    BINANCE_TOURNAMENT = "binance_tournament"
    CHANNEL_POST = "channel_post"


class EventStage(str, Enum):
    """Lifecycle stage of a persisted event."""

    PENDING = "pending"
    APPROVED = "approved"


class UpsertOutcome(str, Enum):
    """Result of pushing one draft through the dedup/upsert engine."""

    INSERTED = "inserted"
    UPDATED = "updated"
    EDIT_SUGGESTED = "edit_suggested"
    SKIPPED = "skipped"


class TelegramChannelConfig(BaseModel):
    """Per-channel configuration for Telegram scraping."""

    username: str = Field(..., description="Channel username without @")
    display_name: str = Field(default="", description="Human-readable name")
    trigger: str | None = Field(
        default=None,
        description="Phrase required near the top of a post (None = catch-all)",
    )
    source_kind: SourceKind = Field(..., description="Parser used for this channel")
    enabled: bool = Field(default=True, description="Whether channel is scraped")
    fallback_parsers: bool = Field(
        default=False,
        description="Try every other parser (trigger-less) when the primary one yields nothing",
    )

    @field_validator("username", mode="before")
    @classmethod
    def strip_at_sign(cls, v: Any) -> Any:
        """Accept '@channel' and 'channel' alike."""
        if isinstance(v, str):
            return v.strip().lstrip("@").lower()
        return v


class RawMessage(BaseModel):
    """One scraped post, consumed once by the parsing pipeline."""

    message_id: int = Field(..., description="Source-local numeric id (watermark)")
    channel: str = Field(..., description="Source channel identifier")
    text: str = Field(default="", description="Free-form body (text or HTML)")
    published_at: datetime | None = Field(
        default=None, description="Publish timestamp (UTC) if known"
    )
    url: str | None = Field(default=None, description="Canonical post URL")

    model_config = {"frozen": True}


class CoinEntry(BaseModel):
    """Coin reward entry attached to an event."""

    name: str | None = None
    quantity: Decimal | None = None


class EventDraft(BaseModel):
    """Parser output: a normalized candidate event prior to deduplication."""

    title: str = Field(..., description="Event title")
    description: str | None = Field(default=None)
    start_at: datetime | None = Field(default=None, description="UTC start instant")
    end_at: datetime | None = Field(default=None, description="UTC end instant")
    timezone: str = Field(default="Kyiv", description="Display timezone label")
    type: str | None = Field(default=None, description="Human-readable type")
    event_type_slug: str | None = Field(default=None, description="Type slug")
    coin_name: str | None = Field(default=None, description="Ticker symbol")
    coin_quantity: Decimal | None = Field(default=None, description="Reward amount")
    coins: list[CoinEntry] | None = Field(default=None)
    coin_price_link: str | None = Field(default=None)
    link: str | None = Field(default=None, description="Canonical external link")
    source: str | None = Field(default=None, description="Stable source tag")
    source_key: str | None = Field(default=None, description="Dedup identity")
    omit_link: bool = Field(
        default=False, description="Source has no canonical external link"
    )


class PersistedEvent(BaseModel):
    """Row of the approved store or of the pending auto-draft queue."""

    id: int
    stage: EventStage
    title: str
    description: str | None = None
    start_at: datetime
    end_at: datetime | None = None
    timezone: str | None = None
    type: str | None = None
    event_type_slug: str | None = None
    link: str | None = None
    coin_name: str | None = None
    coin_quantity: Decimal | None = None
    coins: list[CoinEntry] | None = None
    coin_price_link: str | None = None
    coin_address: str | None = None
    coin_chain: str | None = None
    coin_circulating_supply: Decimal | None = None
    source: str | None = None
    source_key: str | None = None
    created_at: datetime | None = None


class EditSuggestion(BaseModel):
    """Proposed field-level patch against an approved event."""

    id: int | None = None
    event_id: int
    payload: dict[str, Any] = Field(default_factory=dict)
    submitter_email: str | None = None
    created_at: datetime | None = None


class ChannelRunSummary(BaseModel):
    """Per-channel outcome of one Telegram sync run (logging only)."""

    channel: str
    ok: bool = True
    previous_watermark: int = 0
    new_message_count: int = 0
    parsed: int = 0
    inserted: int = 0
    updated: int = 0
    edit_suggestions: int = 0
    skipped: int = 0
    errors: int = 0
    last_watermark: int = 0
    error: str | None = None


class SyncResult(BaseModel):
    """Result of a Telegram sync run."""

    channels: list[ChannelRunSummary] = Field(default_factory=list)

    @property
    def total_inserted(self) -> int:
        return sum(summary.inserted for summary in self.channels)

    @property
    def total_errors(self) -> int:
        return sum(summary.errors for summary in self.channels)


class BinanceSyncResult(BaseModel):
    """Result of a Binance tournament sync run."""

    processed: int = 0
    inserted: int = 0
    updated: int = 0
    edit_suggestions: int = 0
    skipped: int = 0
    errors: int = 0


class CoinInfoResult(BaseModel):
    """Result of coin metadata resolution."""

    total: int = 0
    resolved: int = 0
    skipped: int = 0
    failures: int = 0


class PriceReaction(BaseModel):
    """Market price of an event's pair at T0, T+5m and T+15m.

    Percentages are relative to the T0 price; T0 itself is always 0.
    """

    id: int | None = None
    event_id: int
    coin_name: str | None = None
    pair: str = Field(..., description="Trading pair as BASE_USDT")
    exchange: str | None = None
    t0_time: datetime
    t0_price: Decimal | None = None
    t0_percent: Decimal | None = Decimal(0)
    t_plus_5_time: datetime
    t_plus_5_price: Decimal | None = None
    t_plus_5_percent: Decimal | None = None
    t_plus_15_time: datetime
    t_plus_15_price: Decimal | None = None
    t_plus_15_percent: Decimal | None = None

    @property
    def symbol(self) -> str:
        """Exchange API symbol (BASEUSDT)."""
        return self.pair.replace("_", "")

    @property
    def is_complete(self) -> bool:
        return None not in (self.t0_price, self.t_plus_5_price, self.t_plus_15_price)


class PriceReactionResult(BaseModel):
    """Result of a price reaction capture run."""

    processed: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0


class AdminNotifyResult(BaseModel):
    """Result of an admin notification run."""

    total: int = 0
    sent: int = 0
    failures: int = 0


class RetentionResult(BaseModel):
    """Result of old-event cleanup."""

    deleted_approved: int = 0
    deleted_pending: int = 0
    cutoff: datetime
