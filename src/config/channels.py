"""Default Telegram channel catalog.

Used when config/*.yaml does not define `telegram_channels`. To override,
add the list to config/main.yaml:
```yaml
telegram_channels:
  - username: okxboostx
    display_name: OKX Boost X Launch
    trigger: new okx boost x launch event
    source_kind: okx_boost
```
"""

from src.domain.models import SourceKind, TelegramChannelConfig

BINANCE_ALPHA_TRIGGER = "new binance alpha airdrop"


def default_telegram_channels() -> list[TelegramChannelConfig]:
    """Return the built-in channel catalog (fresh copies)."""
    return [
        TelegramChannelConfig(
            username="okxboostx",
            display_name="OKX Boost X Launch",
            trigger="new okx boost x launch event",
            source_kind=SourceKind.OKX_BOOST,
        ),
        TelegramChannelConfig(
            username="alphadropbinance",
            display_name="Binance Alpha Airdrops",
            trigger=BINANCE_ALPHA_TRIGGER,
            source_kind=SourceKind.BINANCE_ALPHA,
        ),
        TelegramChannelConfig(
            username="launchpool_alerts",
            display_name="Launchpool Alerts",
            trigger="stake",
            source_kind=SourceKind.LAUNCHPOOL,
            fallback_parsers=True,
        ),
        TelegramChannelConfig(
            username="tokensplsh",
            display_name="Bybit Token Splash",
            trigger="new token splash:",
            source_kind=SourceKind.TOKEN_SPLASH,
        ),
        TelegramChannelConfig(
            username="crypto_hornet_listings",
            display_name="Crypto Hornet Listings",
            trigger=BINANCE_ALPHA_TRIGGER,
            source_kind=SourceKind.BINANCE_ALPHA,
        ),
    ]


def find_channel(
    channels: list[TelegramChannelConfig], username: str
) -> TelegramChannelConfig | None:
    """Look up a channel by username ('@' and case are ignored)."""
    wanted = username.strip().lstrip("@").lower()
    for channel in channels:
        if channel.username == wanted:
            return channel
    return None
