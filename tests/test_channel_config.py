"""Tests for Telegram channel configuration."""

import pytest
from pydantic import ValidationError

from src.config.channels import default_telegram_channels, find_channel
from src.config.settings import Settings, parse_telegram_channels
from src.domain.exceptions import ConfigurationError
from src.domain.models import SourceKind, TelegramChannelConfig


class TestTelegramChannelConfig:
    """Test TelegramChannelConfig with username validation."""

    def test_username_is_normalized(self) -> None:
        config = TelegramChannelConfig(
            username=" @AlphaDropBinance ", source_kind=SourceKind.BINANCE_ALPHA
        )
        assert config.username == "alphadropbinance"

    def test_defaults(self) -> None:
        config = TelegramChannelConfig(
            username="somechannel", source_kind=SourceKind.CHANNEL_POST
        )

        assert config.trigger is None
        assert config.enabled is True
        assert config.fallback_parsers is False

    def test_unknown_source_kind_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TelegramChannelConfig(username="x", source_kind="mystery")


class TestParseTelegramChannels:
    def test_parses_entries(self) -> None:
        channels = parse_telegram_channels(
            [
                {
                    "username": "launchpool_alerts",
                    "trigger": "stake",
                    "source_kind": "launchpool",
                    "fallback_parsers": True,
                },
                {"username": "misc", "source_kind": "channel_post", "enabled": False},
            ]
        )

        assert channels[0].source_kind is SourceKind.LAUNCHPOOL
        assert channels[0].fallback_parsers is True
        assert channels[1].enabled is False

    def test_missing_username_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="username"):
            parse_telegram_channels([{"source_kind": "okx_boost"}])

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="badchannel"):
            parse_telegram_channels([{"username": "badchannel", "source_kind": "nope"}])


class TestChannelCatalog:
    def test_default_catalog(self) -> None:
        channels = default_telegram_channels()

        assert [channel.username for channel in channels] == [
            "okxboostx",
            "alphadropbinance",
            "launchpool_alerts",
            "tokensplsh",
            "crypto_hornet_listings",
        ]
        launchpool = find_channel(channels, "launchpool_alerts")
        assert launchpool is not None
        assert launchpool.fallback_parsers is True

    def test_find_channel_ignores_at_and_case(self) -> None:
        channels = default_telegram_channels()

        found = find_channel(channels, "@OKXBoostX")
        assert found is not None
        assert found.source_kind is SourceKind.OKX_BOOST
        assert find_channel(channels, "unknown") is None

    def test_settings_enabled_channels(self, settings: Settings) -> None:
        configured = settings.model_copy(
            update={
                "telegram_channels": [
                    TelegramChannelConfig(
                        username="a", source_kind=SourceKind.CHANNEL_POST
                    ),
                    TelegramChannelConfig(
                        username="b",
                        source_kind=SourceKind.CHANNEL_POST,
                        enabled=False,
                    ),
                ]
            }
        )

        assert [c.username for c in configured.get_enabled_telegram_channels()] == ["a"]
        assert configured.get_telegram_channel_config("@B") is not None
        assert configured.get_telegram_channel_config("c") is None
