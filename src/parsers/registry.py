"""Closed mapping from SourceKind to its parser.

Adding a SourceKind without registering a parser fails at import time.
"""

from collections.abc import Iterator
from typing import Final

from src.domain.exceptions import ConfigurationError
from src.domain.models import SourceKind
from src.parsers.base import SourceParser
from src.parsers.binance_alpha import BinanceAlphaParser
from src.parsers.binance_tournament import BinanceTournamentParser
from src.parsers.channel_post import ChannelPostParser
from src.parsers.launchpool import LaunchpoolParser, LegacyLaunchpoolParser
from src.parsers.okx_boost import OkxBoostParser
from src.parsers.token_splash import TokenSplashParser

PARSER_REGISTRY: Final[dict[SourceKind, SourceParser]] = {
    SourceKind.BINANCE_ALPHA: BinanceAlphaParser(),
    SourceKind.OKX_BOOST: OkxBoostParser(),
    SourceKind.TOKEN_SPLASH: TokenSplashParser(),
    SourceKind.LAUNCHPOOL: LaunchpoolParser(),
    SourceKind.LAUNCHPOOL_LEGACY: LegacyLaunchpoolParser(),
    SourceKind.BINANCE_TOURNAMENT: BinanceTournamentParser(),
    SourceKind.CHANNEL_POST: ChannelPostParser(),
}

FALLBACK_ORDER: Final[tuple[SourceKind, ...]] = (
    SourceKind.BINANCE_ALPHA,
    SourceKind.OKX_BOOST,
    SourceKind.TOKEN_SPLASH,
    SourceKind.LAUNCHPOOL,
    SourceKind.LAUNCHPOOL_LEGACY,
)
"""Post parsers tried (trigger-less) when a channel's own parser yields nothing.

The catch-all and the announcement-page parser never act as fallbacks.
"""


def check_registry(registry: dict[SourceKind, SourceParser]) -> None:
    """Ensure every SourceKind has exactly its own parser.

    Raises:
        ConfigurationError: If a kind is missing or mapped to a foreign parser
    """
    missing = set(SourceKind) - set(registry)
    if missing:
        names = ", ".join(sorted(kind.value for kind in missing))
        raise ConfigurationError(f"No parser registered for: {names}")
    for kind, parser in registry.items():
        if parser.kind is not kind:
            raise ConfigurationError(
                f"Parser {type(parser).__name__} registered under {kind.value}"
            )


check_registry(PARSER_REGISTRY)


def get_parser(kind: SourceKind) -> SourceParser:
    """Return the parser for a source kind."""
    return PARSER_REGISTRY[kind]


def fallback_parsers(primary: SourceKind) -> Iterator[SourceParser]:
    """Yield fallback parsers in order, skipping the primary one."""
    for kind in FALLBACK_ORDER:
        if kind is not primary:
            yield PARSER_REGISTRY[kind]
