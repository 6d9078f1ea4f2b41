"""Custom exception hierarchy for the crypto events calendar.

Following error taxonomy: retryable, non-retryable, validation, configuration.
"""


class CryptoCalendarError(Exception):
    """Base exception for all application errors."""

    pass


class RetryableError(CryptoCalendarError):
    """Errors that can be retried (network issues, temporary failures)."""

    pass


class NonRetryableError(CryptoCalendarError):
    """Errors that should not be retried (validation, auth, logic errors)."""

    pass


class ValidationError(NonRetryableError):
    """Data validation errors."""

    pass


class ConfigurationError(NonRetryableError):
    """Missing or invalid configuration (credentials, URLs, channel catalog)."""

    pass


class SourceFetchError(RetryableError):
    """External service (Telegram, Binance, CoinGecko, MEXC) communication errors."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        """Initialize with the failing URL and HTTP status if known."""
        self.url = url
        self.status_code = status_code
        super().__init__(f"Fetch failed for {url}: {reason}")


class RepositoryError(RetryableError):
    """Database/storage errors."""

    pass
