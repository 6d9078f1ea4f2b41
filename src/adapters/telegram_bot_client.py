"""Telegram Bot API client for moderator notifications."""

from typing import Final

from src.adapters.http_client import HttpClient
from src.config.logging_config import get_logger
from src.domain.exceptions import SourceFetchError

logger = get_logger(__name__)

TELEGRAM_BOT_API_URL: Final[str] = "https://api.telegram.org/bot{token}/{method}"
REDACTED_TOKEN: Final[str] = "***"


class TelegramBotClient:
    """Sends plain-text messages to one chat through the Bot API."""

    def __init__(self, http: HttpClient, token: str, chat_id: str) -> None:
        """Initialize client.

        Args:
            http: Shared HTTP client
            token: Bot token (never logged)
            chat_id: Target chat id or @channel username
        """
        self.http = http
        self._token = token
        self.chat_id = chat_id

    def send_message(self, text: str) -> None:
        """Send one message.

        Raises:
            SourceFetchError: On HTTP errors or a response with ok=false
        """
        url = TELEGRAM_BOT_API_URL.format(token=self._token, method="sendMessage")
        display_url = TELEGRAM_BOT_API_URL.format(
            token=REDACTED_TOKEN, method="sendMessage"
        )
        payload = self.http.post_json(
            url,
            {"chat_id": self.chat_id, "text": text},
            display_url=display_url,
        )
        if not isinstance(payload, dict) or not payload.get("ok"):
            description = (
                payload.get("description") if isinstance(payload, dict) else None
            )
            raise SourceFetchError(
                display_url, f"Bot API rejected message: {description or payload!r}"
            )
        logger.debug("telegram_message_sent", chat_id=self.chat_id)
