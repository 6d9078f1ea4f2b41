"""Tests for the moderator notification bot client."""

from unittest.mock import Mock

import pytest

from src.adapters.telegram_bot_client import TelegramBotClient
from src.domain.exceptions import SourceFetchError


def test_send_message_posts_to_chat() -> None:
    http = Mock()
    http.post_json.return_value = {"ok": True, "result": {"message_id": 7}}

    TelegramBotClient(http, "123:SECRET", "-1001").send_message("hello")

    call = http.post_json.call_args
    assert call.args[0] == "https://api.telegram.org/bot123:SECRET/sendMessage"
    assert call.args[1] == {"chat_id": "-1001", "text": "hello"}
    assert "SECRET" not in call.kwargs["display_url"]


def test_rejected_message_raises_without_token() -> None:
    http = Mock()
    http.post_json.return_value = {"ok": False, "description": "chat not found"}

    with pytest.raises(SourceFetchError, match="chat not found") as exc_info:
        TelegramBotClient(http, "123:SECRET", "-1001").send_message("hello")

    assert "SECRET" not in str(exc_info.value)
