"""Pytest configuration and shared fixtures."""

from unittest.mock import AsyncMock, Mock

import pytest

from mail_to_telegram.relay.envelope import Envelope
from mail_to_telegram.telegram.client import TelegramResponse


TEST_TOKEN = "123456:TEST-token"
TEST_API_URL = "https://api.test.telegram.org"


@pytest.fixture
def mock_settings():
    """Settings for tests, bound to a free local port."""
    from mail_to_telegram.config import Settings

    return Settings(
        telegram_bot_token=TEST_TOKEN,
        telegram_api_url=TEST_API_URL,
        listen_address="127.0.0.1:0",
        queue_capacity=10,
        http_enabled=False,
        shutdown_timeout=5.0,
        log_level="DEBUG",
    )


@pytest.fixture
def sample_envelope():
    """Envelope with a resolvable recipient."""
    return Envelope(
        sender="sender@example.com",
        recipients=("5@telegram-bot.com",),
        body="hello world\r\n",
    )


@pytest.fixture
def ok_response():
    return TelegramResponse(200, {"ok": True, "result": {"message_id": 1}})


@pytest.fixture
def telegram_client(ok_response):
    """Telegram client double whose calls all succeed."""
    client = Mock()
    client.send_text = AsyncMock(return_value=ok_response)
    client.send_document = AsyncMock(return_value=ok_response)
    client.aclose = AsyncMock()
    return client
