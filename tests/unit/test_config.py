"""Unit tests for configuration."""

import pytest
from pydantic import ValidationError

from mail_to_telegram.config import Settings, parse_listen_address


@pytest.mark.unit
def test_settings_defaults(monkeypatch):
    """Test default settings values."""
    monkeypatch.delenv("TELEGRAM_STANDARD_CHAT_ID", raising=False)
    monkeypatch.delenv("LISTEN_ADDRESS", raising=False)
    settings = Settings(_env_file=None)

    assert settings.listen_address == "0.0.0.0:17333"
    assert settings.bind_address == ("0.0.0.0", 17333)
    assert settings.telegram_standard_chat_id is None
    assert settings.telegram_api_delay == 0.0
    assert settings.queue_capacity == 5000
    assert settings.smtp_timeout == 300.0
    assert settings.log_level == "INFO"


@pytest.mark.unit
def test_settings_override():
    """Test settings can be overridden."""
    settings = Settings(
        listen_address="127.0.0.1:2525",
        telegram_standard_chat_id=42,
        log_level="DEBUG",
    )

    assert settings.bind_address == ("127.0.0.1", 2525)
    assert settings.telegram_standard_chat_id == 42
    assert settings.log_level == "DEBUG"


@pytest.mark.unit
def test_settings_from_environment(monkeypatch):
    """Test settings are read from environment variables."""
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "42:env-token")
    monkeypatch.setenv("TELEGRAM_STANDARD_CHAT_ID", "1234")
    monkeypatch.setenv("QUEUE_CAPACITY", "0")

    settings = Settings()

    assert settings.telegram_bot_token == "42:env-token"
    assert settings.telegram_standard_chat_id == 1234
    assert settings.queue_capacity == 0


@pytest.mark.unit
@pytest.mark.parametrize("address", ["localhost", "127.0.0.1:", ":25", "host:port", "1.2.3.4:70000", "[zz]:25"])
def test_invalid_listen_address_rejected(address):
    """Test unparseable bind addresses fail at startup."""
    with pytest.raises(ValidationError):
        Settings(listen_address=address)


@pytest.mark.unit
def test_invalid_standard_chat_id_rejected(monkeypatch):
    """Test a non-numeric fallback chat id fails at startup."""
    monkeypatch.setenv("TELEGRAM_STANDARD_CHAT_ID", "not-a-number")

    with pytest.raises(ValidationError):
        Settings()


@pytest.mark.unit
def test_negative_values_rejected():
    with pytest.raises(ValidationError):
        Settings(queue_capacity=-1)
    with pytest.raises(ValidationError):
        Settings(telegram_standard_chat_id=-5)


@pytest.mark.unit
def test_parse_ipv6_listen_address():
    assert parse_listen_address("[::1]:25") == ("::1", 25)


@pytest.mark.unit
def test_executor_workers():
    assert Settings(thread_count=7).executor_workers == 7
    assert 1 <= Settings(thread_count=None).executor_workers <= 4
