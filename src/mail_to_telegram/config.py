"""Configuration management for the gateway."""

import ipaddress
import os
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_LISTEN_ADDRESS = "0.0.0.0:17333"


def parse_listen_address(value: str) -> tuple[str, int]:
    """Split a ``host:port`` or ``[ipv6]:port`` string.

    Args:
        value: Address string to parse

    Returns:
        Tuple of (host, port)

    Raises:
        ValueError: If the address cannot be parsed
    """
    value = value.strip()
    if value.startswith("["):
        host, sep, port = value[1:].partition("]:")
        if not sep:
            raise ValueError(f"Can't parse host address: {value!r}")
        ipaddress.IPv6Address(host)
    else:
        host, sep, port = value.rpartition(":")
        if not sep or not host or ":" in host:
            raise ValueError(f"Can't parse host address: {value!r}")

    if not port.isdigit() or not 0 <= int(port) <= 65535:
        raise ValueError(f"Invalid port in host address: {value!r}")

    return host, int(port)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Telegram Bot API Configuration
    telegram_bot_token: Optional[str] = Field(
        default=None,
        description="Telegram Bot API token",
    )
    telegram_standard_chat_id: Optional[int] = Field(
        default=None,
        ge=0,
        description="Fallback chat id used when the recipient address carries none",
    )
    telegram_api_url: str = Field(
        default="https://api.telegram.org",
        description="Telegram Bot API base URL",
    )
    telegram_api_delay: float = Field(
        default=0.0,
        ge=0,
        description="Pause in seconds after each relayed mail",
    )
    telegram_parse_mode: Optional[str] = Field(
        default=None,
        description="Optional parse_mode for text messages (HTML, MarkdownV2)",
    )
    api_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Telegram API request timeout in seconds",
    )

    # SMTP Server Configuration
    listen_address: str = Field(
        default=DEFAULT_LISTEN_ADDRESS,
        description="SMTP server bind address (host:port)",
    )
    smtp_hostname: str = Field(
        default="mail-to-telegram",
        description="Hostname announced in the SMTP greeting",
    )
    smtp_timeout: float = Field(
        default=300.0,
        gt=0,
        description="Seconds an SMTP connection may stay idle before it is closed",
    )

    # Relay Configuration
    queue_capacity: int = Field(
        default=5000,
        ge=0,
        description="Maximum number of queued mails (0 means unbounded)",
    )
    thread_count: Optional[int] = Field(
        default=None,
        gt=0,
        description="Worker threads for the default executor",
    )
    shutdown_timeout: float = Field(
        default=30.0,
        ge=0,
        description="Seconds to wait for queued mails to drain on shutdown",
    )

    # HTTP Server Configuration
    http_enabled: bool = Field(default=True, description="Serve health and metrics endpoints")
    http_host: str = Field(default="0.0.0.0", description="HTTP server bind address")
    http_port: int = Field(default=8080, description="HTTP server port")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json or console)")

    @field_validator("listen_address")
    @classmethod
    def validate_listen_address(cls, value: str) -> str:
        """Reject bind addresses that cannot be parsed."""
        parse_listen_address(value)
        return value.strip()

    @property
    def bind_address(self) -> tuple[str, int]:
        """Host and port the SMTP listener binds to."""
        return parse_listen_address(self.listen_address)

    @property
    def executor_workers(self) -> int:
        """Size of the default thread pool executor."""
        if self.thread_count:
            return self.thread_count
        return min(os.cpu_count() or 1, 4)
