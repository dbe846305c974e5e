"""Telegram Bot API client."""

import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

from mail_to_telegram.metrics import telegram_api_latency_seconds
from mail_to_telegram.telegram.errors import (
    AuthenticationError,
    NetworkError,
    ServerError,
)


logger = structlog.get_logger()

DEFAULT_API_URL = "https://api.telegram.org"


@dataclass(frozen=True)
class TelegramResponse:
    """Status and body of a Bot API call."""

    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        if not 200 <= self.status_code < 300:
            return False
        if isinstance(self.body, dict):
            return self.body.get("ok", True) is not False
        return True

    @property
    def description(self) -> Optional[str]:
        """Error description returned by the Bot API, if any."""
        if isinstance(self.body, dict):
            return self.body.get("description")
        return None


class TelegramClient:
    """Client for the subset of the Bot API used to relay mails.

    A single instance is shared by the relay worker; it holds no mutable
    state after construction besides the underlying connection pool.
    """

    def __init__(
        self,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
        parse_mode: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the client.

        Args:
            token: Bot API token
            api_url: Bot API base URL
            timeout: Request timeout in seconds
            parse_mode: Optional parse_mode sent with text messages
            http_client: Preconfigured httpx client, mainly for tests
        """
        self._token = token
        self._base_url = f"{api_url.rstrip('/')}/bot{token}"
        self.parse_mode = parse_mode
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=timeout),
        )

    @classmethod
    async def connect(cls, token: str, **kwargs: Any) -> "TelegramClient":
        """Create a client and validate the token with ``getMe``.

        Raises:
            AuthenticationError: If the token is rejected
            ServerError: If the API answers with an unexpected status
            NetworkError: If the API cannot be reached
        """
        client = cls(token, **kwargs)
        try:
            me = await client.get_me()
        except Exception:
            await client.aclose()
            raise

        logger.info(
            "Telegram bot token validated",
            bot_id=me.get("id"),
            username=me.get("username"),
        )
        return client

    async def get_me(self) -> dict:
        """Return the bot's own user object.

        Raises:
            AuthenticationError: If the token is rejected (401, 404)
            ServerError: If the API answers with an unexpected status
            NetworkError: If the API cannot be reached
        """
        response = await self._post("getMe")

        if response.status_code in (401, 404):
            logger.warning(
                "Telegram rejected bot token",
                status_code=response.status_code,
                description=response.description,
            )
            raise AuthenticationError(f"Telegram bot token rejected: {response.status_code}")

        if not response.ok or not isinstance(response.body, dict):
            raise ServerError(f"Unexpected getMe response: {response.status_code}")

        return response.body.get("result") or {}

    async def send_text(self, chat_id: int, text: str) -> TelegramResponse:
        """Send a text message.

        Args:
            chat_id: Destination chat id
            text: Message text

        Returns:
            TelegramResponse with status and decoded body

        Raises:
            NetworkError: If the request could not be completed
        """
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if self.parse_mode:
            payload["parse_mode"] = self.parse_mode

        return await self._post("sendMessage", json=payload)

    async def send_document(
        self,
        chat_id: int,
        filename: str,
        content: bytes,
        caption: str,
    ) -> TelegramResponse:
        """Send a plain text file as a document.

        Args:
            chat_id: Destination chat id
            filename: File name shown in the chat
            content: File content
            caption: Caption displayed below the document

        Returns:
            TelegramResponse with status and decoded body

        Raises:
            NetworkError: If the request could not be completed
        """
        return await self._post(
            "sendDocument",
            data={"chat_id": str(chat_id), "caption": caption},
            files={"document": (filename, content, "text/plain")},
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(self, method: str, **kwargs: Any) -> TelegramResponse:
        start = time.monotonic()
        try:
            response = await self._http.post(f"{self._base_url}/{method}", **kwargs)
        except httpx.TimeoutException as e:
            telegram_api_latency_seconds.labels(method=method, status="error").observe(
                time.monotonic() - start
            )
            raise NetworkError(f"Telegram API request timeout: {e}") from e
        except httpx.RequestError as e:
            telegram_api_latency_seconds.labels(method=method, status="error").observe(
                time.monotonic() - start
            )
            # The request URL embeds the token, keep it out of the message
            raise NetworkError(f"Network error calling {method}: {type(e).__name__}") from e

        telegram_api_latency_seconds.labels(
            method=method,
            status="success" if response.is_success else "error",
        ).observe(time.monotonic() - start)

        try:
            body: Any = response.json()
        except ValueError:
            body = response.text

        logger.debug(
            "Telegram API call completed",
            method=method,
            status_code=response.status_code,
        )
        return TelegramResponse(status_code=response.status_code, body=body)
