"""Unit tests for the Telegram Bot API client."""

import json

import httpx
import pytest
import respx
from httpx import Response

from mail_to_telegram.telegram.client import TelegramClient, TelegramResponse
from mail_to_telegram.telegram.errors import AuthenticationError, NetworkError, ServerError


TOKEN = "123456:TEST-token"
BASE_URL = f"https://api.telegram.org/bot{TOKEN}"


@pytest.fixture
async def client():
    client = TelegramClient(TOKEN)
    yield client
    await client.aclose()


@pytest.mark.unit
class TestTelegramResponse:
    def test_ok_for_2xx(self):
        assert TelegramResponse(200, {"ok": True}).ok
        assert TelegramResponse(200, "plain body").ok

    def test_not_ok_for_error_status(self):
        response = TelegramResponse(400, {"ok": False, "description": "Bad Request: chat not found"})

        assert not response.ok
        assert response.description == "Bad Request: chat not found"

    def test_not_ok_when_body_says_so(self):
        assert not TelegramResponse(200, {"ok": False}).ok


@pytest.mark.unit
class TestSendText:
    """Tests for send_text."""

    @respx.mock
    async def test_posts_json_message(self, client):
        route = respx.post(f"{BASE_URL}/sendMessage").mock(
            return_value=Response(200, json={"ok": True, "result": {"message_id": 1}})
        )

        response = await client.send_text(5, "hello world")

        assert response.ok
        assert route.call_count == 1
        assert json.loads(route.calls.last.request.content) == {"chat_id": 5, "text": "hello world"}

    @respx.mock
    async def test_includes_parse_mode_when_configured(self):
        route = respx.post(f"{BASE_URL}/sendMessage").mock(return_value=Response(200, json={"ok": True}))
        client = TelegramClient(TOKEN, parse_mode="HTML")

        await client.send_text(5, "<b>hi</b>")
        await client.aclose()

        assert json.loads(route.calls.last.request.content)["parse_mode"] == "HTML"

    @respx.mock
    async def test_error_status_is_returned_not_raised(self, client):
        respx.post(f"{BASE_URL}/sendMessage").mock(
            return_value=Response(400, json={"ok": False, "description": "Bad Request: chat not found"})
        )

        response = await client.send_text(5, "hello")

        assert response.status_code == 400
        assert not response.ok

    @respx.mock
    async def test_network_error_raises(self, client):
        respx.post(f"{BASE_URL}/sendMessage").mock(side_effect=httpx.ConnectError("Connection refused"))

        with pytest.raises(NetworkError) as exc_info:
            await client.send_text(5, "hello")

        assert TOKEN not in str(exc_info.value)

    @respx.mock
    async def test_timeout_raises_network_error(self, client):
        respx.post(f"{BASE_URL}/sendMessage").mock(side_effect=httpx.ReadTimeout("Timeout"))

        with pytest.raises(NetworkError, match="timeout"):
            await client.send_text(5, "hello")

    @respx.mock
    async def test_custom_api_url(self):
        route = respx.post(f"https://tg.example.com/bot{TOKEN}/sendMessage").mock(
            return_value=Response(200, json={"ok": True})
        )
        client = TelegramClient(TOKEN, api_url="https://tg.example.com/")

        await client.send_text(1, "x")
        await client.aclose()

        assert route.called


@pytest.mark.unit
class TestSendDocument:
    """Tests for send_document."""

    @respx.mock
    async def test_posts_multipart_document(self, client):
        route = respx.post(f"{BASE_URL}/sendDocument").mock(return_value=Response(200, json={"ok": True}))

        response = await client.send_document(5, "mail.txt", b"long mail body", "caption text")

        assert response.ok
        request = route.calls.last.request
        assert request.headers["content-type"].startswith("multipart/form-data")
        body = request.content
        assert b'name="chat_id"' in body
        assert b"\r\n\r\n5\r\n" in body
        assert b'name="caption"' in body
        assert b"caption text" in body
        assert b'name="document"; filename="mail.txt"' in body
        assert b"Content-Type: text/plain" in body
        assert b"long mail body" in body


@pytest.mark.unit
class TestConnect:
    """Tests for token validation at startup."""

    @respx.mock
    async def test_valid_token(self):
        route = respx.post(f"{BASE_URL}/getMe").mock(
            return_value=Response(200, json={"ok": True, "result": {"id": 123456, "username": "mail_bot"}})
        )

        client = await TelegramClient.connect(TOKEN)
        await client.aclose()

        assert route.called

    @respx.mock
    @pytest.mark.parametrize("status_code", [401, 404])
    async def test_rejected_token(self, status_code):
        respx.post(f"{BASE_URL}/getMe").mock(
            return_value=Response(status_code, json={"ok": False, "description": "Unauthorized"})
        )

        with pytest.raises(AuthenticationError):
            await TelegramClient.connect(TOKEN)

    @respx.mock
    async def test_server_error(self):
        respx.post(f"{BASE_URL}/getMe").mock(return_value=Response(502, text="Bad Gateway"))

        with pytest.raises(ServerError):
            await TelegramClient.connect(TOKEN)

    @respx.mock
    async def test_unreachable_api(self):
        respx.post(f"{BASE_URL}/getMe").mock(side_effect=httpx.ConnectError("Connection refused"))

        with pytest.raises(NetworkError):
            await TelegramClient.connect(TOKEN)
