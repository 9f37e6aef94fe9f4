"""Tests for the Telegram Bot API transport."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from pydantic import SecretStr

from alertmanager_bot.bot import Bot
from alertmanager_bot.bot.models import Chat, Message, User
from alertmanager_bot.errors import SendError, TelegramAuthError
from alertmanager_bot.store import MemoryStore
from alertmanager_bot.telegram import TelegramClient
from alertmanager_bot.webhook.models import Alert, AlertNotification

TOKEN = "123456:ABC-DEF"


def response(payload: Any, status_code: int = 200) -> MagicMock:
    """Build a mock httpx response returning payload from json()."""
    mock = MagicMock()
    mock.status_code = status_code
    mock.json.return_value = payload
    return mock


@pytest.fixture
def http() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def client(http: AsyncMock) -> TelegramClient:
    return TelegramClient(TOKEN, poll_timeout=5, retry_delay=0, client=http)


def update(update_id: int, message: dict[str, Any] | None) -> dict[str, Any]:
    data: dict[str, Any] = {"update_id": update_id}
    if message is not None:
        data["message"] = message
    return data


def text_message(message_id: int, text: str) -> dict[str, Any]:
    return {
        "message_id": message_id,
        "from": {"id": 123, "is_bot": False, "first_name": "Elliot", "username": "elliot"},
        "chat": {"id": 123, "type": "private", "first_name": "Elliot", "username": "elliot"},
        "text": text,
    }


class TestCall:
    """Tests for Bot API request handling."""

    async def test_url_contains_token_and_method(
        self, client: TelegramClient, http: AsyncMock
    ) -> None:
        http.post.return_value = response({"ok": True, "result": True})

        await client.send_message(123, "hello")

        url = http.post.call_args.args[0]
        assert url == f"https://api.telegram.org/bot{TOKEN}/sendMessage"

    async def test_secret_token(self, http: AsyncMock) -> None:
        client = TelegramClient(SecretStr(TOKEN), client=http)
        http.post.return_value = response({"ok": True, "result": True})

        await client.send_message(1, "hi")

        assert TOKEN in http.post.call_args.args[0]

    async def test_send_message_payload(self, client: TelegramClient, http: AsyncMock) -> None:
        http.post.return_value = response({"ok": True, "result": {"message_id": 1}})

        await client.send_message(-100200, "🔥 FIRING 🔥")

        assert http.post.call_args.kwargs["json"] == {
            "chat_id": -100200,
            "text": "🔥 FIRING 🔥",
            "disable_web_page_preview": True,
        }

    async def test_api_error(self, client: TelegramClient, http: AsyncMock) -> None:
        http.post.return_value = response(
            {"ok": False, "error_code": 400, "description": "Bad Request: chat not found"},
            status_code=400,
        )

        with pytest.raises(SendError, match="sendMessage failed: 400 - Bad Request: chat not found"):
            await client.send_message(123, "hello")

    async def test_unauthorized(self, client: TelegramClient, http: AsyncMock) -> None:
        http.post.return_value = response(
            {"ok": False, "error_code": 401, "description": "Unauthorized"},
            status_code=401,
        )

        with pytest.raises(TelegramAuthError):
            await client.get_me()

    async def test_timeout(self, client: TelegramClient, http: AsyncMock) -> None:
        http.post.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(SendError, match="sendMessage timed out"):
            await client.send_message(123, "hello")

    async def test_http_error(self, client: TelegramClient, http: AsyncMock) -> None:
        http.post.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(SendError, match="connection refused"):
            await client.send_message(123, "hello")

    async def test_invalid_json(self, client: TelegramClient, http: AsyncMock) -> None:
        bad = MagicMock()
        bad.json.side_effect = ValueError("Expecting value")
        http.post.return_value = bad

        with pytest.raises(SendError, match="invalid JSON"):
            await client.send_message(123, "hello")


    @pytest.mark.parametrize("body", [["bad gateway"], None, "oops", 502])
    async def test_non_object_body(
        self, client: TelegramClient, http: AsyncMock, body: Any
    ) -> None:
        http.post.return_value = response(body, status_code=502)

        with pytest.raises(SendError, match="sendMessage returned unexpected payload"):
            await client.send_message(123, "hello")

    async def test_broadcast_survives_non_object_body(
        self, client: TelegramClient, http: AsyncMock
    ) -> None:
        """A garbled reply for one chat does not stop delivery to the others."""
        store = MemoryStore()
        for chat_id in (1, 2, 3):
            await store.add(Chat(id=chat_id))
        http.post.side_effect = [
            response(["bad gateway"], status_code=502),
            response({"ok": True, "result": {"message_id": 2}}),
            response({"ok": True, "result": {"message_id": 3}}),
        ]
        bot = Bot(store, client, admin_id=123)
        notification = AlertNotification(
            status="firing",
            alerts=(Alert(status="firing", labels={"alertname": "HighLatency"}),),
        )

        delivered = await bot.broadcast(notification)

        assert delivered == 2
        assert http.post.call_count == 3
        chat_ids = [call.kwargs["json"]["chat_id"] for call in http.post.call_args_list]
        assert chat_ids == [1, 2, 3]


class TestGetMe:
    """Tests for get_me."""

    async def test_get_me(self, client: TelegramClient, http: AsyncMock) -> None:
        http.post.return_value = response(
            {
                "ok": True,
                "result": {"id": 42, "is_bot": True, "first_name": "Alerts", "username": "am_bot"},
            }
        )

        me = await client.get_me()

        assert me == User(id=42, first_name="Alerts", username="am_bot", is_bot=True)


class TestGetUpdates:
    """Tests for long polling."""

    async def test_returns_text_messages(self, client: TelegramClient, http: AsyncMock) -> None:
        http.post.return_value = response(
            {"ok": True, "result": [update(10, text_message(1, "/start"))]}
        )

        messages = await client.get_updates()

        assert messages == [
            Message(
                id=1,
                sender=User(id=123, first_name="Elliot", username="elliot"),
                chat=Chat(id=123, type="private", first_name="Elliot", username="elliot"),
                text="/start",
            )
        ]
        payload = http.post.call_args.kwargs["json"]
        assert payload == {"offset": 0, "timeout": 5, "allowed_updates": ["message"]}
        assert http.post.call_args.kwargs["timeout"] == 5 + client.timeout

    async def test_advances_offset(self, client: TelegramClient, http: AsyncMock) -> None:
        http.post.side_effect = [
            response({"ok": True, "result": [update(10, text_message(1, "/help"))]}),
            response({"ok": True, "result": []}),
        ]

        await client.get_updates()
        await client.get_updates()

        assert http.post.call_args.kwargs["json"]["offset"] == 11

    async def test_non_list_result(self, client: TelegramClient, http: AsyncMock) -> None:
        http.post.return_value = response({"ok": True, "result": {"update_id": 1}})

        with pytest.raises(SendError, match="getUpdates returned unexpected payload"):
            await client.get_updates()

    async def test_skips_malformed_updates(self, client: TelegramClient, http: AsyncMock) -> None:
        broken_sender = text_message(4, "/help")
        broken_sender["from"] = ["elliot"]
        http.post.side_effect = [
            response(
                {
                    "ok": True,
                    "result": [
                        {"message": text_message(1, "/start")},
                        "garbage",
                        update(20, ["not", "a", "message"]),  # type: ignore[arg-type]
                        update(21, broken_sender),
                        update(22, text_message(5, "/chats")),
                    ],
                }
            ),
            response({"ok": True, "result": []}),
        ]

        messages = await client.get_updates()
        await client.get_updates()

        assert [m.text for m in messages] == ["/chats"]
        assert http.post.call_args.kwargs["json"]["offset"] == 23

    async def test_listen_retries_non_object_body(
        self, client: TelegramClient, http: AsyncMock
    ) -> None:
        http.post.side_effect = [
            response(None, status_code=502),
            response({"ok": True, "result": [update(10, text_message(1, "/start"))]}),
            response({"ok": False, "error_code": 401, "description": "Unauthorized"}),
        ]
        queue: asyncio.Queue[Message] = asyncio.Queue()

        with pytest.raises(TelegramAuthError):
            await client.listen(queue)

        assert queue.get_nowait().text == "/start"

    async def test_skips_updates_without_text(
        self, client: TelegramClient, http: AsyncMock
    ) -> None:
        sticker = text_message(2, "")
        del sticker["text"]
        http.post.side_effect = [
            response(
                {
                    "ok": True,
                    "result": [
                        update(10, None),
                        update(11, sticker),
                        update(12, text_message(3, "/chats")),
                    ],
                }
            ),
            response({"ok": True, "result": []}),
        ]

        messages = await client.get_updates()
        await client.get_updates()

        assert [m.text for m in messages] == ["/chats"]
        assert http.post.call_args.kwargs["json"]["offset"] == 13


class TestListen:
    """Tests for the listen loop."""

    async def test_retries_and_enqueues(self, client: TelegramClient) -> None:
        message = Message(
            id=1,
            sender=User(id=123, first_name="Elliot"),
            chat=Chat(id=123),
            text="/start",
        )
        queue: asyncio.Queue[Message] = asyncio.Queue()

        with (
            patch.object(
                client,
                "get_updates",
                AsyncMock(
                    side_effect=[SendError("boom"), [message], TelegramAuthError("revoked")]
                ),
            ) as mock_get,
            pytest.raises(TelegramAuthError),
        ):
            await client.listen(queue)

        assert mock_get.call_count == 3
        assert queue.get_nowait() == message
        assert queue.empty()

    async def test_cancellation(self, client: TelegramClient, http: AsyncMock) -> None:
        async def hang(*_args: Any, **_kwargs: Any) -> None:
            await asyncio.sleep(60)

        http.post.side_effect = hang
        task = asyncio.create_task(client.listen(asyncio.Queue()))
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task


async def test_close(client: TelegramClient, http: AsyncMock) -> None:
    await client.close()
    http.aclose.assert_awaited_once()
