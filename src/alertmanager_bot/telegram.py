"""Telegram Bot API transport.

Sends messages with ``sendMessage`` and receives them by long polling
``getUpdates``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from alertmanager_bot.bot.models import Message, User
from alertmanager_bot.errors import SendError, TelegramAuthError
from alertmanager_bot.logfmt import fields

if TYPE_CHECKING:
    from pydantic import SecretStr

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org/bot{token}/{method}"

# Default configuration
DEFAULT_POLL_TIMEOUT = 30
DEFAULT_TIMEOUT = 10.0
DEFAULT_RETRY_DELAY = 1.0


class Sender(Protocol):
    """Protocol for delivering a text message to one chat."""

    async def send_message(self, recipient_id: int, text: str) -> None:
        """Send text to the recipient. Raises SendError on failure."""
        ...


class Transport(Sender, Protocol):
    """Protocol for a full chat transport: inbound and outbound."""

    async def listen(self, messages: asyncio.Queue[Message]) -> None:
        """Put inbound messages on the queue until cancelled."""
        ...


class TelegramClient:
    """Telegram Bot API client used as the bot's chat transport.

    Example:
        ```python
        client = TelegramClient(settings.telegram.token)
        me = await client.get_me()

        messages: asyncio.Queue[Message] = asyncio.Queue()
        listener = asyncio.create_task(client.listen(messages))
        await client.send_message(123, "hello")
        ```
    """

    def __init__(
        self,
        token: str | SecretStr,
        *,
        poll_timeout: int = DEFAULT_POLL_TIMEOUT,
        timeout: float = DEFAULT_TIMEOUT,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            token: Telegram bot token.
            poll_timeout: Long polling timeout for getUpdates in seconds.
            timeout: HTTP request timeout in seconds, on top of poll_timeout
                for getUpdates.
            retry_delay: Delay before polling again after a failure.
            client: Optional shared httpx client.
        """
        secret = token if isinstance(token, str) else token.get_secret_value()
        self.poll_timeout = poll_timeout
        self.timeout = timeout
        self.retry_delay = retry_delay

        self._token = secret
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._offset = 0

    def _url(self, method: str) -> str:
        return TELEGRAM_API_BASE.format(token=self._token, method=method)

    async def _call(
        self,
        method: str,
        payload: dict[str, Any],
        *,
        timeout: float | None = None,
    ) -> Any:
        """Call a Bot API method and return its ``result``.

        Raises:
            TelegramAuthError: If the token is rejected.
            SendError: On HTTP errors, timeouts or ``ok=false`` responses.
        """
        try:
            response = await self._client.post(
                self._url(method),
                json=payload,
                timeout=timeout or self.timeout,
            )
            result = response.json()
        except httpx.TimeoutException as e:
            raise SendError(f"{method} timed out") from e
        except httpx.HTTPError as e:
            raise SendError(f"{method} failed: {e}") from e
        except ValueError as e:
            raise SendError(f"{method} returned invalid JSON") from e

        if not isinstance(result, dict):
            raise SendError(f"{method} returned unexpected payload")

        if result.get("ok"):
            return result.get("result")

        error_code = result.get("error_code", response.status_code)
        description = result.get("description", "Unknown error")
        if error_code == 401:
            raise TelegramAuthError(f"{method} unauthorized: {description}")
        raise SendError(f"{method} failed: {error_code} - {description}")

    async def get_me(self) -> User:
        """Return the bot's own user, validating the token."""
        result = await self._call("getMe", {})
        return User.from_dict(result)

    async def send_message(self, recipient_id: int, text: str) -> None:
        """Send a plain text message to a chat.

        Args:
            recipient_id: Chat id to deliver to.
            text: Message text.

        Raises:
            SendError: If delivery failed.
        """
        await self._call(
            "sendMessage",
            {
                "chat_id": recipient_id,
                "text": text,
                "disable_web_page_preview": True,
            },
        )

    async def get_updates(self) -> list[Message]:
        """Fetch one batch of updates and advance the offset.

        Returns:
            Text messages contained in the batch.
        """
        updates = await self._call(
            "getUpdates",
            {
                "offset": self._offset,
                "timeout": self.poll_timeout,
                "allowed_updates": ["message"],
            },
            timeout=self.poll_timeout + self.timeout,
        )

        if updates is None:
            updates = []
        if not isinstance(updates, list):
            raise SendError("getUpdates returned unexpected payload")

        messages = []
        for update in updates:
            try:
                update_id = int(update["update_id"])
            except (TypeError, KeyError, ValueError) as e:
                logger.warning("skipping malformed update", extra=fields(err=e))
                continue
            self._offset = max(self._offset, update_id + 1)
            data = update.get("message")
            if not isinstance(data, dict) or "from" not in data or "text" not in data:
                continue
            try:
                messages.append(Message.from_dict(data))
            except (TypeError, KeyError, ValueError) as e:
                logger.warning("skipping malformed update", extra=fields(err=e))
        return messages

    async def listen(self, messages: asyncio.Queue[Message]) -> None:
        """Long poll for messages and put them on the queue.

        Runs until cancelled. Transient failures are logged and retried.

        Raises:
            TelegramAuthError: If the token is rejected.
        """
        while True:
            try:
                batch = await self.get_updates()
            except TelegramAuthError:
                raise
            except SendError as e:
                logger.warning("failed to get updates", extra=fields(err=e))
                await asyncio.sleep(self.retry_delay)
                continue

            for message in batch:
                await messages.put(message)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
