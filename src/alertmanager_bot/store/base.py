"""Subscriber store protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from alertmanager_bot.bot.models import Chat


class SubscriberStore(Protocol):
    """Protocol for the set of chats subscribed to alerts.

    Implementations must be safe for concurrent use from the chat loop
    and the alert loop, and must raise StorageError on backend failure.
    """

    async def list(self) -> list[Chat]:
        """Return all subscribed chats ordered by ascending chat id."""
        ...

    async def add(self, chat: Chat) -> None:
        """Subscribe a chat. Adding an existing chat replaces its details."""
        ...

    async def remove(self, chat: Chat) -> None:
        """Unsubscribe a chat. Removing an absent chat is not an error."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...
