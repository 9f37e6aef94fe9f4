"""In-memory subscriber store."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from alertmanager_bot.logfmt import fields

if TYPE_CHECKING:
    from alertmanager_bot.bot.models import Chat

logger = logging.getLogger(__name__)


class MemoryStore:
    """Subscriber store held in process memory.

    Subscriptions are lost on restart. All access goes through a single
    asyncio lock so listing never observes a half-applied mutation.
    """

    def __init__(self) -> None:
        self._chats: dict[int, Chat] = {}
        self._lock = asyncio.Lock()

    async def list(self) -> list[Chat]:
        async with self._lock:
            return [self._chats[chat_id] for chat_id in sorted(self._chats)]

    async def add(self, chat: Chat) -> None:
        async with self._lock:
            self._chats[chat.id] = chat

    async def remove(self, chat: Chat) -> None:
        async with self._lock:
            self._chats.pop(chat.id, None)

    async def close(self) -> None:
        logger.debug("memory store closed", extra=fields(chats=len(self._chats)))
