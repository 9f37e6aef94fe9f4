"""Redis-backed subscriber store.

Subscribed chats live in a single Redis hash. The hash field is the chat
id and the value is the JSON-encoded chat, so every store operation maps
to one atomic Redis command.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from redis.exceptions import RedisError

from alertmanager_bot.bot.models import Chat
from alertmanager_bot.errors import StorageError
from alertmanager_bot.logfmt import fields

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_KEY = "alertmanager_bot:chats"


def _serialize_chat(chat: Chat) -> str:
    """Serialize a Chat to the JSON string stored in the hash."""
    return json.dumps(chat.to_dict(), sort_keys=True)


def _deserialize_chat(raw: bytes | str) -> Chat:
    """Deserialize a Chat from a hash value (bytes or str)."""
    text = raw.decode() if isinstance(raw, bytes) else raw
    data: dict[str, Any] = json.loads(text)
    return Chat.from_dict(data)


class RedisStore:
    """Subscriber store using a Redis hash.

    Example:
        ```python
        redis = Redis.from_url("redis://localhost:6379")
        store = RedisStore(redis)

        await store.add(chat)
        chats = await store.list()
        ```
    """

    def __init__(self, redis: Redis, *, key: str = DEFAULT_KEY) -> None:
        """Initialize the store.

        Args:
            redis: Async Redis client.
            key: Name of the hash holding the subscribed chats.
        """
        self._redis = redis
        self._key = key

    @property
    def key(self) -> str:
        """Name of the Redis hash."""
        return self._key

    async def list(self) -> list[Chat]:
        try:
            entries = await self._redis.hgetall(self._key)
        except RedisError as e:
            raise StorageError(f"failed to list chats: {e}") from e

        chats = []
        for field, raw in entries.items():
            try:
                chats.append(_deserialize_chat(raw))
            except (ValueError, KeyError) as e:
                logger.warning(
                    "skipping malformed chat entry", extra=fields(field=field, err=e)
                )
        return sorted(chats, key=lambda chat: chat.id)

    async def add(self, chat: Chat) -> None:
        try:
            await self._redis.hset(self._key, str(chat.id), _serialize_chat(chat))
        except RedisError as e:
            raise StorageError(f"failed to add chat {chat.id}: {e}") from e

    async def remove(self, chat: Chat) -> None:
        try:
            await self._redis.hdel(self._key, str(chat.id))
        except RedisError as e:
            raise StorageError(f"failed to remove chat {chat.id}: {e}") from e

    async def close(self) -> None:
        await self._redis.aclose()
        logger.debug("redis store closed")
