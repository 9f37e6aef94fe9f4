"""SQL subscriber store using SQLAlchemy's asyncio extension.

Works with any async driver SQLAlchemy supports, e.g.
``postgresql+asyncpg://`` in production and ``sqlite+aiosqlite://`` for
local runs and tests.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from alertmanager_bot.bot.models import Chat
from alertmanager_bot.errors import StorageError
from alertmanager_bot.store.models import Base, SubscribedChatModel

logger = logging.getLogger(__name__)


class SQLStore:
    """Subscriber store backed by a relational database.

    Every operation runs in its own session and transaction, so concurrent
    callers are serialized by the database.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        """Initialize the store.

        Args:
            engine: SQLAlchemy async engine.
        """
        self._engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str) -> SQLStore:
        """Create a store from a SQLAlchemy database URL."""
        return cls(create_async_engine(url))

    async def create_schema(self) -> None:
        """Create the subscribed_chats table if it does not exist."""
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise StorageError(f"failed to create schema: {e}") from e

    async def list(self) -> list[Chat]:
        try:
            async with self._sessions() as session:
                result = await session.execute(
                    select(SubscribedChatModel).order_by(SubscribedChatModel.chat_id.asc())
                )
                return [model.to_chat() for model in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StorageError(f"failed to list chats: {e}") from e

    async def add(self, chat: Chat) -> None:
        try:
            async with self._sessions.begin() as session:
                await session.merge(SubscribedChatModel.from_chat(chat))
        except SQLAlchemyError as e:
            raise StorageError(f"failed to add chat {chat.id}: {e}") from e

    async def remove(self, chat: Chat) -> None:
        try:
            async with self._sessions.begin() as session:
                await session.execute(
                    delete(SubscribedChatModel).where(SubscribedChatModel.chat_id == chat.id)
                )
        except SQLAlchemyError as e:
            raise StorageError(f"failed to remove chat {chat.id}: {e}") from e

    async def close(self) -> None:
        await self._engine.dispose()
        logger.debug("sql store closed")
