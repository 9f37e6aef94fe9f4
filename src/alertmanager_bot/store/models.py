"""SQLAlchemy models for the SQL subscriber store."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from alertmanager_bot.bot.models import Chat


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class SubscribedChatModel(Base):
    """SQLAlchemy model for a chat subscribed to alerts."""

    __tablename__ = "subscribed_chats"

    chat_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="private")
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    first_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    username: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    subscribed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    @classmethod
    def from_chat(cls, chat: Chat) -> SubscribedChatModel:
        """Create a row from a Chat."""
        return cls(
            chat_id=chat.id,
            type=chat.type,
            title=chat.title,
            first_name=chat.first_name,
            last_name=chat.last_name,
            username=chat.username,
        )

    def to_chat(self) -> Chat:
        """Convert the row back to a Chat."""
        return Chat(
            id=self.chat_id,
            type=self.type,
            title=self.title,
            first_name=self.first_name,
            last_name=self.last_name,
            username=self.username,
        )
