"""Data models for the bot module."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class User:
    """A Telegram user sending messages to the bot."""

    id: int
    first_name: str = ""
    last_name: str = ""
    username: str = ""
    is_bot: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        """Create a User from a Bot API ``User`` object."""
        return cls(
            id=int(data["id"]),
            first_name=str(data.get("first_name", "")),
            last_name=str(data.get("last_name", "")),
            username=str(data.get("username", "")),
            is_bot=bool(data.get("is_bot", False)),
        )


@dataclass(frozen=True)
class Chat:
    """A chat the bot can talk to: a private conversation, group or channel.

    Chats are identified by ``id`` alone. Usernames may be empty for
    groups and for users without a public handle.
    """

    id: int
    type: str = "private"
    title: str = ""
    first_name: str = ""
    last_name: str = ""
    username: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("chat id must be non-zero")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Chat:
        """Create a Chat from a Bot API ``Chat`` object."""
        return cls(
            id=int(data["id"]),
            type=str(data.get("type", "private")),
            title=str(data.get("title", "")),
            first_name=str(data.get("first_name", "")),
            last_name=str(data.get("last_name", "")),
            username=str(data.get("username", "")),
        )

    @classmethod
    def from_user(cls, user: User) -> Chat:
        """Create the private chat belonging to a user."""
        return cls(
            id=user.id,
            type="private",
            first_name=user.first_name,
            last_name=user.last_name,
            username=user.username,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the Bot API ``Chat`` shape."""
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "username": self.username,
        }


@dataclass(frozen=True)
class Message:
    """An inbound chat message, consumed once by the bot."""

    id: int
    sender: User
    chat: Chat
    text: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        """Create a Message from a Bot API ``Message`` object."""
        return cls(
            id=int(data["message_id"]),
            sender=User.from_dict(data["from"]),
            chat=Chat.from_dict(data["chat"]),
            text=str(data.get("text", "")),
        )
