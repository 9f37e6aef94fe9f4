"""Bot core - command routing and alert fan-out."""

from alertmanager_bot.bot.commands import RESPONSE_HELP, Command, parse_command
from alertmanager_bot.bot.dispatcher import Bot, format_chat_list
from alertmanager_bot.bot.models import Chat, Message, User

__all__ = [
    "RESPONSE_HELP",
    "Bot",
    "Chat",
    "Command",
    "Message",
    "User",
    "format_chat_list",
    "parse_command",
]
