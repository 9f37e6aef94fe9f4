"""Command routing for inbound chat messages."""

from __future__ import annotations

from enum import Enum


class Command(Enum):
    """Commands understood by the bot."""

    START = "/start"
    STOP = "/stop"
    HELP = "/help"
    CHATS = "/chats"
    UNKNOWN = ""


# Matched in order; the first token the text starts with wins
COMMAND_TOKENS: tuple[Command, ...] = (
    Command.START,
    Command.STOP,
    Command.HELP,
    Command.CHATS,
)

RESPONSE_HELP = """I'm a Prometheus AlertManager Bot for Telegram. I will notify you about alerts.

Available commands:
/start - Subscribe for alerts.
/stop - Unsubscribe for alerts.
/help - Print this help.
/chats - List all users and group chats that subscribed.
"""

RESPONSE_UNKNOWN = "Sorry, I don't understand..."
RESPONSE_START = "Hey, {first_name}! I will now keep you up to date!\n" + Command.HELP.value
RESPONSE_STOP = "Alright, {first_name}! I won't talk to you again.\n" + Command.HELP.value
RESPONSE_CHATS_EMPTY = "Currently no one is subscribed."
RESPONSE_CHATS_HEADER = "Currently these chat have subscribed:\n"
RESPONSE_CHATS_LINE = "@{username}\n"

RESPONSE_ADD_FAILED = "I can't add this chat to the subscribers list."
RESPONSE_REMOVE_FAILED = "I can't remove this chat from the subscribers list."
RESPONSE_LIST_FAILED = "I can't list the subscribed chats."


def parse_command(text: str) -> Command:
    """Map message text to a command by exact prefix match.

    Args:
        text: Raw message text.

    Returns:
        The matching Command, or Command.UNKNOWN if no token matches.
    """
    for command in COMMAND_TOKENS:
        if text.startswith(command.value):
            return command
    return Command.UNKNOWN
