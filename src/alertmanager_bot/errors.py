"""Exception hierarchy shared by the bot, the stores and the transports."""


class BotError(Exception):
    """Base exception for alertmanager bot errors."""

    pass


class AuthorizationError(BotError):
    """Raised when a message comes from someone other than the administrator."""

    pass


class RoutingError(BotError):
    """Raised when message text does not map to a known command."""

    pass


class StorageError(BotError):
    """Raised when the subscriber store backend fails."""

    pass


class SendError(BotError):
    """Raised when a message could not be delivered to a recipient."""

    pass


class TelegramAuthError(SendError):
    """Raised when the Telegram Bot API rejects the bot token."""

    pass
