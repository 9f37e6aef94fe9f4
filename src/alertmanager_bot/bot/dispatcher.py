"""The bot: routes chat commands and fans alerts out to subscribers.

Two loops run concurrently inside :meth:`Bot.run`:

- the chat loop consumes messages from the transport, drops those not sent
  by the administrator, and answers commands with exactly one reply;
- the alert loop consumes AlertNotifications and sends each one to every
  subscribed chat.

Both loops share the subscriber store and the transport. Errors are logged
where they happen and never end a loop; only cancellation (or a fatal
transport error) ends run().
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from alertmanager_bot.bot.commands import (
    RESPONSE_ADD_FAILED,
    RESPONSE_CHATS_EMPTY,
    RESPONSE_CHATS_HEADER,
    RESPONSE_CHATS_LINE,
    RESPONSE_HELP,
    RESPONSE_LIST_FAILED,
    RESPONSE_REMOVE_FAILED,
    RESPONSE_START,
    RESPONSE_STOP,
    RESPONSE_UNKNOWN,
    Command,
    parse_command,
)
from alertmanager_bot.errors import AuthorizationError, RoutingError, SendError, StorageError
from alertmanager_bot.logfmt import fields
from alertmanager_bot.metrics import COMMANDS_TOTAL, MESSAGES_TOTAL

if TYPE_CHECKING:
    from alertmanager_bot.bot.models import Chat, Message
    from alertmanager_bot.store.base import SubscriberStore
    from alertmanager_bot.telegram import Transport
    from alertmanager_bot.webhook.models import AlertNotification

CommandHandler = Callable[["Message"], Awaitable[None]]

# Chat types listed by title rather than username
GROUP_CHAT_TYPES = frozenset({"group", "supergroup", "channel"})

FORBIDDEN_SENDER = "dropped message from forbidden sender"


class Bot:
    """Telegram bot relaying Alertmanager notifications to subscribed chats.

    Example:
        ```python
        bot = Bot(store, TelegramClient(token), admin_id=123)

        cancel = asyncio.Event()
        alerts: asyncio.Queue[AlertNotification] = asyncio.Queue()
        await bot.run(cancel, alerts)
        ```
    """

    def __init__(
        self,
        store: SubscriberStore,
        transport: Transport,
        admin_id: int,
        *,
        logger: logging.Logger | None = None,
        send_timeout: float | None = None,
    ) -> None:
        """Initialize the bot.

        Args:
            store: Subscriber store shared by both loops.
            transport: Chat transport used to listen and to reply.
            admin_id: Telegram user id allowed to issue commands.
            logger: Logger for structured bot events.
            send_timeout: Optional timeout in seconds for each outgoing message.

        Raises:
            RoutingError: If a command has no handler.
        """
        self.store = store
        self.transport = transport
        self.admin_id = admin_id
        self.logger = logger or logging.getLogger(__name__)
        self.send_timeout = send_timeout

        self._handlers = self._build_handlers()
        missing = [c.name for c in Command if c not in self._handlers]
        if missing:
            raise RoutingError(f"no handler for commands: {', '.join(missing)}")

    def _build_handlers(self) -> dict[Command, CommandHandler]:
        return {
            Command.START: self._handle_start,
            Command.STOP: self._handle_stop,
            Command.HELP: self._handle_help,
            Command.CHATS: self._handle_chats,
            Command.UNKNOWN: self._handle_unknown,
        }

    async def run(
        self,
        cancel: asyncio.Event,
        alerts: asyncio.Queue[AlertNotification],
    ) -> None:
        """Run the chat and alert loops until cancel is set.

        Messages received but not yet handled when cancel fires are dropped
        and their number is logged. Notifications left in ``alerts`` stay
        on the caller's queue.

        Args:
            cancel: Event signalling shutdown.
            alerts: Queue of notifications to broadcast.

        Raises:
            TelegramAuthError: If the transport listener fails fatally.
        """
        messages: asyncio.Queue[Message] = asyncio.Queue()

        listener = asyncio.create_task(self.transport.listen(messages), name="listen")
        chat_loop = asyncio.create_task(self._chat_loop(messages), name="chat-loop")
        alert_loop = asyncio.create_task(self._alert_loop(alerts), name="alert-loop")
        cancelled = asyncio.create_task(cancel.wait(), name="cancel")
        tasks = [listener, chat_loop, alert_loop, cancelled]

        pending: set[asyncio.Task[object]] = set(tasks)
        try:
            while cancelled in pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    error = task.exception()
                    if error is not None:
                        raise error
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

            dropped = messages.qsize()
            if dropped:
                self.logger.info("dropping unprocessed messages", extra=fields(count=dropped))

    async def _chat_loop(self, messages: asyncio.Queue[Message]) -> None:
        """Handle inbound messages one at a time, in arrival order."""
        while True:
            message = await messages.get()
            try:
                await self.handle_message(message)
            except Exception as e:
                self.logger.error("failed to handle message", extra=fields(err=e))
            finally:
                messages.task_done()

    async def _alert_loop(self, alerts: asyncio.Queue[AlertNotification]) -> None:
        """Broadcast notifications one at a time, in arrival order."""
        while True:
            alert = await alerts.get()
            try:
                await self.broadcast(alert)
            except Exception as e:
                self.logger.error("failed to broadcast alert", extra=fields(err=e))
            finally:
                alerts.task_done()

    def _authorize(self, message: Message) -> None:
        if message.sender.id != self.admin_id:
            raise AuthorizationError(FORBIDDEN_SENDER)

    async def handle_message(self, message: Message) -> None:
        """Authorize a message and run the command it carries."""
        try:
            self._authorize(message)
        except AuthorizationError as e:
            self.logger.info(
                "failed to process message",
                extra=fields(
                    err=e,
                    sender_id=message.sender.id,
                    sender_username=message.sender.username,
                ),
            )
            return

        self.logger.debug("message received", extra=fields(text=message.text))

        command = parse_command(message.text)
        COMMANDS_TOTAL.labels(command=command.name.lower()).inc()
        await self._handlers[command](message)

    async def _handle_start(self, message: Message) -> None:
        try:
            await self.store.add(message.chat)
        except StorageError as e:
            self.logger.warning("failed to add chat to store", extra=fields(err=e))
            await self._send(message.chat.id, RESPONSE_ADD_FAILED)
            return

        self.logger.info(
            "user subscribed",
            extra=fields(username=message.sender.username, user_id=message.sender.id),
        )
        await self._send(
            message.chat.id, RESPONSE_START.format(first_name=message.sender.first_name)
        )

    async def _handle_stop(self, message: Message) -> None:
        try:
            await self.store.remove(message.chat)
        except StorageError as e:
            self.logger.warning("failed to remove chat from store", extra=fields(err=e))
            await self._send(message.chat.id, RESPONSE_REMOVE_FAILED)
            return

        self.logger.info(
            "user unsubscribed",
            extra=fields(username=message.sender.username, user_id=message.sender.id),
        )
        await self._send(
            message.chat.id, RESPONSE_STOP.format(first_name=message.sender.first_name)
        )

    async def _handle_help(self, message: Message) -> None:
        await self._send(message.chat.id, RESPONSE_HELP)

    async def _handle_chats(self, message: Message) -> None:
        try:
            chats = await self.store.list()
        except StorageError as e:
            self.logger.warning("failed to list chats from store", extra=fields(err=e))
            await self._send(message.chat.id, RESPONSE_LIST_FAILED)
            return

        await self._send(message.chat.id, format_chat_list(chats))

    async def _handle_unknown(self, message: Message) -> None:
        await self._send(message.chat.id, RESPONSE_UNKNOWN)

    async def broadcast(self, alert: AlertNotification) -> int:
        """Send a notification to every subscribed chat.

        A failure to reach one chat does not stop delivery to the others.

        Args:
            alert: Notification to render and send.

        Returns:
            Number of chats the notification was delivered to.
        """
        try:
            chats = await self.store.list()
        except StorageError as e:
            self.logger.warning("failed to list chats from store", extra=fields(err=e))
            return 0

        text = alert.render()
        if not text:
            self.logger.debug("skipping empty notification")
            return 0

        delivered = 0
        for chat in chats:
            if await self._send(chat.id, text):
                delivered += 1
        return delivered

    async def _send(self, recipient_id: int, text: str) -> bool:
        """Send one message, logging instead of raising on failure."""
        try:
            await asyncio.wait_for(
                self.transport.send_message(recipient_id, text),
                timeout=self.send_timeout,
            )
        except (SendError, TimeoutError) as e:
            MESSAGES_TOTAL.labels(outcome="failed").inc()
            self.logger.warning(
                "failed to send message",
                extra=fields(err=e, chat_id=recipient_id),
            )
            return False

        MESSAGES_TOTAL.labels(outcome="sent").inc()
        return True


def format_chat_list(chats: list[Chat]) -> str:
    """Render the /chats reply for the given subscribers."""
    if not chats:
        return RESPONSE_CHATS_EMPTY

    lines = []
    for chat in chats:
        name = chat.title if chat.type in GROUP_CHAT_TYPES else chat.username
        lines.append(RESPONSE_CHATS_LINE.format(username=name))
    return RESPONSE_CHATS_HEADER + "".join(lines)
