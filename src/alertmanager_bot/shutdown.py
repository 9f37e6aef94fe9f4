"""Graceful shutdown handling for the bot process.

Traps SIGTERM and SIGINT and turns them into an ``asyncio.Event`` that
the bot uses as its cancellation signal.

Usage:
    ```python
    async def main():
        async with GracefulShutdown() as shutdown:
            shutdown.register_cleanup(store.close)
            await bot.run(shutdown.event, alerts)
    ```
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from collections.abc import Callable
from contextlib import suppress
from types import FrameType
from typing import Any

from alertmanager_bot.logfmt import fields

logger = logging.getLogger(__name__)

# Signals to trap for graceful shutdown
SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class GracefulShutdown:
    """Signal trapping and cleanup coordination.

    The first signal sets :attr:`event`; a second signal forces the
    process to exit. Registered cleanup callbacks (sync or async) run when
    the context manager exits, in registration order.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._shutdown_requested = False
        self._original_handlers: dict[signal.Signals, Any] = {}
        self._cleanup_callbacks: list[Callable[[], Any]] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def event(self) -> asyncio.Event:
        """Event set once shutdown has been requested."""
        return self._event

    def register_cleanup(self, callback: Callable[[], Any]) -> None:
        """Register a cleanup callback to run during shutdown.

        Args:
            callback: A callable (sync or async) to run during shutdown.
        """
        self._cleanup_callbacks.append(callback)

    def install_signal_handlers(self) -> None:
        """Install signal handlers for graceful shutdown.

        On Windows signal.signal is used since the event loop does not
        support add_signal_handler there.
        """
        self._loop = asyncio.get_running_loop()

        for sig in SHUTDOWN_SIGNALS:
            try:
                if sys.platform == "win32":
                    self._original_handlers[sig] = signal.signal(sig, self._handle_signal_sync)
                else:
                    self._loop.add_signal_handler(sig, self._handle_signal, sig)
            except (ValueError, OSError) as e:
                logger.warning(
                    "failed to install signal handler", extra=fields(signal=sig.name, err=e)
                )

        logger.debug("signal handlers installed")

    def remove_signal_handlers(self) -> None:
        """Remove installed signal handlers and restore originals."""
        if sys.platform == "win32":
            for sig, original in self._original_handlers.items():
                with suppress(ValueError, OSError):
                    signal.signal(sig, original)
            self._original_handlers.clear()
        elif self._loop is not None:
            for sig in SHUTDOWN_SIGNALS:
                with suppress(ValueError, OSError):
                    self._loop.remove_signal_handler(sig)

        logger.debug("signal handlers removed")

    def _handle_signal(self, sig: signal.Signals) -> None:
        if self._shutdown_requested:
            logger.warning("received signal again, forcing exit", extra=fields(signal=sig.name))
            sys.exit(128 + sig.value)

        self._shutdown_requested = True
        logger.info("received signal, shutting down", extra=fields(signal=sig.name))
        self._event.set()

    def _handle_signal_sync(self, sig: int, _frame: FrameType | None) -> None:
        self._handle_signal(signal.Signals(sig))

    async def run_cleanup_callbacks(self) -> None:
        """Run all registered cleanup callbacks."""
        for callback in self._cleanup_callbacks:
            try:
                result = callback()
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error("cleanup callback failed", extra=fields(err=e))

    async def __aenter__(self) -> GracefulShutdown:
        """Async context manager entry - install signal handlers."""
        self.install_signal_handlers()
        return self

    async def __aexit__(self, *_args: Any) -> None:
        """Async context manager exit - cleanup."""
        self.remove_signal_handlers()
        await self.run_cleanup_callbacks()
