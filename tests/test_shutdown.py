"""Tests for the graceful shutdown handler."""

from __future__ import annotations

import asyncio
import os
import signal
import sys
from unittest.mock import MagicMock, patch

import pytest

from alertmanager_bot.shutdown import SHUTDOWN_SIGNALS, GracefulShutdown


class TestGracefulShutdownInit:
    """Tests for GracefulShutdown initialization."""

    def test_initial_state(self) -> None:
        """Should start in non-shutdown state."""
        shutdown = GracefulShutdown()
        assert not shutdown.event.is_set()


class TestSignalHandlers:
    """Tests for signal handler installation and removal."""

    @pytest.mark.skipif(sys.platform == "win32", reason="Unix-specific test")
    async def test_unix_signal_handler_installed(self) -> None:
        """On Unix, should install loop signal handlers."""
        shutdown = GracefulShutdown()

        with patch.object(asyncio.get_running_loop(), "add_signal_handler") as mock_add:
            shutdown.install_signal_handlers()

            assert mock_add.call_count == len(SHUTDOWN_SIGNALS)

        shutdown.remove_signal_handlers()

    @pytest.mark.skipif(sys.platform != "win32", reason="Windows-specific test")
    async def test_windows_signal_handler_installed(self) -> None:
        """On Windows, should install signal.signal handlers."""
        shutdown = GracefulShutdown()

        with patch("signal.signal") as mock_signal:
            shutdown.install_signal_handlers()

            assert mock_signal.call_count >= 1

        shutdown.remove_signal_handlers()


class TestHandleSignal:
    """Tests for signal handling behavior."""

    async def test_first_signal_sets_event(self) -> None:
        """First signal should set the shutdown event."""
        shutdown = GracefulShutdown()

        shutdown._handle_signal(signal.SIGTERM)

        assert shutdown.event.is_set()

    @pytest.mark.skipif(sys.platform == "win32", reason="Unix-specific test")
    async def test_sigterm_sets_event(self) -> None:
        """A delivered SIGTERM reaches the installed handler."""
        async with GracefulShutdown() as shutdown:
            os.kill(os.getpid(), signal.SIGTERM)
            await asyncio.wait_for(shutdown.event.wait(), timeout=1.0)

    async def test_second_signal_force_exits(self) -> None:
        """Second signal should exit immediately."""
        shutdown = GracefulShutdown()
        shutdown._handle_signal(signal.SIGINT)

        with pytest.raises(SystemExit) as exc_info:
            shutdown._handle_signal(signal.SIGTERM)

        assert exc_info.value.code == 128 + signal.SIGTERM.value


class TestCleanupCallbacks:
    """Tests for cleanup callback registration and execution."""

    async def test_run_sync_cleanup_callback(self) -> None:
        shutdown = GracefulShutdown()
        callback = MagicMock()
        shutdown.register_cleanup(callback)

        await shutdown.run_cleanup_callbacks()

        callback.assert_called_once()

    async def test_run_async_cleanup_callback(self) -> None:
        shutdown = GracefulShutdown()
        called = False

        async def async_callback() -> None:
            nonlocal called
            called = True

        shutdown.register_cleanup(async_callback)

        await shutdown.run_cleanup_callbacks()

        assert called is True

    async def test_callbacks_run_in_order(self) -> None:
        shutdown = GracefulShutdown()
        order: list[str] = []

        async def close_store() -> None:
            order.append("store")

        shutdown.register_cleanup(close_store)
        shutdown.register_cleanup(lambda: order.append("client"))

        await shutdown.run_cleanup_callbacks()

        assert order == ["store", "client"]

    async def test_cleanup_callback_error_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Cleanup callback errors should be logged, not raised."""
        shutdown = GracefulShutdown()
        after = MagicMock()

        def failing_callback() -> None:
            raise ValueError("Cleanup failed")

        shutdown.register_cleanup(failing_callback)
        shutdown.register_cleanup(after)

        await shutdown.run_cleanup_callbacks()

        after.assert_called_once()
        assert "cleanup callback failed" in caplog.text


class TestAsyncContextManager:
    """Tests for async context manager protocol."""

    async def test_context_manager_installs_handlers(self) -> None:
        shutdown = GracefulShutdown()

        async with shutdown:
            assert shutdown._loop is not None

    async def test_context_manager_removes_handlers(self) -> None:
        shutdown = GracefulShutdown()

        with patch.object(shutdown, "remove_signal_handlers") as mock_remove:
            async with shutdown:
                pass

            mock_remove.assert_called_once()

    async def test_context_manager_runs_cleanup(self) -> None:
        shutdown = GracefulShutdown()
        callback = MagicMock()
        shutdown.register_cleanup(callback)

        async with shutdown:
            callback.assert_not_called()

        callback.assert_called_once()


class TestShutdownSignals:
    """Tests for shutdown signal configuration."""

    def test_shutdown_signals(self) -> None:
        assert signal.SIGTERM in SHUTDOWN_SIGNALS
        assert signal.SIGINT in SHUTDOWN_SIGNALS
