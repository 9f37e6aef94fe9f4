"""HTTP server receiving Alertmanager webhooks.

Decoded notifications are put on a queue consumed by the bot's alert
loop. The server also exposes ``/health`` and Prometheus ``/metrics``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from aiohttp import web
from prometheus_client import generate_latest

from alertmanager_bot.logfmt import fields
from alertmanager_bot.metrics import WEBHOOKS_TOTAL
from alertmanager_bot.webhook.models import AlertNotification

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080


class WebhookServer:
    """aiohttp server turning Alertmanager webhooks into AlertNotifications.

    Example:
        ```python
        alerts: asyncio.Queue[AlertNotification] = asyncio.Queue()
        server = WebhookServer(alerts, port=8080)

        async with server:
            await bot.run(cancel, alerts)
        ```
    """

    def __init__(
        self,
        alerts: asyncio.Queue[AlertNotification],
        *,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
    ) -> None:
        """Initialize the server.

        Args:
            alerts: Queue receiving decoded notifications.
            host: Interface to bind.
            port: Port to listen on.
        """
        self.alerts = alerts
        self.host = host
        self.port = port

        self._runner: web.AppRunner | None = None

    @property
    def is_running(self) -> bool:
        """Return True if the HTTP server is running."""
        return self._runner is not None

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        """Handle POST / from Alertmanager."""
        try:
            payload: Any = await request.json()
            notification = AlertNotification.from_dict(payload)
        except (json.JSONDecodeError, ValueError) as e:
            WEBHOOKS_TOTAL.labels(status="invalid").inc()
            logger.warning(
                "failed to decode webhook message",
                extra=fields(err=e),
            )
            return web.json_response({"error": str(e)}, status=400)

        WEBHOOKS_TOTAL.labels(status="accepted").inc()
        await self.alerts.put(notification)
        logger.debug(
            "webhook received",
            extra=fields(status=notification.status, alerts=len(notification.alerts)),
        )
        return web.json_response({"status": "ok"}, status=200)

    async def _handle_health(self, _request: web.Request) -> web.Response:
        """Handle /health endpoint."""
        return web.json_response({"status": "ok"}, status=200)

    async def _handle_metrics(self, _request: web.Request) -> web.Response:
        """Handle /metrics endpoint (Prometheus format)."""
        return web.Response(
            body=generate_latest(),
            content_type="text/plain",
            charset="utf-8",
        )

    def create_app(self) -> web.Application:
        """Create the aiohttp application."""
        app = web.Application()
        app.router.add_post("/", self._handle_webhook)
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/metrics", self._handle_metrics)
        return app

    async def start(self) -> None:
        """Start listening for webhooks."""
        if self._runner:
            logger.warning("webhook server already running")
            return

        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()

        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()

        logger.info("webhook server started", extra=fields(addr=f"{self.host}:{self.port}"))

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("webhook server stopped")

    async def __aenter__(self) -> WebhookServer:
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.stop()
