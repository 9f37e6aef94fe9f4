"""Alert source - Alertmanager webhook receiver."""

from alertmanager_bot.webhook.models import Alert, AlertNotification
from alertmanager_bot.webhook.server import WebhookServer

__all__ = [
    "Alert",
    "AlertNotification",
    "WebhookServer",
]
