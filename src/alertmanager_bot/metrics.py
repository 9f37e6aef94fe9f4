"""Prometheus metrics for the bot and the webhook server."""

from prometheus_client import Counter

WEBHOOKS_TOTAL = Counter(
    "alertmanager_bot_webhooks_total",
    "Number of Alertmanager webhooks received",
    ["status"],
)

MESSAGES_TOTAL = Counter(
    "alertmanager_bot_messages_total",
    "Number of messages the bot tried to send",
    ["outcome"],
)

COMMANDS_TOTAL = Counter(
    "alertmanager_bot_commands_total",
    "Number of commands handled from the administrator",
    ["command"],
)
