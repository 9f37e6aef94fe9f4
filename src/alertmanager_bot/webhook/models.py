"""Alertmanager webhook payload models and their text rendering."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# Alertmanager sends Go's zero time for alerts that have not ended
_GO_ZERO_YEAR = 1
_FRACTION_RE = re.compile(r"\.(\d{6})\d+")

# Annotations tried in order for the alert description line
DESCRIPTION_ANNOTATIONS = ("message", "summary", "description")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an RFC 3339 timestamp as sent by Alertmanager.

    Returns None for empty or non-string values and Go's zero time.
    """
    if not value or not isinstance(value, str):
        return None
    text = _FRACTION_RE.sub(r".\1", value.replace("Z", "+00:00"))
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.year <= _GO_ZERO_YEAR:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _string_map(data: dict[str, Any], key: str) -> dict[str, str]:
    """Return a label or annotation mapping with string keys and values.

    Raises:
        ValueError: If the value is present but not a JSON object.
    """
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{key} must be a JSON object")
    return {str(k): str(v) for k, v in value.items()}


def format_duration(seconds: float) -> str:
    """Format seconds as a compact duration, e.g. ``1h2m3s``."""
    total = max(0, int(seconds))
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return "".join(parts)


@dataclass(frozen=True)
class Alert:
    """A single alert inside a webhook notification."""

    status: str
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    generator_url: str = ""
    fingerprint: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Alert:
        """Create an Alert from a webhook ``alerts[]`` entry.

        Raises:
            ValueError: If labels or annotations are not JSON objects.
        """
        return cls(
            status=str(data.get("status", "firing")),
            labels=_string_map(data, "labels"),
            annotations=_string_map(data, "annotations"),
            starts_at=parse_timestamp(data.get("startsAt")),
            ends_at=parse_timestamp(data.get("endsAt")),
            generator_url=str(data.get("generatorURL", "")),
            fingerprint=str(data.get("fingerprint", "")),
        )

    @property
    def name(self) -> str:
        """Return the alertname label."""
        return self.labels.get("alertname", "")

    @property
    def description(self) -> str:
        """Return the first descriptive annotation present."""
        for key in DESCRIPTION_ANNOTATIONS:
            if self.annotations.get(key):
                return self.annotations[key]
        return ""

    def duration(self, now: datetime) -> float:
        """Return how long the alert has been (or was) active, in seconds."""
        if self.starts_at is None:
            return 0.0
        end = self.ends_at if self.status == "resolved" and self.ends_at else now
        return (end - self.starts_at).total_seconds()


@dataclass(frozen=True)
class AlertNotification:
    """An Alertmanager webhook notification (payload version 4).

    The bot only needs render() and treats everything else as opaque.
    """

    status: str
    alerts: tuple[Alert, ...] = ()
    receiver: str = ""
    group_key: str = ""
    group_labels: dict[str, str] = field(default_factory=dict)
    common_labels: dict[str, str] = field(default_factory=dict)
    common_annotations: dict[str, str] = field(default_factory=dict)
    external_url: str = ""
    version: str = "4"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AlertNotification:
        """Create a notification from a decoded webhook body.

        Raises:
            ValueError: If the payload is not a webhook notification.
        """
        if not isinstance(data, dict):
            raise ValueError("webhook payload must be a JSON object")
        alerts = data.get("alerts")
        if not isinstance(alerts, list):
            raise ValueError("webhook payload must contain an alerts list")

        return cls(
            status=str(data.get("status", "firing")),
            alerts=tuple(Alert.from_dict(a) for a in alerts if isinstance(a, dict)),
            receiver=str(data.get("receiver", "")),
            group_key=str(data.get("groupKey", "")),
            group_labels=_string_map(data, "groupLabels"),
            common_labels=_string_map(data, "commonLabels"),
            common_annotations=_string_map(data, "commonAnnotations"),
            external_url=str(data.get("externalURL", "")),
            version=str(data.get("version", "4")),
        )

    def render(self, now: datetime | None = None) -> str:
        """Render the notification as the plain text message sent to chats.

        Args:
            now: Reference time for durations of alerts still firing.

        Returns:
            One block per alert, separated by blank lines.
        """
        now = now or datetime.now(UTC)
        blocks = []
        for alert in self.alerts:
            status = alert.status.upper()
            lines = [f"🔥 {status} 🔥" if alert.status == "firing" else status]
            lines.append(alert.name)
            if alert.description:
                lines.append(alert.description)
            lines.append(f"Duration: {format_duration(alert.duration(now))}")
            if alert.status == "resolved" and alert.ends_at:
                lines.append(f"Ended: {format_duration((now - alert.ends_at).total_seconds())} ago")
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)
