"""Alertmanager Bot - relay Prometheus alerts to Telegram subscribers."""

__version__ = "0.1.0"
