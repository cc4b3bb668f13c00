"""MQTT <-> Telegram message bridge."""

__version__ = "0.1.0"
