"""Text formatting between bus envelopes and chat messages."""

from mqttbridge.formatting.telegram import chat_label, format_bus_message, format_user_message

__all__ = ["chat_label", "format_bus_message", "format_user_message"]
