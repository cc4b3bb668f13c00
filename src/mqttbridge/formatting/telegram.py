"""Telegram-side text: Markdown display strings and log labels."""

from __future__ import annotations

from mqttbridge.core.constants import UNKNOWN_SENDER
from mqttbridge.events import ChatMessage


def format_bus_message(sender: str | None, message: str) -> str:
    """``*sender*: message`` in legacy Markdown, sent as-is.

    Legacy Markdown has no escapes inside an entity, so the sender is not escaped.
    """
    return f"*{sender or UNKNOWN_SENDER}*: {message}"


def format_user_message(msg: ChatMessage) -> str:
    """``First Last: text``; a missing name part leaves its slot empty."""
    return f"{msg.first_name or ''} {msg.last_name or ''}: {msg.text}"


def chat_label(msg: ChatMessage) -> str:
    """Log label: ``[Title(id)] user`` in groups, ``user`` in direct chats."""
    user = msg.username or UNKNOWN_SENDER
    if msg.sender_id is not None and msg.chat_id == msg.sender_id:
        return user
    return f"[{msg.chat_title or ''}({msg.chat_id})] {user}"
