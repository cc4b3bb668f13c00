"""Envelope and chat message types exchanged at the bus and chat boundaries."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mqttbridge.core.constants import MESSAGE_TYPE, UNKNOWN_SENDER, UpdateKind
from mqttbridge.core.errors import EnvelopeError


class RouteResult(str, Enum):
    """Outcome of routing one bus message or chat update."""

    DELIVERED = "delivered"  # chat send or bus publish done
    REJECTED = "rejected"  # malformed payload; diagnostic sent to {topic}_error
    DROPPED = "dropped"  # unmapped route, non-message type, no destination
    FAILED = "failed"  # delivery or unexpected fault; logged only


@dataclass(frozen=True)
class InboundEnvelope:
    """Payload received from the bus on a mapped topic."""

    type: str | None
    sender: str = UNKNOWN_SENDER
    message: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_message(self) -> bool:
        return self.type == MESSAGE_TYPE

    @property
    def has_message(self) -> bool:
        return bool(self.message)


@dataclass(frozen=True)
class OutboundEnvelope:
    """Payload published onto the bus for chat content."""

    to: str
    message: str
    sendmsg: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"sendmsg": self.sendmsg, "to": self.to, "message": self.message}

    def encode(self) -> bytes:
        """Compact UTF-8 JSON; key order is sendmsg, to, message."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":")).encode("utf-8")


@dataclass
class ChatMessage:
    """Chat update content, protocol-agnostic (built by the chat adapter)."""

    chat_id: int
    text: str
    chat_title: str | None = None
    chat_type: str | None = None
    sender_id: int | None = None
    username: str | None = None
    first_name: str = ""
    last_name: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_private(self) -> bool:
        return self.chat_type == "private" or (self.sender_id is not None and self.sender_id == self.chat_id)


@dataclass
class ChatUpdate:
    """One polled chat update: a user message or a channel post."""

    update_id: int
    kind: UpdateKind
    message: ChatMessage


def parse_inbound(payload: bytes | str) -> InboundEnvelope:
    """Decode a bus payload into an InboundEnvelope.

    Raises EnvelopeError when the payload is not a UTF-8 JSON object. Field
    presence is not validated here; routers decide what a missing field means.
    """
    try:
        text = payload.decode("utf-8") if isinstance(payload, (bytes, bytearray)) else payload
        data = json.loads(text)
    except (UnicodeDecodeError, ValueError) as exc:
        raise EnvelopeError(str(exc), code="invalid_json", original_error=exc) from exc

    if not isinstance(data, dict):
        raise EnvelopeError(
            f"expected a JSON object, got {type(data).__name__}",
            code="invalid_shape",
            details={"type": type(data).__name__},
        )

    evt_type = data.get("type")
    sender = data.get("from")
    message = data.get("message")
    return InboundEnvelope(
        type=evt_type if isinstance(evt_type, str) else None,
        sender=sender if isinstance(sender, str) and sender else UNKNOWN_SENDER,
        message=message if isinstance(message, str) else None,
        raw=data,
    )
