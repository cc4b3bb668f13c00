"""Bus topic conventions and protocol defaults."""

from __future__ import annotations

from typing import Literal

UpdateKind = Literal["message", "channel_post"]

PRESENCE_TOPIC = "presence"
MSG_SUFFIX = "_msg"
ERROR_SUFFIX = "_error"

MESSAGE_TYPE = "message"
UNKNOWN_SENDER = "Unknown"

MAPPING_FORMAT_HINT = "groupId:mqttTopic:messageTo;groupId2:mqttTopic2:messageTo2"


def msg_topic(topic: str) -> str:
    """Topic carrying chat content forwarded onto the bus."""
    return f"{topic}{MSG_SUFFIX}"


def error_topic(topic: str) -> str:
    """Sibling topic for diagnostics about payloads received on ``topic``."""
    return f"{topic}{ERROR_SUFFIX}"
