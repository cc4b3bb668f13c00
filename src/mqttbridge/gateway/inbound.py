"""Inbound router: MQTT bus message -> Telegram group."""

from __future__ import annotations

from loguru import logger

from mqttbridge.adapters.base import BusClient, ChatClient
from mqttbridge.core.constants import error_topic
from mqttbridge.core.errors import DeliveryError, EnvelopeError
from mqttbridge.events import RouteResult, parse_inbound
from mqttbridge.formatting import format_bus_message
from mqttbridge.gateway.router import MappingTable


def _payload_text(payload: bytes | str) -> str:
    if isinstance(payload, (bytes, bytearray)):
        return payload.decode("utf-8", errors="replace")
    return payload


class InboundRouter:
    """Converts bus envelopes into chat messages for the mapped group.

    ``handle`` never raises: every fault is logged and, where it concerns the
    payload, reported on the topic's ``_error`` sibling.
    """

    def __init__(self, table: MappingTable, bus: BusClient, chat: ChatClient) -> None:
        self._table = table
        self._bus = bus
        self._chat = chat

    async def handle(self, topic: str, payload: bytes | str) -> RouteResult:
        try:
            return await self._route(topic, payload)
        except Exception as exc:
            logger.exception("Unexpected error processing message on {}: {}", topic, exc)
            await self._publish_error(topic, f"There was an error processing the message: {exc}")
            return RouteResult.FAILED

    async def _route(self, topic: str, payload: bytes | str) -> RouteResult:
        try:
            envelope = parse_inbound(payload)
        except EnvelopeError as exc:
            logger.error("Received invalid JSON on {}: {}", topic, exc)
            await self._publish_error(topic, f"There was an error processing the message: {exc}")
            return RouteResult.REJECTED

        if not envelope.is_message:
            logger.info("Received message ({}) on {}: {}", envelope.type, topic, _payload_text(payload))
            return RouteResult.DROPPED

        group = self._table.group_for_topic(topic)
        if group is None:
            logger.warning("Received message on topic {} but no telegram channel associated.", topic)
            return RouteResult.DROPPED

        if not envelope.has_message:
            raw = _payload_text(payload)
            logger.error("Received data without message on {}: {}", topic, raw)
            await self._publish_error(topic, f"Received data without message: {raw}")
            return RouteResult.REJECTED

        logger.info("[{}] {}: {}", group, envelope.sender, envelope.message)
        try:
            await self._chat.send_message(group, format_bus_message(envelope.sender, envelope.message))
        except DeliveryError as exc:
            logger.error("Error sending message to group {}: {}", group, exc)
            return RouteResult.FAILED
        return RouteResult.DELIVERED

    async def _publish_error(self, topic: str, text: str) -> None:
        """Best-effort diagnostic publish; failure is logged only."""
        try:
            await self._bus.publish(error_topic(topic), text)
        except Exception as exc:
            logger.error("Failed to publish diagnostic to {}: {}", error_topic(topic), exc)
