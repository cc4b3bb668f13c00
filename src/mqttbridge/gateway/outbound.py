"""Outbound router: Telegram update -> MQTT ``{topic}_msg`` envelope."""

from __future__ import annotations

from loguru import logger

from mqttbridge.adapters.base import BusClient
from mqttbridge.core.constants import error_topic, msg_topic
from mqttbridge.core.errors import DeliveryError
from mqttbridge.events import ChatMessage, OutboundEnvelope, RouteResult
from mqttbridge.formatting import chat_label, format_user_message
from mqttbridge.gateway.router import MappingTable


class OutboundRouter:
    """Publishes chat content from mapped groups onto the bus."""

    def __init__(self, table: MappingTable, bus: BusClient) -> None:
        self._table = table
        self._bus = bus

    async def handle_user_message(self, msg: ChatMessage) -> RouteResult:
        logger.info("{}: {}", chat_label(msg), msg.text)
        return await self._forward(msg, format_user_message, "User")

    async def handle_channel_post(self, msg: ChatMessage) -> RouteResult:
        logger.info("{}: {}", msg.chat_title or msg.chat_id, msg.text)
        return await self._forward(msg, lambda m: m.text, "Channel")

    async def _forward(self, msg: ChatMessage, render, origin: str) -> RouteResult:
        topic = self._table.topic_for_group(msg.chat_id)
        if topic is None:
            return RouteResult.DROPPED

        try:
            destination = self._table.destination_for_topic(topic)
            logger.debug("Redirecting message from {}: {}", origin, msg.chat_title or msg.chat_id)
            if destination is None:
                logger.error(
                    "Received message for {} but can't send because no destination is configured", topic
                )
                return RouteResult.DROPPED

            envelope = OutboundEnvelope(to=destination, message=render(msg))
            payload = envelope.encode()
            logger.debug("Publishing to {}: {}", msg_topic(topic), payload.decode("utf-8"))
            await self._bus.publish(msg_topic(topic), payload)
        except DeliveryError as exc:
            logger.error("Error publishing to {}: {}", msg_topic(topic), exc)
            return RouteResult.FAILED
        except Exception as exc:
            logger.exception("Unexpected error forwarding update from chat {}: {}", msg.chat_id, exc)
            try:
                await self._bus.publish(error_topic(topic), f"There was an error processing the message: {exc}")
            except Exception as publish_exc:
                logger.error("Failed to publish diagnostic to {}: {}", error_topic(topic), publish_exc)
            return RouteResult.FAILED
        return RouteResult.DELIVERED
