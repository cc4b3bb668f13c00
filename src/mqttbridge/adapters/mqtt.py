"""MQTT adapter: paho-mqtt client bridged into the asyncio loop."""

from __future__ import annotations

import asyncio
import os

import paho.mqtt.client as mqtt
from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from mqttbridge.adapters.base import AdapterBase, BusMessageHandler
from mqttbridge.core.errors import BridgeConnectionError, DeliveryError

CONNECT_RETRY = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(OSError),
    reraise=True,
)


class MQTTAdapter(AdapterBase):
    """Bus client over paho-mqtt.

    paho runs its own network thread (``loop_start``). Each delivered message
    is handed to the registered coroutine on the asyncio loop and the paho
    thread waits for it, so messages are processed one at a time in arrival
    order. Subscriptions are (re)issued on every connect.
    """

    def __init__(
        self,
        host: str,
        port: int = 1883,
        *,
        keepalive: int = 60,
        client_id: str = "",
        connect_timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._keepalive = keepalive
        self._connect_timeout = connect_timeout
        self._topics: list[str] = []
        self._handler: BusMessageHandler | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._connected: asyncio.Event | None = None
        self._connect_error: str | None = None
        self._subscribe_mid: int | None = None
        self._client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id or f"mqttbridge-{os.getpid()}",
            clean_session=True,
        )
        self._client.enable_logger()
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_subscribe = self._on_subscribe
        self._client.on_message = self._on_message

    @property
    def name(self) -> str:
        return "mqtt"

    @property
    def is_connected(self) -> bool:
        return self._client.is_connected()

    def subscribe(self, topics: list[str], handler: BusMessageHandler) -> None:
        """Register topics and the message handler; applied on (re)connect."""
        self._topics = list(topics)
        self._handler = handler

    async def start(self) -> None:
        """Connect, start the network thread and wait for CONNACK."""
        self._loop = asyncio.get_running_loop()
        self._connected = asyncio.Event()
        self._connect_error = None
        logger.info("Connecting to MQTT broker {}:{}", self._host, self._port)
        try:
            await self._connect()
        except OSError as exc:
            raise BridgeConnectionError(
                f"MQTT connect to {self._host}:{self._port} failed: {exc}",
                code="mqtt_connect_failed",
                original_error=exc,
            ) from exc

        self._client.loop_start()
        try:
            await asyncio.wait_for(self._connected.wait(), timeout=self._connect_timeout)
        except asyncio.TimeoutError as exc:
            await self.stop()
            raise BridgeConnectionError(
                f"MQTT broker {self._host}:{self._port} did not acknowledge connection",
                code="mqtt_connect_timeout",
            ) from exc
        if self._connect_error:
            await self.stop()
            raise BridgeConnectionError(
                f"MQTT broker refused connection: {self._connect_error}",
                code="mqtt_connect_refused",
            )
        logger.info("Connected")

    @CONNECT_RETRY
    async def _connect(self) -> None:
        await asyncio.to_thread(self._client.connect, self._host, self._port, self._keepalive)

    async def stop(self) -> None:
        """Disconnect and join the network thread off the event loop."""
        await asyncio.to_thread(self._client.disconnect)
        await asyncio.to_thread(self._client.loop_stop)

    async def publish(self, topic: str, payload: bytes | str) -> None:
        info = self._client.publish(topic, payload, qos=0, retain=False)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise DeliveryError(
                f"publish to {topic} failed: {mqtt.error_string(info.rc)}",
                code="mqtt_publish_failed",
                details={"topic": topic, "rc": info.rc},
            )

    def _notify_connected(self) -> None:
        if self._loop is not None and self._connected is not None:
            self._loop.call_soon_threadsafe(self._connected.set)

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.error("MQTT connection refused: {}", reason_code)
            self._connect_error = str(reason_code)
            self._notify_connected()
            return
        if self._topics:
            result, mid = client.subscribe([(topic, 0) for topic in self._topics])
            if result != mqtt.MQTT_ERR_SUCCESS:
                logger.error("Error subscribing to {}: {}", self._topics, mqtt.error_string(result))
            else:
                self._subscribe_mid = mid
                for topic in self._topics:
                    logger.info("Subscribing topic {}", topic)
        self._notify_connected()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.warning("MQTT disconnected unexpectedly ({}); paho will reconnect", reason_code)
        else:
            logger.info("MQTT disconnected")

    def _on_subscribe(self, client, userdata, mid, reason_codes, properties) -> None:
        if mid != self._subscribe_mid:
            return
        for topic, code in zip(self._topics, reason_codes):
            if code.is_failure:
                logger.error("Error subscribing to {}: {}", topic, code)

    def _on_message(self, client, userdata, message: mqtt.MQTTMessage) -> None:
        logger.debug("Received Message on Topic {}: {!r}", message.topic, message.payload)
        if self._handler is None or self._loop is None or self._loop.is_closed():
            return
        future = asyncio.run_coroutine_threadsafe(self._handler(message.topic, message.payload), self._loop)
        try:
            future.result()
        except Exception as exc:
            # exceptions must not reach the paho network thread
            logger.exception("Error handling message on {}: {}", message.topic, exc)
