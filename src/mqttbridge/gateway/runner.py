"""Run loop: connect both sessions, poll chat updates, stop on signal."""

from __future__ import annotations

import asyncio
import contextlib
from enum import Enum

from loguru import logger

from mqttbridge.adapters.base import BusAdapter, ChatAdapter
from mqttbridge.core.errors import BridgeConnectionError
from mqttbridge.events import ChatUpdate, RouteResult
from mqttbridge.gateway.admin import AdminCommands
from mqttbridge.gateway.inbound import InboundRouter
from mqttbridge.gateway.outbound import OutboundRouter
from mqttbridge.gateway.router import MappingTable


class RunState(str, Enum):
    INIT = "init"
    CONNECTING = "connecting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class BridgeRunner:
    """Owns the process lifetime of the bridge.

    Bus messages reach the InboundRouter through the bus adapter's callback;
    chat updates are polled every ``poll_interval`` seconds and dispatched
    to the OutboundRouter. ``request_stop`` ends the cadence after the
    in-flight cycle finishes.
    """

    def __init__(
        self,
        mapping_spec: str,
        bus: BusAdapter,
        chat: ChatAdapter,
        *,
        presence_topic: str,
        admin_id: int | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        self._mapping_spec = mapping_spec
        self._bus = bus
        self._chat = chat
        self._presence_topic = presence_topic
        self._admin_id = admin_id
        self._poll_interval = poll_interval
        self._state = RunState.INIT
        self._stop = asyncio.Event()
        self._started: list[BusAdapter | ChatAdapter] = []
        self.table: MappingTable | None = None
        self.inbound: InboundRouter | None = None
        self.outbound: OutboundRouter | None = None
        self.admin: AdminCommands | None = None

    @property
    def state(self) -> RunState:
        return self._state

    def request_stop(self) -> None:
        """Signal handler entry point. Idempotent."""
        if self._state in (RunState.STOPPING, RunState.STOPPED):
            return
        logger.warning("Stop requested; finishing in-flight work")
        if self._state == RunState.RUNNING:
            self._state = RunState.STOPPING
        self._stop.set()

    async def run(self) -> None:
        """INIT -> CONNECTING -> RUNNING -> STOPPING -> STOPPED.

        Raises BridgeConfigurationError from INIT and BridgeConnectionError
        from CONNECTING; both are fatal to the process.
        """
        self.table = MappingTable.build(self._mapping_spec)
        self.inbound = InboundRouter(self.table, self._bus, self._chat)
        self.outbound = OutboundRouter(self.table, self._bus)
        self.admin = AdminCommands(self.table, self._chat, self._admin_id)
        if not self.admin.enabled:
            logger.warning("Telegram Administrator ID not defined. Administrator will be disabled.")

        self._state = RunState.CONNECTING
        try:
            await self._connect()
        except BaseException:
            await self._shutdown()
            raise

        if self._stop.is_set():
            await self._shutdown()
            return

        self._state = RunState.RUNNING
        logger.info("Starting global loop")
        await self.admin.notify("MQTT Telegram bridge started")
        try:
            await self._poll_loop()
        finally:
            self._state = RunState.STOPPING
            await self.admin.notify("MQTT Telegram bridge stopping")
            await self._shutdown()
        logger.info("MQTT Telegram Stopped")

    async def _connect(self) -> None:
        if self.inbound is None or self.table is None:
            raise RuntimeError("BridgeRunner.run() must build the mapping table before connecting")
        topics = [self._presence_topic, *(t for t in self.table.topics() if t != self._presence_topic)]
        self._bus.subscribe(topics, self.inbound.handle)
        for adapter in (self._chat, self._bus):
            try:
                await adapter.start()
            except BridgeConnectionError:
                raise
            except Exception as exc:
                raise BridgeConnectionError(
                    f"{adapter.name} connection failed: {exc}",
                    code="connect_failed",
                    details={"adapter": adapter.name},
                    original_error=exc,
                ) from exc
            self._started.append(adapter)

    async def _poll_loop(self) -> None:
        while not self._stop.is_set():
            await self.poll_once()
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stop.wait(), timeout=self._poll_interval)

    async def poll_once(self) -> int:
        """One cadence tick: poll and dispatch every update. Returns the update count."""
        try:
            updates = await self._chat.poll()
        except Exception as exc:
            logger.exception("Error fetching updates: {}", exc)
            return 0
        for update in updates:
            await self.dispatch(update)
        return len(updates)

    async def dispatch(self, update: ChatUpdate) -> RouteResult | None:
        """Route one update; faults are logged and never escape."""
        if self.outbound is None or self.admin is None:
            raise RuntimeError("BridgeRunner.dispatch() called before run()")
        try:
            if update.kind == "channel_post":
                result = await self.outbound.handle_channel_post(update.message)
            elif self.admin.accepts(update.message):
                await self.admin.handle(update.message)
                return None
            else:
                result = await self.outbound.handle_user_message(update.message)
        except Exception as exc:
            logger.exception("Error dispatching update {}: {}", update.update_id, exc)
            return RouteResult.FAILED
        logger.debug("Update {} ({}): {}", update.update_id, update.kind, result.value)
        return result

    async def _shutdown(self) -> None:
        for adapter in reversed(self._started):
            try:
                logger.info("Stopping {} adapter", adapter.name)
                await adapter.stop()
            except Exception as exc:
                logger.exception("Error stopping {} adapter: {}", adapter.name, exc)
        self._started.clear()
        self._state = RunState.STOPPED
