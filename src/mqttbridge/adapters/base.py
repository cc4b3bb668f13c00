"""Base adapter interface (start/stop) and the client seams routers depend on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Protocol

from mqttbridge.events import ChatUpdate

BusMessageHandler = Callable[[str, bytes], Awaitable[object]]


class AdapterBase(ABC):
    """Interface for protocol adapters: start/stop around a network session."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Adapter identifier ('mqtt', 'telegram')."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Start the adapter (connect, authenticate)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the adapter (disconnect, cleanup)."""
        ...


class BusClient(Protocol):
    """Publish side of the pub/sub bus."""

    async def publish(self, topic: str, payload: bytes | str) -> None:
        """Publish payload; raise DeliveryError on failure."""
        ...


class ChatClient(Protocol):
    """Send side of the chat service."""

    async def send_message(self, chat_id: int, text: str, *, markdown: bool = True) -> None:
        """Send text to a chat; raise DeliveryError on failure."""
        ...


class BusAdapter(BusClient, Protocol):
    """Bus client with a session lifecycle and subscription handling."""

    name: str

    def subscribe(self, topics: list[str], handler: BusMessageHandler) -> None: ...
    async def start(self) -> None: ...
    async def stop(self) -> None: ...


class ChatAdapter(ChatClient, Protocol):
    """Chat client with a session lifecycle and update polling."""

    name: str

    async def poll(self) -> list[ChatUpdate]: ...
    async def start(self) -> None: ...
    async def stop(self) -> None: ...
