"""Admin-only features: lifecycle notices and the /status command."""

from __future__ import annotations

from loguru import logger

from mqttbridge.adapters.base import ChatClient
from mqttbridge.core.errors import DeliveryError
from mqttbridge.events import ChatMessage
from mqttbridge.gateway.router import MappingTable

STATUS_COMMAND = "/status"


class AdminCommands:
    """Handles admin direct messages. Disabled when no admin id is configured."""

    def __init__(self, table: MappingTable, chat: ChatClient, admin_id: int | None) -> None:
        self._table = table
        self._chat = chat
        self._admin_id = admin_id

    @property
    def enabled(self) -> bool:
        return self._admin_id is not None

    def accepts(self, msg: ChatMessage) -> bool:
        """True for a /status command sent by the admin in a private chat."""
        if not self.enabled or msg.sender_id != self._admin_id or not msg.is_private:
            return False
        command = msg.text.strip().split(maxsplit=1)[0] if msg.text.strip() else ""
        # Commands may carry the bot name: /status@my_bot
        return command.split("@", 1)[0] == STATUS_COMMAND

    async def handle(self, msg: ChatMessage) -> None:
        logger.info("Admin command {} from {}", STATUS_COMMAND, msg.sender_id)
        await self._send(msg.chat_id, self.status_text())

    def status_text(self) -> str:
        lines = [f"Bridge running with {len(self._table)} mappings:"]
        for entry in self._table.entries():
            line = f"{entry.group_id} -> {entry.topic}"
            if entry.destination:
                line += f" -> {entry.destination}"
            lines.append(line)
        return "\n".join(lines)

    async def notify(self, text: str) -> None:
        """Send a plain notice to the admin chat, if configured."""
        if self._admin_id is None:
            return
        await self._send(self._admin_id, text)

    async def _send(self, chat_id: int, text: str) -> None:
        try:
            await self._chat.send_message(chat_id, text, markdown=False)
        except DeliveryError as exc:
            logger.error("Error sending admin message to {}: {}", chat_id, exc)
