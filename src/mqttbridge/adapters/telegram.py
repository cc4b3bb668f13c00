"""Telegram adapter: python-telegram-bot Bot with manual long polling."""

from __future__ import annotations

from loguru import logger
from telegram import Bot, Message, Update
from telegram.constants import ParseMode
from telegram.error import NetworkError, TelegramError
from telegram.request import HTTPXRequest
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from mqttbridge.adapters.base import AdapterBase
from mqttbridge.core.errors import BridgeConnectionError, DeliveryError
from mqttbridge.events import ChatMessage, ChatUpdate

ALLOWED_UPDATES = ["message", "channel_post"]

CONNECT_RETRY = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(NetworkError),
    reraise=True,
)


def to_chat_message(message: Message) -> ChatMessage:
    """Convert a Telegram message or channel post to a ChatMessage."""
    user = message.from_user
    return ChatMessage(
        chat_id=message.chat.id,
        text=message.text or "",
        chat_title=message.chat.title,
        chat_type=message.chat.type,
        sender_id=user.id if user else None,
        username=user.username if user else None,
        first_name=(user.first_name or "") if user else "",
        last_name=(user.last_name or "") if user else "",
        raw=message.to_dict(),
    )


def to_chat_update(update: Update) -> ChatUpdate | None:
    """Map an Update to a ChatUpdate; None for kinds or content the bridge ignores."""
    if update.channel_post is not None:
        kind, message = "channel_post", update.channel_post
    elif update.message is not None:
        kind, message = "message", update.message
    else:
        return None
    if not message.text:
        logger.debug("Skipping update {} without text", update.update_id)
        return None
    return ChatUpdate(update_id=update.update_id, kind=kind, message=to_chat_message(message))


class TelegramAdapter(AdapterBase):
    """Chat client over the Telegram Bot API."""

    def __init__(self, token: str, *, poll_timeout: int = 60, bot: Bot | None = None) -> None:
        self._poll_timeout = poll_timeout
        self._offset: int | None = None
        self._bot = bot or Bot(
            token,
            request=HTTPXRequest(connection_pool_size=8, connect_timeout=30.0, read_timeout=30.0),
            get_updates_request=HTTPXRequest(connect_timeout=30.0, read_timeout=poll_timeout + 10.0),
        )
        self._running = False

    @property
    def name(self) -> str:
        return "telegram"

    async def start(self) -> None:
        """Authenticate with get_me (via Bot.initialize)."""
        try:
            await self._initialize()
        except TelegramError as exc:
            raise BridgeConnectionError(
                f"Telegram login failed: {exc}",
                code="telegram_connect_failed",
                original_error=exc,
            ) from exc
        self._running = True
        logger.info("Authorized on account {}", self._bot.username)

    @CONNECT_RETRY
    async def _initialize(self) -> None:
        await self._bot.initialize()

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        await self._bot.shutdown()

    async def send_message(self, chat_id: int, text: str, *, markdown: bool = True) -> None:
        try:
            await self._bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode=ParseMode.MARKDOWN if markdown else None,
            )
        except TelegramError as exc:
            raise DeliveryError(
                f"send to {chat_id} failed: {exc}",
                code="telegram_send_failed",
                details={"chat_id": chat_id},
                original_error=exc,
            ) from exc

    async def poll(self) -> list[ChatUpdate]:
        """Long-poll once for new updates and advance the offset past them."""
        try:
            updates = await self._bot.get_updates(
                offset=self._offset,
                timeout=self._poll_timeout,
                allowed_updates=ALLOWED_UPDATES,
            )
        except TelegramError as exc:
            logger.error("Error fetching updates: {}", exc)
            return []

        result: list[ChatUpdate] = []
        for update in updates:
            self._offset = update.update_id + 1
            converted = to_chat_update(update)
            if converted is not None:
                result.append(converted)
        return result
