"""Telegram messaging adapter.

Implements the core MessengerPort on top of a Telethon client. Root messages
are sent and edited in HTML parse mode.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable

from telethon import errors

from core.errors import TransportError

LOGGER = logging.getLogger(__name__)


class TelegramMessenger:
    """Send, pin and edit messages with a bounded timeout per call."""

    def __init__(self, client, timeout: float = 10.0) -> None:
        self._client = client
        self._timeout = timeout

    async def _call(self, action: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise TransportError(f"{action} timed out after {self._timeout}s") from exc
        except (errors.RPCError, ValueError) as exc:
            # ValueError is raised by Telethon when the chat entity cannot be resolved.
            raise TransportError(f"{action} failed: {exc}") from exc

    async def send_message(self, chat_id: int, text: str) -> int:
        message = await self._call(
            "send_message",
            self._client.send_message(chat_id, text, parse_mode="html"),
        )
        LOGGER.info("Message %s sent to %s", message.id, chat_id)
        return int(message.id)

    async def pin_message(self, chat_id: int, message_id: int) -> None:
        await self._call("pin_message", self._client.pin_message(chat_id, message_id, notify=False))

    async def edit_message_text(self, chat_id: int, message_id: int, text: str) -> None:
        try:
            await self._call(
                "edit_message",
                self._client.edit_message(chat_id, message_id, text, parse_mode="html"),
            )
        except TransportError as exc:
            # Telegram rejects edits that do not change the text; the message is already current.
            if isinstance(exc.__cause__, errors.MessageNotModifiedError):
                return
            raise
