"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the command layer.
"""

from __future__ import annotations

from typing import Any, Optional

from telethon.tl.custom import Message
from telethon.tl.types import Channel, Chat, User

from core.models import InboundMessage


def chat_type_of(chat: Any) -> str:
    """Return the Bot API style chat type: private, group, supergroup or channel."""

    if isinstance(chat, Channel):
        return "supergroup" if getattr(chat, "megagroup", False) else "channel"
    if isinstance(chat, Chat):
        return "group"
    if isinstance(chat, User):
        return "private"
    return "unknown"


def _chat_title(chat: Any) -> str:
    title = getattr(chat, "title", None)
    if title:
        return str(title)
    first = getattr(chat, "first_name", None)
    last = getattr(chat, "last_name", None)
    return " ".join(part for part in [first, last] if part)


def _reply_to_message_id(message: Message) -> Optional[int]:
    reply_to = getattr(message, "reply_to", None)
    if not reply_to:
        return None
    return getattr(reply_to, "reply_to_msg_id", None)


async def build_inbound(message: Message) -> InboundMessage:
    """Build a core InboundMessage from a Telethon Message."""

    chat = await message.get_chat()
    return InboundMessage(
        chat_id=message.chat_id,
        chat_type=chat_type_of(chat),
        chat_title=_chat_title(chat),
        sender_id=getattr(message, "sender_id", None),
        message_id=message.id,
        reply_to_message_id=_reply_to_message_id(message),
        text=message.raw_text or "",
        date=message.date,
    )
