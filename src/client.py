"""Telegram client factory for daybook.

The ledger logs in with a bot token, so the only state kept on disk is the
bot's own .session file; there is never an interactive phone login.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient


def build_client() -> TelegramClient:
    """Create the bot's Telethon client.

    API_ID/API_HASH identify the application registered at my.telegram.org;
    the client is not connected until ``_run`` starts it with ``bot_token()``.
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    session_name = os.getenv("SESSION_NAME", "daybook")

    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")

    logging.getLogger(__name__).info("Initializing Telegram client")

    return TelegramClient(session_name, int(api_id), api_hash)


def bot_token() -> str:
    """Return BOT_TOKEN; the ledger runs as a bot, never as a user account."""

    load_dotenv()
    token = os.getenv("BOT_TOKEN")
    if not token:
        raise RuntimeError("Missing BOT_TOKEN in environment")
    return token
