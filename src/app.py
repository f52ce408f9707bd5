"""Application entry point for the daybook ledger bot.

``daybook init-db`` creates the SQLite tables and exits. ``daybook run`` (the
default) opens the same database, logs in with BOT_TOKEN and answers the
keyword commands ("Старт", "Отмена", "Расчет", ...) in allowed supergroups,
keeping each group's pinned ledger message for the day in sync.
"""

from __future__ import annotations

import argparse
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv
from telethon import events

import settings
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_mapper import build_inbound
from adapters.telegram_messenger import TelegramMessenger
from client import bot_token, build_client
from core.access import Authorizer
from core.clock import Clock, resolve_timezone
from core.commands import CommandServices, dispatch, parse_command
from core.config import AccessConfig, LedgerConfig
from core.ledger import StatisticsLedger
from core.root_messages import RootMessageManager
from core.sync import LedgerSyncCoordinator

NAME = "DAYBOOK"
FONT = "tarty-1"

# Env vars whose values must never reach the logs.
DEFAULT_REDACT = ["BOT_TOKEN", "API_HASH"]


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", True):
        return []
    values = []
    for name in redact_cfg.get("patterns", DEFAULT_REDACT):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/daybook.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_storage() -> SQLiteStorage:
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    return storage


def build_services(storage, messenger, ledger_config: LedgerConfig, access_config: AccessConfig) -> CommandServices:
    """Wire the core components around the given adapters."""

    clock = Clock(resolve_timezone(ledger_config.timezone))
    ledger = StatisticsLedger(storage, clock)
    root_messages = RootMessageManager(storage, messenger, clock)
    coordinator = LedgerSyncCoordinator(
        ledger=ledger,
        root_messages=root_messages,
        messenger=messenger,
        clock=clock,
        currency=ledger_config.currency,
    )
    return CommandServices(
        coordinator=coordinator,
        authorizer=Authorizer(access_config),
        currency=ledger_config.currency,
    )


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting daybook")

    storage = _build_storage()
    ledger_config = LedgerConfig(
        currency=settings.CURRENCY,
        timezone=settings.TIMEZONE,
        request_timeout=settings.REQUEST_TIMEOUT,
    )
    access_config = AccessConfig(
        admin_chat_id=settings.ADMIN_CHAT_ID,
        allowed_users=settings.ALLOWED_USERS,
    )
    logger.info("%s users allowed, timezone %s", len(access_config.allowed_users), ledger_config.timezone)

    client = build_client()
    messenger = TelegramMessenger(client, timeout=ledger_config.request_timeout)
    services = build_services(storage, messenger, ledger_config, access_config)

    # Every incoming text goes through the keyword parser; replies are HTML
    # so the rendered ledger and summaries keep their bold markup.
    @client.on(events.NewMessage(incoming=True))
    async def handler(event) -> None:
        try:
            inbound = await build_inbound(event.message)
            command = parse_command(inbound)
            if command is None:
                return
            reply = await dispatch(command, services)
            if reply:
                await event.reply(reply, parse_mode="html")
        except Exception:
            logger.exception("Error while processing message")

    client.start(bot_token=bot_token())
    logger.info("Bot connected. Listening for commands...")
    client.run_until_disconnected()


def _init_db() -> None:
    _configure_logging()
    _build_storage()
    logging.getLogger(__name__).info("Database ready at %s", settings.DB_PATH)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="daybook")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bot")
    subparsers.add_parser("init-db", help="Create the SQLite tables and exit")

    args = parser.parse_args(argv)
    if args.command == "init-db":
        _init_db()
        return
    _run()


if __name__ == "__main__":
    main()
