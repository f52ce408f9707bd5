"""Chat commands.

Commands are recognised by a leading keyword and mapped onto a closed set of
kinds. dispatch() covers every kind explicitly and is the boundary where core
errors become reply texts.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from core.access import Authorizer
from core.errors import GENERIC_FAILURE, AlreadyExists, LedgerError, PersistenceError
from core.models import InboundMessage
from core.rendering import render_summary
from core.sync import LedgerSyncCoordinator

LOGGER = logging.getLogger(__name__)

SUPERGROUP = "supergroup"

MISSING_EXPRESSION = "Забыли написать выражение после двоеточия!"
MISSING_TARGET = "Выберите сообщение!"
ROOT_MESSAGE_FAILURE = "Что-то пошло не так при создание сообщения"
GROUP_NOT_ADDED = "Группа не была добавлена"
NOT_SUPERGROUP = "Необходимо сделать бота админом группы"
ADMIN_CHAT_REFUSED = "Эту группу нельзя добавить в список!"


class CommandKind(enum.Enum):
    START = "/start"
    ADD_ENTRY = "Заход"
    CANCEL = "Отмена"
    SET_COURSE = "Расчет"
    SETTLE = "Чат рассчитан"
    STATISTICS = "Статистика"

    @property
    def keyword(self) -> str:
        return self.value


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    args: tuple[str, ...]
    message: InboundMessage


@dataclass(frozen=True)
class CommandServices:
    """Capabilities a command may use, passed explicitly to dispatch()."""

    coordinator: LedgerSyncCoordinator
    authorizer: Authorizer
    currency: str = "$"


def parse_command(message: InboundMessage) -> Optional[Command]:
    """Return the command a message starts with, or None for ordinary chatter."""

    text = message.text.strip()
    if not text:
        return None
    for kind in CommandKind:
        if text.startswith(kind.keyword):
            # Arguments are the space-separated tokens after the first word.
            return Command(kind=kind, args=tuple(text.split(" ")[1:]), message=message)
    return None


async def dispatch(command: Command, services: CommandServices) -> Optional[str]:
    """Run a command and return the reply text, if any."""

    kind = command.kind
    try:
        if kind is CommandKind.START:
            return await _start(command, services)
        if kind is CommandKind.STATISTICS:
            return _statistics(command, services)

        # Every other command mutates the ledger and is restricted to allowed users.
        if not services.authorizer.is_allowed_user(command.message.sender_id):
            return None
        if kind is CommandKind.ADD_ENTRY:
            return await _add_entry(command, services)
        if kind is CommandKind.CANCEL:
            return await _cancel(command, services)
        if kind is CommandKind.SET_COURSE:
            return await _set_course(command, services)
        if kind is CommandKind.SETTLE:
            return await _settle(command, services)
    except PersistenceError:
        LOGGER.exception("Storage failure while handling %s", kind.name)
        return GENERIC_FAILURE
    except LedgerError as exc:
        LOGGER.info("%s refused in %s: %s", kind.name, command.message.chat_id, exc)
        return exc.user_message
    except Exception:
        LOGGER.exception("Unexpected failure while handling %s", kind.name)
        return GENERIC_FAILURE
    raise ValueError(f"Unhandled command kind: {kind}")


async def _start(command: Command, services: CommandServices) -> Optional[str]:
    message = command.message
    if services.authorizer.is_admin_chat(message.chat_id):
        return ADMIN_CHAT_REFUSED
    if not services.authorizer.is_allowed_user(message.sender_id):
        return None
    if message.chat_type != SUPERGROUP:
        return NOT_SUPERGROUP
    try:
        services.coordinator.onboard(message.chat_id, message.chat_title)
    except PersistenceError:
        LOGGER.exception("Could not onboard %s", message.chat_id)
        return GROUP_NOT_ADDED
    try:
        await services.coordinator.start_day(message.chat_id)
    except AlreadyExists as exc:
        return exc.user_message
    except PersistenceError:
        LOGGER.exception("Root message for %s was not recorded", message.chat_id)
        return GENERIC_FAILURE
    except LedgerError:
        LOGGER.exception("Could not create root message for %s", message.chat_id)
        return ROOT_MESSAGE_FAILURE
    return None


async def _add_entry(command: Command, services: CommandServices) -> Optional[str]:
    expression = command.args[0] if command.args else ""
    if not expression:
        return MISSING_EXPRESSION
    message = command.message
    await services.coordinator.add_entry(message.chat_id, message.message_id, expression)
    return None


async def _cancel(command: Command, services: CommandServices) -> Optional[str]:
    message = command.message
    if message.reply_to_message_id is None:
        return MISSING_TARGET
    await services.coordinator.cancel_entry(message.chat_id, message.reply_to_message_id)
    return None


async def _set_course(command: Command, services: CommandServices) -> Optional[str]:
    # "Расчет <course>" as a reply, or "Расчет <course> <messageId>".
    message = command.message
    course = command.args[0] if command.args else ""
    target = message.reply_to_message_id
    if target is None and len(command.args) > 1 and command.args[1].isdigit():
        target = int(command.args[1])
    if target is None:
        return MISSING_TARGET
    await services.coordinator.set_course(message.chat_id, course, message_ref=target)
    return None


async def _settle(command: Command, services: CommandServices) -> Optional[str]:
    await services.coordinator.settle_chat()
    return None


def _statistics(command: Command, services: CommandServices) -> str:
    summary = services.coordinator.summary(command.message.chat_id)
    return render_summary(summary, services.currency)
