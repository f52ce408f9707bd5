"""Typed errors raised by the core ledger.

Each error carries the reply text shown to the chat so the command boundary
can convert failures without inspecting messages.
"""

from __future__ import annotations

from typing import Optional

GENERIC_FAILURE = "Что-то пошло не так!"


class LedgerError(Exception):
    """Base class for all core failures."""

    user_message = GENERIC_FAILURE

    def __init__(self, detail: str = "", user_message: Optional[str] = None) -> None:
        super().__init__(detail or self.__class__.__name__)
        if user_message is not None:
            self.user_message = user_message


class ParseError(LedgerError):
    """Malformed entry expression or numeric argument."""

    user_message = "Неверное выражение, используйте формат: Заход 100-10"


class AlreadyExists(LedgerError):
    """A root message was already created for the group today."""

    user_message = "Сообщение уже было отправлено на сегодня"


class NotFound(LedgerError):
    """Missing entry or root message reference."""


class StaleMessage(LedgerError):
    """The active root message belongs to an earlier day."""

    user_message = "Cообщение устарело, на сегодня необходимо создать новое с командой /start"


class PersistenceError(LedgerError):
    """A record store operation failed; nothing was written."""


class TransportError(LedgerError):
    """A messaging call (send, pin, edit) failed."""


class InvalidCourse(ParseError):
    """Course argument is missing, not a number, or not positive."""

    user_message = "Укажите курс числом, например: Расчет 1.5"
