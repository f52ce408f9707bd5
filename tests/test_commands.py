from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

from core.access import Authorizer
from core.commands import (
    ADMIN_CHAT_REFUSED,
    MISSING_EXPRESSION,
    MISSING_TARGET,
    NOT_SUPERGROUP,
    CommandKind,
    CommandServices,
    dispatch,
    parse_command,
)
from core.config import AccessConfig
from core.errors import GENERIC_FAILURE, AlreadyExists, ParseError, StaleMessage
from core.ledger import StatisticsLedger
from core.models import InboundMessage
from core.root_messages import RootMessageManager
from core.sync import LedgerSyncCoordinator

from fakes import FakeMessenger, FakeStorage, FixedClock


class ExplodingStorage(FakeStorage):
    def insert_entry(self, entry):
        raise RuntimeError("driver crashed")


GROUP = -100123
ADMIN_CHAT = -100999
MEMBER = 42
STRANGER = 7


def _message(
    text: str,
    *,
    sender_id: Optional[int] = MEMBER,
    chat_id: int = GROUP,
    chat_type: str = "supergroup",
    message_id: int = 500,
    reply_to: Optional[int] = None,
) -> InboundMessage:
    return InboundMessage(
        chat_id=chat_id,
        chat_type=chat_type,
        chat_title="Team",
        sender_id=sender_id,
        message_id=message_id,
        reply_to_message_id=reply_to,
        text=text,
        date=datetime(2024, 3, 5, 9, 30, tzinfo=timezone.utc),
    )


class Bot:
    def __init__(self, storage: Optional[FakeStorage] = None) -> None:
        self.storage = storage or FakeStorage()
        self.messenger = FakeMessenger()
        self.clock = FixedClock(datetime(2024, 3, 5, 9, 30, tzinfo=timezone.utc))
        coordinator = LedgerSyncCoordinator(
            ledger=StatisticsLedger(self.storage, self.clock),
            root_messages=RootMessageManager(self.storage, self.messenger, self.clock),
            messenger=self.messenger,
            clock=self.clock,
        )
        self.services = CommandServices(
            coordinator=coordinator,
            authorizer=Authorizer(AccessConfig(admin_chat_id=ADMIN_CHAT, allowed_users=frozenset({MEMBER}))),
        )

    def send(self, text: str, **kwargs) -> Optional[str]:
        command = parse_command(_message(text, **kwargs))
        assert command is not None
        return asyncio.run(dispatch(command, self.services))


def test_parse_command_recognises_keywords() -> None:
    assert parse_command(_message("Заход 100-10")).kind is CommandKind.ADD_ENTRY
    assert parse_command(_message("Заход 100-10")).args == ("100-10",)
    assert parse_command(_message("Отмена")).kind is CommandKind.CANCEL
    assert parse_command(_message("Расчет 1.5 77")).args == ("1.5", "77")
    assert parse_command(_message("Чат рассчитан")).kind is CommandKind.SETTLE
    assert parse_command(_message("Статистика")).kind is CommandKind.STATISTICS
    assert parse_command(_message("/start")).kind is CommandKind.START
    assert parse_command(_message("hello")) is None
    assert parse_command(_message("")) is None


def test_every_kind_has_a_distinct_keyword() -> None:
    keywords = [kind.keyword for kind in CommandKind]
    assert len(set(keywords)) == len(keywords)


def test_start_creates_pinned_message() -> None:
    bot = Bot()
    assert bot.send("/start") is None
    assert len(bot.messenger.pinned) == 1
    assert bot.send("/start") == AlreadyExists.user_message


def test_start_rules() -> None:
    bot = Bot()
    assert bot.send("/start", chat_id=ADMIN_CHAT) == ADMIN_CHAT_REFUSED
    assert bot.send("/start", chat_type="group") == NOT_SUPERGROUP
    assert bot.send("/start", sender_id=STRANGER) is None
    assert bot.messenger.sent == []


def test_entry_flow() -> None:
    bot = Bot()
    bot.send("/start")
    assert bot.send("Заход 100-10", message_id=501) is None
    assert bot.send("Заход", message_id=502) == MISSING_EXPRESSION
    assert bot.send("Заход 100:10", message_id=503) == ParseError.user_message
    assert len(bot.storage.entries) == 1
    assert "💰100-10% = 90" in bot.messenger.edits[-1][2]


def test_unauthorized_user_is_ignored() -> None:
    bot = Bot()
    bot.send("/start")
    assert bot.send("Заход 100-10", sender_id=STRANGER) is None
    assert bot.storage.entries == []


def test_stale_message_refuses_entries() -> None:
    bot = Bot()
    bot.send("/start")
    bot.clock.advance(days=1)
    assert bot.send("Заход 100-10") == StaleMessage.user_message
    assert bot.storage.entries == []


def test_cancel_needs_reply_and_existing_entry() -> None:
    bot = Bot()
    bot.send("/start")
    bot.send("Заход 100-10", message_id=501)
    assert bot.send("Отмена") == MISSING_TARGET
    assert bot.send("Отмена", reply_to=999) == GENERIC_FAILURE
    assert bot.send("Отмена", reply_to=501) is None
    assert bot.storage.entries == []


def test_course_by_reply_or_explicit_message_id() -> None:
    bot = Bot()
    bot.send("/start")
    bot.send("Заход 100-10", message_id=501)
    bot.send("Заход 50-20", message_id=502)
    assert bot.send("Расчет 2", reply_to=501) is None
    assert bot.send("Расчет 4 502") is None
    assert bot.send("Расчет 4") == MISSING_TARGET
    assert [entry.course for entry in bot.storage.entries] == [2, 4]
    assert "📤 <b>К выплате:</b> 55" in bot.messenger.edits[-1][2]


def test_settle_and_statistics() -> None:
    bot = Bot()
    bot.send("/start")
    bot.send("Заход 100-10", message_id=501)
    bot.send("Расчет 3", reply_to=501)
    assert bot.send("Чат рассчитан") is None
    assert bot.storage.entries[0].is_paid is True
    # Statistics is read only and open to everyone in the chat.
    reply = bot.send("Статистика", sender_id=STRANGER)
    assert reply == "📦 <b>Общая сумма:</b> 100\n💸 <b>Выплачено:</b> <i>30 $</i>"


def test_storage_failure_becomes_generic_reply() -> None:
    bot = Bot()
    bot.send("/start")
    bot.storage.fail_writes = True
    assert bot.send("Заход 100-10") == GENERIC_FAILURE


def test_unexpected_error_becomes_generic_reply() -> None:
    bot = Bot(ExplodingStorage())
    bot.send("/start")
    assert bot.send("Заход 100-10") == GENERIC_FAILURE


def test_unrecorded_root_message_reports_generic_failure() -> None:
    bot = Bot()
    bot.send("/start")
    bot.clock.advance(days=1)
    bot.storage.fail_message_inserts = True
    assert bot.send("/start") == GENERIC_FAILURE
    assert len(bot.messenger.pinned) == 2
