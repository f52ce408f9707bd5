"""Ports (interfaces) used by the core ledger.

Ports define the minimal contracts for storage and messaging adapters so
that the core can be reused with different backends.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from core.models import Group, NewEntry, RootMessage, StatisticsEntry


class StoragePort(Protocol):
    """Record store operations required by the core.

    Every call is a single atomic operation; failures raise PersistenceError.
    Time ranges are half-open [start, end) in UTC.
    """

    def get_group(self, group_id: int) -> Optional[Group]:
        ...

    def insert_group(self, group: Group) -> None:
        ...

    def latest_root_message(self, group_id: int) -> Optional[RootMessage]:
        ...

    def root_message_between(
        self, group_id: int, start: datetime, end: datetime
    ) -> Optional[RootMessage]:
        ...

    def insert_root_message(self, message: RootMessage) -> None:
        ...

    def update_root_message_text(self, group_id: int, external_message_id: int, text: str) -> None:
        ...

    def insert_entry(self, entry: NewEntry) -> StatisticsEntry:
        ...

    def delete_entries_by_message(self, group_id: int, external_message_id: int) -> list[StatisticsEntry]:
        ...

    def update_course_by_message(
        self, group_id: int, external_message_id: int, course: float
    ) -> list[StatisticsEntry]:
        ...

    def update_course_by_id(self, entry_id: int, course: float) -> Optional[StatisticsEntry]:
        ...

    def settle_priced(self) -> list[StatisticsEntry]:
        ...

    def entries_between(self, group_id: int, start: datetime, end: datetime) -> list[StatisticsEntry]:
        ...

    def entries_for_group(self, group_id: int) -> list[StatisticsEntry]:
        ...


class MessengerPort(Protocol):
    """Messaging operations required by the core; failures raise TransportError."""

    async def send_message(self, chat_id: int, text: str) -> int:
        ...

    async def pin_message(self, chat_id: int, message_id: int) -> None:
        ...

    async def edit_message_text(self, chat_id: int, message_id: int, text: str) -> None:
        ...
