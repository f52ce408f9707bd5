"""Ledger synchronization.

LedgerSyncCoordinator is the only entry point that mutates ledger state. Each
mutation is followed by a refresh of the root message owning the affected day:

1) Resolve the root message for (group, day)
2) Aggregate the day's entries
3) Render the canonical text
4) Edit the external message, then cache the text on the record

The ledger is the source of truth. A failed edit is logged and left for the
next mutation to repair; committed entries are never rolled back.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Optional

from core.calculator import parse_expression, parse_number
from core.clock import Clock
from core.errors import InvalidCourse, LedgerError, ParseError, TransportError
from core.ledger import StatisticsLedger
from core.locks import DayLocks
from core.models import Group, GroupSummary, RootMessage, StatisticsEntry
from core.ports import MessengerPort
from core.rendering import render_root_message
from core.root_messages import RootMessageManager

LOGGER = logging.getLogger(__name__)


class LedgerSyncCoordinator:
    """Keeps each group's pinned message consistent with the ledger."""

    def __init__(
        self,
        ledger: StatisticsLedger,
        root_messages: RootMessageManager,
        messenger: MessengerPort,
        clock: Clock,
        currency: str = "$",
    ) -> None:
        self._ledger = ledger
        self._root_messages = root_messages
        self._messenger = messenger
        self._clock = clock
        self._currency = currency
        # Refreshes for the same (group, day) run one at a time so a slow edit
        # can never overwrite a newer render.
        self._locks = DayLocks()

    def render(self, group_id: int, day: date) -> str:
        aggregate = self._ledger.aggregate(group_id, day)
        return render_root_message(group_id, day, aggregate, self._currency)

    async def refresh(self, group_id: int, day: date) -> bool:
        """Re-render the root message for a day; returns True when it was edited.

        Raises NotFound when the day has no root message.
        """

        async with self._locks.get(group_id, day, self._clock.today()):
            message = self._root_messages.get_for_date(group_id, day)
            text = self.render(group_id, day)
            if text == message.text:
                return False
            try:
                await self._messenger.edit_message_text(group_id, message.external_message_id, text)
            except TransportError:
                LOGGER.warning(
                    "Root message %s in %s was not updated",
                    message.external_message_id,
                    group_id,
                    exc_info=True,
                )
                return False
            self._root_messages.save_text(message, text)
            return True

    def onboard(self, group_id: int, title: str) -> Group:
        group, _ = self._root_messages.ensure_group(group_id, title)
        return group

    async def start_day(self, group_id: int) -> RootMessage:
        """Post today's root message for an onboarded group."""

        today = self._clock.today()
        return await self._root_messages.ensure_today_message(group_id, self.render(group_id, today))

    async def add_entry(self, group_id: int, owner_message_id: int, expression: str) -> StatisticsEntry:
        message = self._root_messages.require_today(group_id)
        parsed = parse_expression(expression)
        entry = self._ledger.add_entry(group_id, owner_message_id, parsed.value, parsed.percentage)
        await self.refresh(group_id, self._root_messages.day_of(message))
        return entry

    async def cancel_entry(self, group_id: int, message_ref: int) -> list[StatisticsEntry]:
        self._root_messages.require_today(group_id)
        removed = self._ledger.remove_entry(group_id, message_ref)
        await self._refresh_days(removed)
        return removed

    async def set_course(
        self,
        group_id: int,
        course: str,
        message_ref: Optional[int] = None,
        entry_id: Optional[int] = None,
    ) -> list[StatisticsEntry]:
        self._root_messages.require_today(group_id)
        try:
            rate = parse_number(course)
        except ParseError as exc:
            raise InvalidCourse(str(exc)) from exc
        updated = self._ledger.set_course(group_id, rate, message_ref=message_ref, entry_id=entry_id)
        await self._refresh_days(updated)
        return updated

    async def settle_chat(self) -> list[StatisticsEntry]:
        """Run the global settlement sweep and refresh every affected day."""

        settled = self._ledger.settle_all_priced()
        await self._refresh_days(settled, best_effort=True)
        return settled

    def summary(self, group_id: int) -> GroupSummary:
        return self._ledger.summary(group_id)

    async def _refresh_days(self, entries: list[StatisticsEntry], best_effort: bool = False) -> None:
        targets = sorted({(entry.group_id, self._clock.day_of(entry.created_at)) for entry in entries})
        if not best_effort:
            for group_id, day in targets:
                await self.refresh(group_id, day)
            return

        results = await asyncio.gather(
            *(self.refresh(group_id, day) for group_id, day in targets),
            return_exceptions=True,
        )
        for (group_id, day), result in zip(targets, results):
            if isinstance(result, LedgerError):
                LOGGER.warning("Refresh of %s on %s failed: %s", group_id, day, result)
            elif isinstance(result, BaseException):
                raise result
