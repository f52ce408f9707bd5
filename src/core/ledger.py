"""Statistics ledger: priced entries and their per-day aggregates."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional

from core.calculator import accumulate, compute_entry
from core.clock import Clock
from core.errors import InvalidCourse, NotFound
from core.models import Aggregate, GroupSummary, LineItem, NewEntry, StatisticsEntry
from core.ports import StoragePort

LOGGER = logging.getLogger(__name__)


def _converted(entry: StatisticsEntry) -> float:
    return entry.calc_sum / entry.course


class StatisticsLedger:
    """Owns entry records; every read and write goes through the storage port."""

    def __init__(self, storage: StoragePort, clock: Clock) -> None:
        self._storage = storage
        self._clock = clock

    def add_entry(
        self,
        group_id: int,
        owner_message_id: int,
        amount: float,
        percentage: float,
    ) -> StatisticsEntry:
        """Persist a new entry anchored to the message that submitted it."""

        computed = compute_entry(amount, percentage)
        entry = self._storage.insert_entry(
            NewEntry(
                group_id=group_id,
                external_message_id=owner_message_id,
                sum=computed.value,
                percentage=computed.percentage,
                calc_sum=computed.net_value,
                created_at=self._clock.now(),
            )
        )
        LOGGER.info(
            "Entry %s added in %s: %s-%s = %s",
            entry.entry_id,
            group_id,
            entry.sum,
            entry.percentage,
            entry.calc_sum,
        )
        return entry

    def remove_entry(self, group_id: int, message_ref: int) -> list[StatisticsEntry]:
        """Delete the entries created by the referenced chat message."""

        removed = self._storage.delete_entries_by_message(group_id, message_ref)
        if not removed:
            raise NotFound(f"no entry for message {message_ref} in {group_id}")
        LOGGER.info("Removed %s entries for message %s in %s", len(removed), message_ref, group_id)
        return removed

    def set_course(
        self,
        group_id: int,
        course: float,
        message_ref: Optional[int] = None,
        entry_id: Optional[int] = None,
    ) -> list[StatisticsEntry]:
        """Set the conversion rate on entries, by chat message or by entry id.

        Payment state is left alone; settle_all_priced flips it later.
        """

        if course <= 0:
            raise InvalidCourse(f"course must be positive, got {course}")
        if message_ref is not None:
            updated = self._storage.update_course_by_message(group_id, message_ref, course)
        elif entry_id is not None:
            entry = self._storage.update_course_by_id(entry_id, course)
            updated = [entry] if entry is not None else []
        else:
            raise ValueError("set_course needs message_ref or entry_id")
        if not updated:
            raise NotFound(f"no entry for message={message_ref} id={entry_id}")
        LOGGER.info("Course %s set on %s entries in %s", course, len(updated), group_id)
        return updated

    def settle_all_priced(self) -> list[StatisticsEntry]:
        """Mark every priced, unpaid entry as paid, across all groups."""

        settled = self._storage.settle_priced()
        LOGGER.info("Settlement sweep marked %s entries as paid", len(settled))
        return settled

    def aggregate(self, group_id: int, day: date) -> Aggregate:
        """Totals and line items for one group and one calendar day."""

        start, end = self._clock.day_bounds(day)
        entries = self._storage.entries_between(group_id, start, end)
        return Aggregate(
            full_sum=accumulate(entry.sum for entry in entries),
            to_pay_sum=accumulate(
                _converted(entry) for entry in entries if entry.course and not entry.is_paid
            ),
            paid_sum=accumulate(_converted(entry) for entry in entries if entry.is_paid and entry.course),
            line_items=tuple(_line_items(entries)),
        )

    def summary(self, group_id: int) -> GroupSummary:
        """All-time totals for a group; read only."""

        entries = self._storage.entries_for_group(group_id)
        return GroupSummary(
            full_sum=accumulate(entry.sum for entry in entries),
            paid_sum=accumulate(_converted(entry) for entry in entries if entry.is_paid and entry.course),
        )


def _line_items(entries: Iterable[StatisticsEntry]) -> Iterable[LineItem]:
    for entry in entries:
        yield LineItem(sum=entry.sum, percentage=entry.percentage, calc_sum=entry.calc_sum)
