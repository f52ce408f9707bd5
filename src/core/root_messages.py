"""Root message lifecycle: one pinned message per group per calendar day.

A message is Active while its created_at falls on today's date and Stale
afterwards. There is no explicit transition; staleness is computed from the
clock on every lookup.
"""

from __future__ import annotations

import logging
from datetime import date

from core.clock import Clock
from core.errors import AlreadyExists, NotFound, PersistenceError, StaleMessage, TransportError
from core.locks import DayLocks
from core.models import ActiveMessage, Group, RootMessage
from core.ports import MessengerPort, StoragePort

LOGGER = logging.getLogger(__name__)


class RootMessageManager:
    """Creates and resolves root messages for groups."""

    def __init__(self, storage: StoragePort, messenger: MessengerPort, clock: Clock) -> None:
        self._storage = storage
        self._messenger = messenger
        self._clock = clock
        # Serializes check, send, pin and insert per group and day.
        self._start_locks = DayLocks()

    def ensure_group(self, group_id: int, title: str) -> tuple[Group, bool]:
        """Return the group, creating it on first onboarding."""

        existing = self._storage.get_group(group_id)
        if existing is not None:
            return existing, False
        group = Group(group_id=group_id, title=title)
        try:
            self._storage.insert_group(group)
        except AlreadyExists:
            # Another /start onboarded the group first.
            stored = self._storage.get_group(group_id)
            return (stored or group), False
        LOGGER.info("Group %s (%s) onboarded", group_id, title)
        return group, True

    async def ensure_today_message(self, group_id: int, rendered_text: str) -> RootMessage:
        """Send, pin and record today's root message.

        Raises AlreadyExists when the group already has one for today.
        """

        today = self._clock.today()
        async with self._start_locks.get(group_id, today, today):
            return await self._create_today_message(group_id, rendered_text)

    async def _create_today_message(self, group_id: int, rendered_text: str) -> RootMessage:
        latest = self._storage.latest_root_message(group_id)
        if latest is not None and self._is_today(latest):
            raise AlreadyExists(f"root message for {group_id} already sent today")

        external_id = await self._messenger.send_message(group_id, rendered_text)
        try:
            await self._messenger.pin_message(group_id, external_id)
        except TransportError:
            # An unpinned message is still a valid root message.
            LOGGER.warning("Could not pin root message %s in %s", external_id, group_id)

        message = RootMessage(
            group_id=group_id,
            external_message_id=external_id,
            text=rendered_text,
            created_at=self._clock.now(),
        )
        try:
            self._storage.insert_root_message(message)
        except PersistenceError:
            LOGGER.error(
                "Root message %s in %s was sent and pinned but not recorded; it is orphaned",
                external_id,
                group_id,
            )
            raise
        LOGGER.info("Root message %s created for %s", external_id, group_id)
        return message

    def get_active(self, group_id: int) -> ActiveMessage:
        """Return the most recent root message and whether it is today's."""

        latest = self._storage.latest_root_message(group_id)
        if latest is None:
            raise NotFound(f"no root message for {group_id}")
        return ActiveMessage(message=latest, is_today=self._is_today(latest))

    def require_today(self, group_id: int) -> RootMessage:
        """Gate for entry mutations: today's message or StaleMessage."""

        try:
            active = self.get_active(group_id)
        except NotFound as exc:
            raise StaleMessage(f"no root message for {group_id}") from exc
        if not active.is_today:
            raise StaleMessage(f"root message {active.message.external_message_id} is stale")
        return active.message

    def get_for_date(self, group_id: int, day: date) -> RootMessage:
        start, end = self._clock.day_bounds(day)
        message = self._storage.root_message_between(group_id, start, end)
        if message is None:
            raise NotFound(f"no root message for {group_id} on {day.isoformat()}")
        return message

    def day_of(self, message: RootMessage) -> date:
        return self._clock.day_of(message.created_at)

    def save_text(self, message: RootMessage, text: str) -> None:
        self._storage.update_root_message_text(message.group_id, message.external_message_id, text)

    def _is_today(self, message: RootMessage) -> bool:
        return self._clock.day_of(message.created_at) == self._clock.today()
