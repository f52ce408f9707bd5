"""asyncio locks keyed by group and calendar day."""

from __future__ import annotations

import asyncio
from datetime import date


class DayLocks:
    """One lock per (group_id, day); idle locks for past days are dropped."""

    def __init__(self) -> None:
        self._locks: dict[tuple[int, date], asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def __contains__(self, key: tuple[int, date]) -> bool:
        return key in self._locks

    def get(self, group_id: int, day: date, today: date) -> asyncio.Lock:
        self._prune(today)
        return self._locks.setdefault((group_id, day), asyncio.Lock())

    def _prune(self, today: date) -> None:
        stale = [key for key, lock in self._locks.items() if key[1] < today and not lock.locked()]
        for key in stale:
            del self._locks[key]
