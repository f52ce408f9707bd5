"""SQLite storage adapter.

Implements the core StoragePort using a simple SQLite database.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterator, Optional

from core.errors import AlreadyExists, PersistenceError
from core.models import Group, NewEntry, RootMessage, StatisticsEntry

_ENTRY_COLUMNS = "id, group_id, message_id, sum, percentage, calc_sum, course, is_paid, created_at"


def _to_db_time(moment: datetime) -> str:
    # Fixed-width UTC ISO strings compare correctly as text.
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db_time(raw: str) -> datetime:
    return datetime.fromisoformat(raw)


def _row_to_entry(row: sqlite3.Row) -> StatisticsEntry:
    return StatisticsEntry(
        entry_id=int(row["id"]),
        group_id=int(row["group_id"]),
        external_message_id=int(row["message_id"]),
        sum=float(row["sum"]),
        percentage=float(row["percentage"]),
        calc_sum=float(row["calc_sum"]),
        course=float(row["course"]) if row["course"] is not None else None,
        is_paid=bool(row["is_paid"]),
        created_at=_from_db_time(row["created_at"]),
    )


def _row_to_message(row: sqlite3.Row) -> RootMessage:
    return RootMessage(
        group_id=int(row["group_id"]),
        external_message_id=int(row["message_id"]),
        text=row["text"],
        created_at=_from_db_time(row["created_at"]),
    )


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the StoragePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run one unit of work; commit on success, roll back on any error."""

        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise PersistenceError(str(exc)) from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise PersistenceError(str(exc)) from exc
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - groups: onboarded chats
        - messages: one pinned root message per group per day
        - statistics: priced ledger entries
        """

        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS groups (
                    group_id INTEGER PRIMARY KEY,
                    title TEXT NOT NULL
                )
                """
            )
            # created_at defines the calendar day a root message belongs to.
            # text caches the last body pushed to Telegram.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    group_id INTEGER NOT NULL,
                    message_id INTEGER NOT NULL,
                    text TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            # Fields:
            # - message_id: id of the chat message that submitted the entry;
            #   cancel and course replies point at it
            # - calc_sum: net amount, already rounded to 2 decimals
            # - course: conversion rate, NULL until priced
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS statistics (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    group_id INTEGER NOT NULL,
                    message_id INTEGER NOT NULL,
                    sum REAL NOT NULL,
                    percentage REAL NOT NULL,
                    calc_sum REAL NOT NULL,
                    course REAL,
                    is_paid INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    CHECK (is_paid = 0 OR course IS NOT NULL)
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_messages_group_created ON messages (group_id, created_at)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_statistics_group_created ON statistics (group_id, created_at)"
            )

    def get_group(self, group_id: int) -> Optional[Group]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT group_id, title FROM groups WHERE group_id = ?",
                (group_id,),
            ).fetchone()
        return Group(group_id=int(row["group_id"]), title=row["title"]) if row else None

    def insert_group(self, group: Group) -> None:
        with self._transaction() as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO groups (group_id, title) VALUES (?, ?)",
                (group.group_id, group.title),
            )
            if cur.rowcount == 0:
                raise AlreadyExists(f"group {group.group_id} already exists")

    def latest_root_message(self, group_id: int) -> Optional[RootMessage]:
        """Return the most recently created root message for a group."""

        with self._transaction() as conn:
            row = conn.execute(
                """
                SELECT group_id, message_id, text, created_at FROM messages
                WHERE group_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                (group_id,),
            ).fetchone()
        return _row_to_message(row) if row else None

    def root_message_between(
        self, group_id: int, start: datetime, end: datetime
    ) -> Optional[RootMessage]:
        with self._transaction() as conn:
            row = conn.execute(
                """
                SELECT group_id, message_id, text, created_at FROM messages
                WHERE group_id = ? AND created_at >= ? AND created_at < ?
                ORDER BY created_at, id
                LIMIT 1
                """,
                (group_id, _to_db_time(start), _to_db_time(end)),
            ).fetchone()
        return _row_to_message(row) if row else None

    def insert_root_message(self, message: RootMessage) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO messages (group_id, message_id, text, created_at) VALUES (?, ?, ?, ?)",
                (
                    message.group_id,
                    message.external_message_id,
                    message.text,
                    _to_db_time(message.created_at),
                ),
            )

    def update_root_message_text(self, group_id: int, external_message_id: int, text: str) -> None:
        with self._transaction() as conn:
            conn.execute(
                "UPDATE messages SET text = ? WHERE group_id = ? AND message_id = ?",
                (text, group_id, external_message_id),
            )

    def insert_entry(self, entry: NewEntry) -> StatisticsEntry:
        with self._transaction() as conn:
            cur = conn.execute(
                """
                INSERT INTO statistics (group_id, message_id, sum, percentage, calc_sum, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.group_id,
                    entry.external_message_id,
                    entry.sum,
                    entry.percentage,
                    entry.calc_sum,
                    _to_db_time(entry.created_at),
                ),
            )
            entry_id = cur.lastrowid
        return StatisticsEntry(
            entry_id=int(entry_id),
            group_id=entry.group_id,
            external_message_id=entry.external_message_id,
            sum=entry.sum,
            percentage=entry.percentage,
            calc_sum=entry.calc_sum,
            course=None,
            is_paid=False,
            created_at=entry.created_at,
        )

    def delete_entries_by_message(self, group_id: int, external_message_id: int) -> list[StatisticsEntry]:
        """Delete and return the entries created by one chat message."""

        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM statistics WHERE group_id = ? AND message_id = ? ORDER BY id",
                (group_id, external_message_id),
            ).fetchall()
            conn.execute(
                "DELETE FROM statistics WHERE group_id = ? AND message_id = ?",
                (group_id, external_message_id),
            )
        return [_row_to_entry(row) for row in rows]

    def update_course_by_message(
        self, group_id: int, external_message_id: int, course: float
    ) -> list[StatisticsEntry]:
        with self._transaction() as conn:
            conn.execute(
                "UPDATE statistics SET course = ? WHERE group_id = ? AND message_id = ?",
                (course, group_id, external_message_id),
            )
            rows = conn.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM statistics WHERE group_id = ? AND message_id = ? ORDER BY id",
                (group_id, external_message_id),
            ).fetchall()
        return [_row_to_entry(row) for row in rows]

    def update_course_by_id(self, entry_id: int, course: float) -> Optional[StatisticsEntry]:
        with self._transaction() as conn:
            conn.execute("UPDATE statistics SET course = ? WHERE id = ?", (course, entry_id))
            row = conn.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM statistics WHERE id = ?",
                (entry_id,),
            ).fetchone()
        return _row_to_entry(row) if row else None

    def settle_priced(self) -> list[StatisticsEntry]:
        """Mark all priced, unpaid entries as paid and return them (all groups)."""

        with self._transaction() as conn:
            rows = conn.execute(
                f"""
                SELECT {_ENTRY_COLUMNS} FROM statistics
                WHERE is_paid = 0 AND course IS NOT NULL
                ORDER BY id
                """
            ).fetchall()
            conn.executemany(
                "UPDATE statistics SET is_paid = 1 WHERE id = ?",
                [(row["id"],) for row in rows],
            )
        return [replace(_row_to_entry(row), is_paid=True) for row in rows]

    def entries_between(self, group_id: int, start: datetime, end: datetime) -> list[StatisticsEntry]:
        """Entries for a group in [start, end), in insertion order."""

        with self._transaction() as conn:
            rows = conn.execute(
                f"""
                SELECT {_ENTRY_COLUMNS} FROM statistics
                WHERE group_id = ? AND created_at >= ? AND created_at < ?
                ORDER BY id
                """,
                (group_id, _to_db_time(start), _to_db_time(end)),
            ).fetchall()
        return [_row_to_entry(row) for row in rows]

    def entries_for_group(self, group_id: int) -> list[StatisticsEntry]:
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM statistics WHERE group_id = ? ORDER BY id",
                (group_id,),
            ).fetchall()
        return [_row_to_entry(row) for row in rows]