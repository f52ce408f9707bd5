from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from adapters.sqlite_storage import SQLiteStorage
from core.errors import AlreadyExists, PersistenceError
from core.models import Group, NewEntry, RootMessage

GROUP = -100123
OTHER_GROUP = -100456
MORNING = datetime(2024, 3, 5, 9, 30, tzinfo=timezone.utc)


@pytest.fixture()
def storage(tmp_path) -> SQLiteStorage:
    store = SQLiteStorage(str(tmp_path / "daybook.db"))
    store.init_db()
    return store


def _entry(group_id: int, message_id: int, at: datetime, amount: float = 100, calc: float = 90) -> NewEntry:
    return NewEntry(
        group_id=group_id,
        external_message_id=message_id,
        sum=amount,
        percentage=10,
        calc_sum=calc,
        created_at=at,
    )


def test_groups_are_inserted_once(storage: SQLiteStorage) -> None:
    storage.insert_group(Group(group_id=GROUP, title="Team"))
    assert storage.get_group(GROUP) == Group(group_id=GROUP, title="Team")
    assert storage.get_group(OTHER_GROUP) is None
    with pytest.raises(AlreadyExists):
        storage.insert_group(Group(group_id=GROUP, title="Again"))


def test_root_messages_by_latest_and_range(storage: SQLiteStorage) -> None:
    monday = RootMessage(group_id=GROUP, external_message_id=10, text="mon", created_at=MORNING)
    tuesday = RootMessage(
        group_id=GROUP, external_message_id=20, text="tue", created_at=MORNING + timedelta(days=1)
    )
    storage.insert_root_message(monday)
    storage.insert_root_message(tuesday)

    assert storage.latest_root_message(GROUP) == tuesday
    assert storage.latest_root_message(OTHER_GROUP) is None
    start = datetime(2024, 3, 5, tzinfo=timezone.utc)
    assert storage.root_message_between(GROUP, start, start + timedelta(days=1)) == monday

    storage.update_root_message_text(GROUP, 10, "mon v2")
    assert storage.root_message_between(GROUP, start, start + timedelta(days=1)).text == "mon v2"


def test_entries_round_trip_in_insertion_order(storage: SQLiteStorage) -> None:
    first = storage.insert_entry(_entry(GROUP, 1, MORNING))
    second = storage.insert_entry(_entry(GROUP, 2, MORNING + timedelta(hours=1), amount=50, calc=40))
    storage.insert_entry(_entry(GROUP, 3, MORNING + timedelta(days=1)))
    storage.insert_entry(_entry(OTHER_GROUP, 4, MORNING))

    start = datetime(2024, 3, 5, tzinfo=timezone.utc)
    day = storage.entries_between(GROUP, start, start + timedelta(days=1))
    assert day == [first, second]
    assert len(storage.entries_for_group(GROUP)) == 3


def test_delete_and_course_updates_are_group_scoped(storage: SQLiteStorage) -> None:
    storage.insert_entry(_entry(GROUP, 1, MORNING))
    storage.insert_entry(_entry(OTHER_GROUP, 1, MORNING))

    updated = storage.update_course_by_message(GROUP, 1, 2.5)
    assert [entry.course for entry in updated] == [2.5]
    assert storage.entries_for_group(OTHER_GROUP)[0].course is None

    removed = storage.delete_entries_by_message(GROUP, 1)
    assert [entry.group_id for entry in removed] == [GROUP]
    assert storage.entries_for_group(GROUP) == []
    assert storage.delete_entries_by_message(GROUP, 1) == []


def test_update_course_by_id(storage: SQLiteStorage) -> None:
    entry = storage.insert_entry(_entry(GROUP, 1, MORNING))
    assert storage.update_course_by_id(entry.entry_id, 3).course == 3
    assert storage.update_course_by_id(999, 3) is None


def test_settle_priced_is_global_and_skips_unpriced(storage: SQLiteStorage) -> None:
    priced = storage.insert_entry(_entry(GROUP, 1, MORNING))
    storage.insert_entry(_entry(GROUP, 2, MORNING))
    other = storage.insert_entry(_entry(OTHER_GROUP, 3, MORNING))
    storage.update_course_by_id(priced.entry_id, 2)
    storage.update_course_by_id(other.entry_id, 4)

    settled = storage.settle_priced()

    assert [(entry.entry_id, entry.is_paid) for entry in settled] == [
        (priced.entry_id, True),
        (other.entry_id, True),
    ]
    unpriced = [entry for entry in storage.entries_for_group(GROUP) if entry.course is None]
    assert [entry.is_paid for entry in unpriced] == [False]
    assert storage.settle_priced() == []


def test_sqlite_errors_become_persistence_errors(tmp_path) -> None:
    store = SQLiteStorage(str(tmp_path / "missing" / "daybook.db"))
    with pytest.raises(PersistenceError):
        store.init_db()
