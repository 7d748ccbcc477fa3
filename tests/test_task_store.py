# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from taskminder.tasks.task_models import TaskPriority
from taskminder.tasks.task_store import TaskStore

from .conftest import MINUTE, T0


def test_add_get_and_validation(store: TaskStore, alice: int) -> None:
    task_id = store.add_task(
        user_id=alice,
        title="  Pay rent  ",
        description="landlord",
        priority=TaskPriority.HIGH,
        due_at=T0,
    )
    t = store.get_task(task_id)
    assert t is not None
    assert t.title == "Pay rent"
    assert t.priority == TaskPriority.HIGH
    assert t.due_at == T0
    assert not t.is_completed and not t.notified
    assert t.completed_at is None

    with pytest.raises(ValueError):
        store.add_task(user_id=alice, title="   ")
    with pytest.raises(ValueError):
        store.add_user(username="", email="x@example.com")
    with pytest.raises(sqlite3.IntegrityError):
        store.add_user(username="alice", email="other@example.com")


def test_candidate_query_filters_window_completed_and_notified(store: TaskStore, alice: int) -> None:
    inside = store.add_task(user_id=alice, title="inside", due_at=T0 + 10 * MINUTE)
    at_end = store.add_task(user_id=alice, title="at end", due_at=T0 + 11 * MINUTE)
    done = store.add_task(user_id=alice, title="done", due_at=T0 + 10 * MINUTE)
    store.add_task(user_id=alice, title="no due")
    notified = store.add_task(user_id=alice, title="notified", due_at=T0 + 10 * MINUTE)

    store.set_completed(done, True)
    assert store.mark_notified(notified)

    rows = store.list_reminder_candidates(start_ts=T0 + 9 * MINUTE, end_ts=T0 + 11 * MINUTE)
    ids = [r.task.id for r in rows]
    assert ids == [inside]
    assert at_end not in ids
    assert rows[0].owner_found
    assert rows[0].owner_email == "alice@example.com"


def test_candidate_query_reports_missing_owner_and_email(store: TaskStore) -> None:
    ghost = store.add_user(username="ghost", email="ghost@example.com")
    mute = store.add_user(username="mute", email=None)
    t1 = store.add_task(user_id=ghost, title="orphan", due_at=T0)
    t2 = store.add_task(user_id=mute, title="no email", due_at=T0)
    store.delete_user(ghost)

    rows = {r.task.id: r for r in store.list_reminder_candidates(start_ts=T0 - 1, end_ts=T0 + 1)}
    assert not rows[t1].owner_found
    assert rows[t2].owner_found and rows[t2].owner_email is None


def test_mark_notified_is_conditional_and_idempotent(store: TaskStore, alice: int) -> None:
    task_id = store.add_task(user_id=alice, title="x", due_at=T0)
    assert store.mark_notified(task_id) is True
    assert store.mark_notified(task_id) is False
    t = store.get_task(task_id)
    assert t is not None and t.notified
    assert store.mark_notified(999_999) is False


def test_mark_notified_pinned_to_due_time(store: TaskStore, alice: int) -> None:
    task_id = store.add_task(user_id=alice, title="x", due_at=T0)
    store.update_task_fields(task_id, due_at=T0 + 60 * MINUTE)

    assert store.mark_notified(task_id, due_at=T0) is False
    assert not store.get_task(task_id).notified
    assert store.mark_notified(task_id, due_at=T0 + 60 * MINUTE) is True


def test_changing_due_time_rearms_reminder(store: TaskStore, alice: int) -> None:
    task_id = store.add_task(user_id=alice, title="x", due_at=T0)
    store.mark_notified(task_id)

    # Same due time: guard stays set.
    store.update_task_fields(task_id, due_at=T0)
    assert store.get_task(task_id).notified

    # Other fields: guard stays set.
    store.update_task_fields(task_id, title="renamed")
    assert store.get_task(task_id).notified

    store.update_task_fields(task_id, due_at=T0 + 60 * MINUTE)
    t = store.get_task(task_id)
    assert t.due_at == T0 + 60 * MINUTE
    assert not t.notified
    assert t.title == "renamed"


def test_completion_stamps_and_clears_completed_at(store: TaskStore, alice: int) -> None:
    task_id = store.add_task(user_id=alice, title="x", due_at=T0)
    store.mark_notified(task_id)

    assert store.set_completed(task_id, True)
    t = store.get_task(task_id)
    assert t.is_completed and t.completed_at is not None
    first_stamp = t.completed_at

    store.set_completed(task_id, True)
    assert store.get_task(task_id).completed_at == first_stamp

    store.set_completed(task_id, False)
    t = store.get_task(task_id)
    assert not t.is_completed and t.completed_at is None
    assert t.notified  # completion never touches the guard


def test_schema_migration_adds_missing_columns(tmp_path: Path) -> None:
    db = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute(
        "CREATE TABLE tasks (id INTEGER PRIMARY KEY AUTOINCREMENT, user_id INTEGER NOT NULL, "
        "title TEXT NOT NULL, due_at REAL, created_at REAL NOT NULL, updated_at REAL NOT NULL)"
    )
    conn.execute(
        "INSERT INTO tasks(user_id, title, due_at, created_at, updated_at) VALUES (1, 'legacy', ?, 0, 0)",
        (T0,),
    )
    conn.commit()
    conn.close()

    store = TaskStore(db)
    t = store.get_task(1)
    assert t is not None
    assert t.title == "legacy"
    assert t.notified is False
    assert t.is_completed is False
    assert t.priority == TaskPriority.MEDIUM
