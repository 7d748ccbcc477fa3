# tests/test_task_selector.py

from __future__ import annotations

import pytest

from taskminder.tasks.task_selector import select_candidates
from taskminder.tasks.task_store import TaskStore
from taskminder.tasks.task_window import compute_window

from .conftest import MINUTE, T0
from .fakes import BrokenRepo


def _window(now: float):
    return compute_window(now, lead_time_seconds=10 * MINUTE, margin_seconds=1 * MINUTE)


def test_empty_store_gives_empty_selection(store: TaskStore) -> None:
    sel = select_candidates(store, _window(T0))
    assert sel.candidates == []
    assert sel.skipped == []


def test_only_task_inside_window_is_selected(store: TaskStore, alice: int) -> None:
    soon = store.add_task(user_id=alice, title="soon", due_at=T0 + 10 * MINUTE + 30)
    store.add_task(user_id=alice, title="later", due_at=T0 + 20 * MINUTE)

    sel = select_candidates(store, _window(T0))
    assert [c.task.id for c in sel.candidates] == [soon]
    assert sel.candidates[0].address == "alice@example.com"


def test_unresolvable_owner_is_skipped_not_fatal(store: TaskStore, alice: int) -> None:
    bob = store.add_user(username="bob", email="")
    ok = store.add_task(user_id=alice, title="ok", due_at=T0 + 10 * MINUTE)
    no_addr = store.add_task(user_id=bob, title="no address", due_at=T0 + 10 * MINUTE)
    orphan = store.add_task(user_id=12345, title="orphan", due_at=T0 + 10 * MINUTE)

    sel = select_candidates(store, _window(T0))
    assert [c.task.id for c in sel.candidates] == [ok]
    reasons = {s.task_id: s.reason for s in sel.skipped}
    assert set(reasons) == {no_addr, orphan}
    assert "no email" in reasons[no_addr]
    assert "not found" in reasons[orphan]

    # Skipped tasks keep notified=false and remain eligible.
    assert not store.get_task(no_addr).notified


def test_completed_task_never_selected_again(store: TaskStore, alice: int) -> None:
    task_id = store.add_task(user_id=alice, title="x", due_at=T0 + 15 * MINUTE)
    store.set_completed(task_id, True)

    for k in range(0, 10):
        sel = select_candidates(store, _window(T0 + k * MINUTE))
        assert task_id not in [c.task.id for c in sel.candidates]


def test_catch_up_picks_missed_but_not_overdue(store: TaskStore, alice: int) -> None:
    missed = store.add_task(user_id=alice, title="missed", due_at=T0 + 3 * MINUTE)
    overdue = store.add_task(user_id=alice, title="overdue", due_at=T0 - 1 * MINUTE)
    regular = store.add_task(user_id=alice, title="regular", due_at=T0 + 10 * MINUTE)

    plain = select_candidates(store, _window(T0))
    assert [c.task.id for c in plain.candidates] == [regular]

    sel = select_candidates(store, _window(T0), catch_up_from_ts=T0)
    ids = [c.task.id for c in sel.candidates]
    assert sorted(ids) == sorted([regular, missed])
    assert overdue not in ids


def test_store_error_propagates() -> None:
    with pytest.raises(RuntimeError):
        select_candidates(BrokenRepo(), _window(T0))
