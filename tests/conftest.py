# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskminder.core.state import AppState
from taskminder.tasks.task_dispatcher import NotificationDispatcher
from taskminder.tasks.task_scheduler import ReminderScheduler
from taskminder.tasks.task_store import TaskStore

from .fakes import FakeTransport

# Fixed reference instant so window arithmetic in tests is exact.
T0 = 1_700_000_000.0
MINUTE = 60.0


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the scheduler wiring.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        transport="console",
        scan_interval_seconds=60.0,
        lead_time_seconds=600.0,
        window_margin_seconds=60.0,
        dispatch_timeout_seconds=0.2,
        max_concurrent_dispatches=4,
        batch_limit=100,
        catch_up_missed=False,
        shutdown_drain_seconds=1.0,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    # Real SQLite store: the conditional guard update is part of what we test.
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def alice(store: TaskStore) -> int:
    return store.add_user(username="alice", email="alice@example.com")


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


def make_scheduler(
    store,
    transport,
    *,
    timeout_seconds: float = 0.2,
    catch_up_missed: bool = False,
) -> ReminderScheduler:
    dispatcher = NotificationDispatcher(
        transport,
        timeout_seconds=timeout_seconds,
        max_concurrency=4,
        lead_time_seconds=10 * MINUTE,
    )
    return ReminderScheduler(
        store,
        dispatcher,
        scan_interval_seconds=1 * MINUTE,
        lead_time_seconds=10 * MINUTE,
        window_margin_seconds=1 * MINUTE,
        catch_up_missed=catch_up_missed,
        clock=lambda: T0,
    )


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, transport: FakeTransport) -> AppState:
    return AppState(
        settings=settings,
        task_store=store,
        transport=transport,
        scheduler=make_scheduler(store, transport),
    )
