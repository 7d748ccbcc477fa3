# src/taskminder/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tasks.task_scheduler import ReminderScheduler
from ..tasks.task_store import TaskStore
from .ports import NotificationTransport


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    task_store: TaskStore
    transport: NotificationTransport
    scheduler: ReminderScheduler

    # Set by cli.main once the background scheduler thread is running.
    runner: Any = None
