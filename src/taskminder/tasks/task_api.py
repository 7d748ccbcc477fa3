# src/taskminder/tasks/task_api.py

from __future__ import annotations

"""
Owner-facing task helpers.

These stand in for the task CRUD service. The one rule they enforce for the
reminder scheduler: changing a task's due time re-arms its reminder.
"""

import logging
import time

from .task_models import Task, TaskPriority
from .task_store import TaskStore

logger = logging.getLogger(__name__)


def create_task(
    store: TaskStore,
    *,
    username: str,
    title: str,
    due_in_minutes: float | None = None,
    description: str = "",
    priority: TaskPriority = TaskPriority.MEDIUM,
    now_ts: float | None = None,
) -> int:
    """Create a task for an existing user, due N minutes from now (None = no due time)."""
    user = store.get_user_by_username(username)
    if user is None:
        raise ValueError(f"unknown user: {username}")

    due_at = None
    if due_in_minutes is not None:
        base = time.time() if now_ts is None else float(now_ts)
        due_at = base + float(due_in_minutes) * 60

    task_id = store.add_task(
        user_id=user.id,
        title=title,
        description=description,
        priority=priority,
        due_at=due_at,
    )
    logger.info("Created task_id=%s for user=%s due_at=%s", task_id, username, due_at)
    return task_id


def reschedule_task(store: TaskStore, task_id: int, due_at: float | None) -> Task:
    """Move the due time; a changed due time makes the task eligible for a new reminder."""
    if not store.update_task_fields(task_id, due_at=due_at):
        raise ValueError(f"task not found: {task_id}")
    task = store.get_task(task_id)
    if task is None:
        raise ValueError(f"task not found: {task_id}")
    logger.info("Rescheduled task_id=%s due_at=%s notified=%s", task_id, due_at, task.notified)
    return task


def complete_task(store: TaskStore, task_id: int) -> None:
    if not store.set_completed(task_id, True):
        raise ValueError(f"task not found: {task_id}")
    logger.info("Completed task_id=%s", task_id)


def reopen_task(store: TaskStore, task_id: int) -> None:
    if not store.set_completed(task_id, False):
        raise ValueError(f"task not found: {task_id}")
    logger.info("Reopened task_id=%s", task_id)
