# src/taskminder/tasks/task_selector.py

from __future__ import annotations

import logging

from ..core.ports import TaskRepo
from .task_models import OwnedTask, ReminderCandidate, ScanWindow, Selection, SkippedTask

logger = logging.getLogger(__name__)


def _resolve(rows: list[OwnedTask], selection: Selection, seen: set[int]) -> None:
    for row in rows:
        task = row.task
        if task.id in seen:
            continue
        seen.add(task.id)

        if not row.owner_found:
            reason = f"owner user_id={task.user_id} not found"
        elif not row.owner_email:
            reason = f"owner user_id={task.user_id} has no email"
        else:
            selection.candidates.append(ReminderCandidate(task=task, address=row.owner_email))
            continue

        logger.warning("Skipping reminder for task_id=%s: %s", task.id, reason)
        selection.skipped.append(SkippedTask(task_id=task.id, reason=reason))


def select_candidates(
    repo: TaskRepo,
    window: ScanWindow,
    *,
    limit: int = 500,
    catch_up_from_ts: float | None = None,
) -> Selection:
    """
    Read-only query for tasks due inside the window that still need a reminder.

    Tasks whose owner or address cannot be resolved are reported in
    Selection.skipped and stay eligible for later scans.

    catch_up_from_ts (usually "now") additionally picks up tasks due between
    it and the window start that never got a reminder.

    Store errors propagate: a failed query aborts the whole cycle.
    """
    selection = Selection()
    seen: set[int] = set()

    rows = repo.list_reminder_candidates(
        start_ts=window.start_ts, end_ts=window.end_ts, limit=int(limit)
    )
    _resolve(rows, selection, seen)

    if catch_up_from_ts is not None and catch_up_from_ts < window.start_ts:
        missed = repo.list_unnotified_before(
            start_ts=catch_up_from_ts, end_ts=window.start_ts, limit=int(limit)
        )
        if missed:
            logger.info("Catch-up: %d task(s) missed their reminder window", len(missed))
        _resolve(missed, selection, seen)

    return selection
