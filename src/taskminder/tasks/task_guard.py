# src/taskminder/tasks/task_guard.py

from __future__ import annotations

import logging

from ..core.ports import TaskRepo
from .task_models import GuardOutcome

logger = logging.getLogger(__name__)


class CompletionGuard:
    """
    Persists "reminder delivered" for a task.

    Only call mark_notified() after the transport confirmed delivery. The
    update is pinned to the due time the reminder was sent for, so a task
    rescheduled mid-send stays armed for its new due time. A second call
    reports ALREADY_NOTIFIED and changes nothing.
    """

    def __init__(self, repo: TaskRepo) -> None:
        self._repo = repo

    def _due_moved(self, task_id: int, due_at: float | None) -> bool:
        try:
            task = self._repo.get_task(task_id)
        except Exception:
            logger.debug("Could not re-read task_id=%s after guard miss", task_id, exc_info=True)
            return False
        return task is None or task.due_at != due_at

    def mark_notified(self, task_id: int, due_at: float | None) -> GuardOutcome:
        try:
            flipped = self._repo.mark_notified(int(task_id), due_at=due_at)
        except Exception:
            # The user will get the reminder again on a later scan.
            logger.critical(
                "mark_notified failed after delivery task_id=%s; reminder may repeat",
                task_id,
                exc_info=True,
            )
            return GuardOutcome.FAILED

        if flipped:
            logger.debug("Task %s marked notified", task_id)
            return GuardOutcome.MARKED

        if self._due_moved(int(task_id), due_at):
            logger.info("Task %s was rescheduled while its reminder was sent; left armed", task_id)
            return GuardOutcome.DUE_CHANGED

        logger.warning("Task %s was already notified; a duplicate reminder was sent", task_id)
        return GuardOutcome.ALREADY_NOTIFIED
