# src/taskminder/tasks/task_dispatcher.py

from __future__ import annotations

"""
Notification dispatcher.

Turns a ReminderCandidate into exactly one transport.send() call and reports
the outcome as a DeliveryResult value instead of raising:
- transport accepted the message -> Delivered
- transport raised               -> Failed(repr(exc))
- timeout elapsed                -> Failed("timeout ...")

Cancellation (process shutdown) is not swallowed.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from ..core.ports import NotificationTransport
from .task_models import DeliveryResult, ReminderCandidate, Task

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ReminderMessage:
    subject: str
    body: str


def _format_due(due_at: float) -> str:
    return datetime.fromtimestamp(due_at, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def _format_lead(lead_time_seconds: float) -> str:
    minutes = max(1, round(lead_time_seconds / 60))
    return "1 minute" if minutes == 1 else f"{minutes} minutes"


def build_reminder(task: Task, *, lead_time_seconds: float) -> ReminderMessage:
    """Deterministic reminder text for a task (same task + due_at -> same message)."""
    lead = _format_lead(lead_time_seconds)
    subject = f'Reminder: Task "{task.title}" is due in {lead}!'

    lines = []
    if task.due_at is not None:
        lines.append(f'Your task "{task.title}" is due at {_format_due(task.due_at)}.')
    else:
        lines.append(f'Your task "{task.title}" is due soon.')
    lines.append(f"You have about {lead} left!")

    description = (task.description or "").strip()
    if description:
        lines.append("")
        lines.append(description)

    lines.append("")
    lines.append(f"Priority: {task.priority.value}")
    return ReminderMessage(subject=subject, body="\n".join(lines))


class NotificationDispatcher:
    """
    Sends reminders through an injected transport.

    The transport is created once by the composition root and shared by every
    dispatch; the semaphore caps how many sends run at the same time across
    all scheduler cycles.
    """

    def __init__(
        self,
        transport: NotificationTransport,
        *,
        timeout_seconds: float = 30.0,
        max_concurrency: int = 16,
        lead_time_seconds: float = 600.0,
    ) -> None:
        self._transport = transport
        self._timeout_s = max(0.01, float(timeout_seconds))
        self._lead_time_s = float(lead_time_seconds)
        self._max_concurrency = max(1, int(max_concurrency))
        self._sem: asyncio.Semaphore | None = None

    def _semaphore(self) -> asyncio.Semaphore:
        # Created lazily so it binds to the loop that actually runs dispatches.
        if self._sem is None:
            self._sem = asyncio.Semaphore(self._max_concurrency)
        return self._sem

    async def dispatch(self, candidate: ReminderCandidate) -> DeliveryResult:
        task = candidate.task
        message = build_reminder(task, lead_time_seconds=self._lead_time_s)

        async with self._semaphore():
            try:
                await asyncio.wait_for(
                    self._transport.send(
                        address=candidate.address,
                        subject=message.subject,
                        body=message.body,
                    ),
                    timeout=self._timeout_s,
                )
            except asyncio.TimeoutError:
                logger.debug("Reminder send timed out task_id=%s after %.1fs", task.id, self._timeout_s)
                return DeliveryResult.failed(f"timeout after {self._timeout_s:g}s")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.debug("Reminder send failed task_id=%s", task.id, exc_info=True)
                return DeliveryResult.failed(repr(e))

        logger.info("Reminder sent task_id=%s to=%s", task.id, candidate.address)
        return DeliveryResult.delivered()
