# src/taskminder/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The scheduler depends on Protocols instead of concrete implementations.
This keeps the task store and the notification transport swappable and
makes testing easier.
"""

from typing import Awaitable, Protocol

from ..tasks.task_models import OwnedTask, Task


class NotificationTransport(Protocol):
    """
    Outbound delivery channel (e.g. an SMTP relay).

    send() resolves when the message was accepted and raises on any error.
    It may be slow or rate-limited; the dispatcher bounds it with a timeout.
    """

    def send(self, *, address: str, subject: str, body: str) -> Awaitable[None]: ...

    async def close(self) -> None: ...


class TaskRepo(Protocol):
    # Candidate selection (read-only)
    def list_reminder_candidates(
            self, *, start_ts: float, end_ts: float, limit: int = 500
    ) -> list[OwnedTask]: ...

    def list_unnotified_before(
            self, *, start_ts: float, end_ts: float, limit: int = 500
    ) -> list[OwnedTask]: ...

    def get_task(self, task_id: int) -> Task | None: ...

    # Completion guard (the only write performed by the scheduler)
    def mark_notified(self, task_id: int, *, due_at: float | None = ...) -> bool: ...
