# tests/fakes.py

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass(slots=True)
class SentMail:
    address: str
    subject: str
    body: str


@dataclass(slots=True)
class FakeTransport:
    """
    Fake NotificationTransport used by dispatcher/scheduler tests.

    - records every send() call in `attempts` (even failing ones)
    - records accepted messages in `sent`
    - `fail_times`: the first N calls raise ConnectionError
    - `delays`: per-call sleep in seconds (missing entries -> no delay)
    - `on_send`: hook run after a message was accepted
    """

    fail_times: int = 0
    delays: list[float] = field(default_factory=list)
    attempts: list[SentMail] = field(default_factory=list)
    sent: list[SentMail] = field(default_factory=list)
    on_send: Callable[[SentMail], None] | None = None
    closed: bool = False

    async def send(self, *, address: str, subject: str, body: str) -> None:
        call_no = len(self.attempts)
        mail = SentMail(address=address, subject=subject, body=body)
        self.attempts.append(mail)

        if call_no < len(self.delays) and self.delays[call_no] > 0:
            await asyncio.sleep(self.delays[call_no])

        if call_no < self.fail_times:
            raise ConnectionError("relay unavailable")

        self.sent.append(mail)
        if self.on_send is not None:
            self.on_send(mail)

    async def close(self) -> None:
        self.closed = True


class BrokenRepo:
    """TaskRepo whose queries always fail (store unreachable)."""

    def list_reminder_candidates(self, *, start_ts: float, end_ts: float, limit: int = 500):
        raise RuntimeError("database is locked")

    def list_unnotified_before(self, *, start_ts: float, end_ts: float, limit: int = 500):
        raise RuntimeError("database is locked")

    def get_task(self, task_id: int):
        raise RuntimeError("database is locked")

    def mark_notified(self, task_id: int, *, due_at=None) -> bool:
        raise RuntimeError("database is locked")


class GuardFailingRepo:
    """Delegates reads to a real store but fails the notified update."""

    def __init__(self, store) -> None:
        self._store = store

    def list_reminder_candidates(self, *, start_ts: float, end_ts: float, limit: int = 500):
        return self._store.list_reminder_candidates(start_ts=start_ts, end_ts=end_ts, limit=limit)

    def list_unnotified_before(self, *, start_ts: float, end_ts: float, limit: int = 500):
        return self._store.list_unnotified_before(start_ts=start_ts, end_ts=end_ts, limit=limit)

    def get_task(self, task_id: int):
        return self._store.get_task(task_id)

    def mark_notified(self, task_id: int, *, due_at=None) -> bool:
        raise OSError("disk I/O error")
