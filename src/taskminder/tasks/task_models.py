# src/taskminder/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class TaskPriority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


@dataclass(slots=True)
class User:
    id: int
    username: str
    email: str | None
    created_at: float


@dataclass(slots=True)
class Task:
    """
    A user-owned task.

    Notes:
    - due_at is None for tasks that never trigger a reminder.
    - notified is true once a reminder was accepted by the transport for the
      current due_at. It is reset by the owner-facing API when due_at changes.
    """

    id: int
    user_id: int
    title: str
    description: str
    priority: TaskPriority
    due_at: float | None
    is_completed: bool
    notified: bool
    completed_at: float | None
    created_at: float
    updated_at: float


@dataclass(slots=True, frozen=True)
class OwnedTask:
    """A task joined with its owner row (owner_found=False when the user row is gone)."""

    task: Task
    owner_found: bool
    owner_email: str | None


@dataclass(slots=True, frozen=True)
class ScanWindow:
    """Half-open due-time interval [start_ts, end_ts) qualifying a task for a reminder."""

    start_ts: float
    end_ts: float

    def contains(self, ts: float) -> bool:
        return self.start_ts <= ts < self.end_ts

    @property
    def width(self) -> float:
        return self.end_ts - self.start_ts


@dataclass(slots=True, frozen=True)
class ReminderCandidate:
    task: Task
    address: str


@dataclass(slots=True, frozen=True)
class SkippedTask:
    task_id: int
    reason: str


@dataclass(slots=True)
class Selection:
    candidates: list[ReminderCandidate] = field(default_factory=list)
    skipped: list[SkippedTask] = field(default_factory=list)


class DeliveryStatus(StrEnum):
    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class DeliveryResult:
    status: DeliveryStatus
    reason: str | None = None

    @classmethod
    def delivered(cls) -> DeliveryResult:
        return cls(DeliveryStatus.DELIVERED)

    @classmethod
    def failed(cls, reason: str) -> DeliveryResult:
        return cls(DeliveryStatus.FAILED, reason)

    @property
    def ok(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED


class GuardOutcome(StrEnum):
    MARKED = "marked"
    ALREADY_NOTIFIED = "already_notified"
    FAILED = "failed"
    DUE_CHANGED = "due_changed"  # rescheduled while sending; left armed for the new due time
    SKIPPED = "skipped"  # delivery failed, guard not attempted


@dataclass(slots=True, frozen=True)
class DispatchOutcome:
    task_id: int
    delivery: DeliveryResult
    guard: GuardOutcome


@dataclass(slots=True)
class CycleReport:
    cycle: int
    window: ScanWindow
    found: int = 0
    skipped: int = 0
    in_flight: int = 0
    delivered: int = 0
    failed: int = 0
    duplicates: int = 0
    rescheduled: int = 0
    guard_failures: int = 0
    failures: list[tuple[int, str]] = field(default_factory=list)

    def record(self, outcome: DispatchOutcome) -> None:
        if outcome.delivery.ok:
            self.delivered += 1
            if outcome.guard == GuardOutcome.ALREADY_NOTIFIED:
                self.duplicates += 1
            elif outcome.guard == GuardOutcome.DUE_CHANGED:
                self.rescheduled += 1
            elif outcome.guard == GuardOutcome.FAILED:
                self.guard_failures += 1
        else:
            self.failed += 1
            self.failures.append((outcome.task_id, outcome.delivery.reason or "unknown"))
