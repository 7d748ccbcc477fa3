# src/taskminder/tasks/task_scheduler.py

from __future__ import annotations

"""
Reminder scheduler.

A fixed-cadence polling loop that, on every tick:
- computes the due-time window (now + lead time +/- margin),
- selects not-completed, not-yet-notified tasks due inside it,
- fires one dispatch unit per candidate without waiting for it,
- each unit sends the reminder and, only after the transport confirmed it,
  sets the notified guard.

Dispatch units may outlive the cycle that spawned them. A per-cycle tracking
task gathers them and logs the CycleReport once they all settle.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from ..core.ports import TaskRepo
from .task_dispatcher import NotificationDispatcher
from .task_guard import CompletionGuard
from .task_models import (
    CycleReport,
    DeliveryResult,
    DispatchOutcome,
    GuardOutcome,
    ReminderCandidate,
    ScanWindow,
)
from .task_selector import select_candidates
from .task_window import check_window_policy, compute_window

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"


def _fmt_ts(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%H:%M:%S")


def _fmt_window(window: ScanWindow) -> str:
    return f"[{_fmt_ts(window.start_ts)} .. {_fmt_ts(window.end_ts)}]"


class ReminderScheduler:
    """
    Drives select -> dispatch -> guard at a fixed cadence.

    Assumes a single active instance per task store. Within the instance a
    task whose previous dispatch is still running is not dispatched again.
    """

    def __init__(
        self,
        repo: TaskRepo,
        dispatcher: NotificationDispatcher,
        *,
        scan_interval_seconds: float = 60.0,
        lead_time_seconds: float = 600.0,
        window_margin_seconds: float = 60.0,
        batch_limit: int = 500,
        catch_up_missed: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        check_window_policy(
            scan_interval_seconds=scan_interval_seconds,
            lead_time_seconds=lead_time_seconds,
            margin_seconds=window_margin_seconds,
        )
        self._repo = repo
        self._dispatcher = dispatcher
        self._guard = CompletionGuard(repo)
        self._interval_s = float(scan_interval_seconds)
        self._lead_s = float(lead_time_seconds)
        self._margin_s = float(window_margin_seconds)
        self._batch_limit = max(1, int(batch_limit))
        self._catch_up = bool(catch_up_missed)
        self._clock = clock

        self._state = SchedulerState.IDLE
        self._cycle = 0
        self._units: set[asyncio.Task[Any]] = set()
        self._cycles: set[asyncio.Task[Any]] = set()
        self._dispatching_ids: set[int] = set()
        self.last_report: CycleReport | None = None

    # ---- introspection ----

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def cycles_started(self) -> int:
        return self._cycle

    @property
    def in_flight(self) -> int:
        return len(self._dispatching_ids)

    @property
    def scan_interval_seconds(self) -> float:
        return self._interval_s

    # ---- one cycle ----

    def _spawn(
        self, coro: Coroutine[Any, Any, Any], *, name: str, bucket: set[asyncio.Task[Any]]
    ) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        bucket.add(task)
        task.add_done_callback(bucket.discard)
        return task

    async def _deliver(self, candidate: ReminderCandidate) -> DispatchOutcome:
        task_id = candidate.task.id
        result = await self._dispatcher.dispatch(candidate)
        if not result.ok:
            return DispatchOutcome(task_id=task_id, delivery=result, guard=GuardOutcome.SKIPPED)

        # Sequenced strictly after the transport confirmed delivery.
        guard = self._guard.mark_notified(task_id, candidate.task.due_at)
        return DispatchOutcome(task_id=task_id, delivery=result, guard=guard)

    async def _settle(
        self, report: CycleReport, units: list[tuple[int, asyncio.Task[DispatchOutcome]]]
    ) -> CycleReport:
        results = await asyncio.gather(*(t for _, t in units), return_exceptions=True)

        for (task_id, _), res in zip(units, results):
            if isinstance(res, DispatchOutcome):
                report.record(res)
                continue
            if isinstance(res, asyncio.CancelledError):
                reason = "cancelled at shutdown"
            else:
                logger.error("Dispatch unit crashed task_id=%s", task_id, exc_info=res)
                reason = f"dispatch crashed: {res!r}"
            report.record(
                DispatchOutcome(
                    task_id=task_id,
                    delivery=DeliveryResult.failed(reason),
                    guard=GuardOutcome.SKIPPED,
                )
            )

        self._log_report(report)
        self.last_report = report
        return report

    @staticmethod
    def _log_report(report: CycleReport) -> None:
        if report.found == 0 and report.skipped == 0:
            logger.debug("Reminder cycle %d window=%s: nothing due", report.cycle, _fmt_window(report.window))
            return

        logger.info(
            "Reminder cycle %d window=%s found=%d delivered=%d failed=%d skipped=%d in_flight=%d",
            report.cycle,
            _fmt_window(report.window),
            report.found,
            report.delivered,
            report.failed,
            report.skipped,
            report.in_flight,
        )
        for task_id, reason in report.failures:
            logger.warning("Reminder cycle %d: task_id=%s not delivered: %s", report.cycle, task_id, reason)
        if report.duplicates:
            logger.warning("Reminder cycle %d: %d duplicate reminder(s) sent", report.cycle, report.duplicates)
        if report.rescheduled:
            logger.info(
                "Reminder cycle %d: %d task(s) rescheduled while sending, left armed",
                report.cycle,
                report.rescheduled,
            )
        if report.guard_failures:
            logger.critical(
                "Reminder cycle %d: %d delivered reminder(s) could not be marked notified",
                report.cycle,
                report.guard_failures,
            )

    def start_cycle(self, now_ts: float | None = None) -> asyncio.Task[CycleReport] | None:
        """
        Run selection for one tick and fire the dispatch units.

        Returns a task resolving to the cycle's CycleReport once every unit
        settled, or None when the cycle was aborted by a selection error.
        Must be called from inside the running event loop.
        """
        now = self._clock() if now_ts is None else float(now_ts)
        self._cycle += 1
        cycle = self._cycle
        self._state = SchedulerState.SCANNING

        try:
            window = compute_window(now, lead_time_seconds=self._lead_s, margin_seconds=self._margin_s)
            try:
                selection = select_candidates(
                    self._repo,
                    window,
                    limit=self._batch_limit,
                    catch_up_from_ts=now if self._catch_up else None,
                )
            except Exception:
                logger.exception("Reminder cycle %d aborted: candidate selection failed", cycle)
                return None

            report = CycleReport(
                cycle=cycle,
                window=window,
                found=len(selection.candidates),
                skipped=len(selection.skipped),
            )

            units: list[tuple[int, asyncio.Task[DispatchOutcome]]] = []
            for candidate in selection.candidates:
                task_id = candidate.task.id
                if task_id in self._dispatching_ids:
                    logger.debug("Task %s still being dispatched by an earlier cycle", task_id)
                    report.in_flight += 1
                    continue
                self._dispatching_ids.add(task_id)
                unit = self._spawn(self._deliver(candidate), name=f"reminder-{task_id}", bucket=self._units)
                # Runs even when the unit is cancelled before its first step.
                unit.add_done_callback(lambda _t, tid=task_id: self._dispatching_ids.discard(tid))
                units.append((task_id, unit))

            return self._spawn(
                self._settle(report, units), name=f"reminder-cycle-{cycle}", bucket=self._cycles
            )
        finally:
            self._state = SchedulerState.IDLE

    async def run_cycle(self, now_ts: float | None = None) -> CycleReport | None:
        """Start one cycle and wait until all of its dispatches settled."""
        settle = self.start_cycle(now_ts)
        if settle is None:
            return None
        return await settle

    # ---- loop ----

    async def run_forever(self, stop_event: asyncio.Event | None = None) -> None:
        """
        Tick every scan_interval_seconds until stop_event is set (or the
        coroutine is cancelled). Ticks are neither skipped nor coalesced;
        the loop never waits for dispatches to finish.
        """
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        logger.info(
            "Reminder scheduler started interval=%.0fs lead=%.0fs margin=%.0fs catch_up=%s",
            self._interval_s,
            self._lead_s,
            self._margin_s,
            self._catch_up,
        )

        while stop_event is None or not stop_event.is_set():
            try:
                self.start_cycle()
            except Exception:
                logger.exception("Reminder cycle crashed")

            next_tick += self._interval_s
            delay = next_tick - loop.time()
            if delay <= 0:
                logger.warning("Reminder scheduler is %.1fs behind schedule", -delay)
                await asyncio.sleep(0)
                continue

            if stop_event is None:
                await asyncio.sleep(delay)
            else:
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass

        logger.info("Reminder scheduler stopped after %d cycle(s)", self._cycle)

    async def shutdown(self, drain_timeout: float = 10.0) -> None:
        """
        Let in-flight dispatches finish for up to drain_timeout seconds, then
        cancel the rest. Cancelled units never set the guard, so those tasks
        stay candidates for the next run.
        """
        pending = {t for t in self._units if not t.done()}
        if pending:
            logger.info("Draining %d in-flight reminder dispatch(es)...", len(pending))
            _, still_pending = await asyncio.wait(pending, timeout=max(0.0, float(drain_timeout)))
            if still_pending:
                logger.warning("Cancelling %d reminder dispatch(es) at shutdown", len(still_pending))
                for t in still_pending:
                    t.cancel()
                await asyncio.gather(*still_pending, return_exceptions=True)

        # Per-cycle trackers finish on their own once their units are done.
        cycles = [t for t in self._cycles if not t.done()]
        if cycles:
            await asyncio.gather(*cycles, return_exceptions=True)
