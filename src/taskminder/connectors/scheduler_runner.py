# src/taskminder/connectors/scheduler_runner.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass

from ..core.state import AppState
from ..tasks.task_models import CycleReport

logger = logging.getLogger(__name__)


async def _run_scheduler(state: AppState, stop_event: asyncio.Event) -> None:
    scheduler = state.scheduler
    drain_s = float(getattr(state.settings, "shutdown_drain_seconds", 10.0))
    try:
        await scheduler.run_forever(stop_event)
    except asyncio.CancelledError:
        logger.info("Reminder scheduler cancelled.")
    except Exception:
        logger.exception("Reminder scheduler crashed.")
    finally:
        try:
            await scheduler.shutdown(drain_s)
        except Exception:
            logger.exception("Failed to drain reminder dispatches.")
        try:
            await state.transport.close()
        except Exception:
            logger.exception("Failed to close notification transport.")
        logger.info("Reminder scheduler thread finished.")


@dataclass
class SchedulerBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal scheduler stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return self.thread.is_alive()

    def run_cycle_now(self, state: AppState, timeout: float = 60.0) -> CycleReport | None:
        """Run one extra cycle inside the scheduler's loop and wait for its report."""
        fut = asyncio.run_coroutine_threadsafe(state.scheduler.run_cycle(), self.loop)
        return fut.result(timeout=timeout)


def start_scheduler_in_background(state: AppState) -> SchedulerBackgroundRunner | None:
    """
    Start the reminder scheduler in a background thread with its own event loop.

    Why a thread:
    - the admin console REPL is blocking (input()).
    - the scheduler is async and wants its own event loop.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_scheduler(state, stop_event))
        finally:
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_asyncgens())
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="reminder-scheduler", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Scheduler thread did not initialize properly.")
        return None

    logger.info("Reminder scheduler background thread started.")
    return SchedulerBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
