# src/taskminder/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store, transport, scheduler).

The transport is created here exactly once and closed by the scheduler
runner at shutdown.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.console_transport import ConsoleTransport
from ..connectors.smtp_transport import SmtpTransport
from ..core.ports import NotificationTransport
from ..core.state import AppState
from ..tasks.task_dispatcher import NotificationDispatcher
from ..tasks.task_scheduler import ReminderScheduler
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_transport(settings) -> NotificationTransport:
    kind = str(getattr(settings, "transport", "console")).lower()
    if kind == "smtp":
        return SmtpTransport(settings)
    if kind != "console":
        raise ValueError(f"unknown transport: {kind!r} (expected 'smtp' or 'console')")
    logger.warning("No SMTP relay configured; reminders will be printed to the console.")
    return ConsoleTransport()


def create_initial_state(*, settings=None, transport: NotificationTransport | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and the transport) injectable makes the app easier to
    test and avoids hidden global config reads. If settings is None, falls
    back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = TaskStore(settings.tasks_db_path)
    if transport is None:
        transport = create_transport(settings)

    dispatcher = NotificationDispatcher(
        transport,
        timeout_seconds=settings.dispatch_timeout_seconds,
        max_concurrency=settings.max_concurrent_dispatches,
        lead_time_seconds=settings.lead_time_seconds,
    )
    scheduler = ReminderScheduler(
        store,
        dispatcher,
        scan_interval_seconds=settings.scan_interval_seconds,
        lead_time_seconds=settings.lead_time_seconds,
        window_margin_seconds=settings.window_margin_seconds,
        batch_limit=settings.batch_limit,
        catch_up_missed=settings.catch_up_missed,
    )

    return AppState(
        settings=settings,
        task_store=store,
        transport=transport,
        scheduler=scheduler,
    )
