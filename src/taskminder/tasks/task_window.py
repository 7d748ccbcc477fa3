# src/taskminder/tasks/task_window.py

from __future__ import annotations

import logging

from .task_models import ScanWindow

logger = logging.getLogger(__name__)


def compute_window(
    now_ts: float,
    *,
    lead_time_seconds: float,
    margin_seconds: float,
) -> ScanWindow:
    """
    Due-time range that triggers a reminder on a scan at now_ts.

    A task due exactly lead_time_seconds from now sits in the middle of the
    window; the margin on each side absorbs scan delay and jitter. The end is
    exclusive, so with margin == interval / 2 consecutive windows tile the
    timeline without overlap.
    """
    center = float(now_ts) + float(lead_time_seconds)
    return ScanWindow(start_ts=center - margin_seconds, end_ts=center + margin_seconds)


def check_window_policy(
    *,
    scan_interval_seconds: float,
    lead_time_seconds: float,
    margin_seconds: float,
) -> None:
    """
    Validate the cadence/window combination once at startup.

    Raises ValueError for settings that cannot work at all. A margin narrower
    than half the scan interval is only a warning: consecutive windows then
    leave gaps and some tasks are never captured.
    """
    if scan_interval_seconds <= 0:
        raise ValueError(f"scan interval must be positive, got {scan_interval_seconds}")
    if lead_time_seconds <= 0:
        raise ValueError(f"lead time must be positive, got {lead_time_seconds}")
    if margin_seconds < 0:
        raise ValueError(f"window margin must not be negative, got {margin_seconds}")
    if lead_time_seconds - margin_seconds < 0:
        raise ValueError(
            f"window margin ({margin_seconds}s) exceeds lead time ({lead_time_seconds}s); "
            "reminders would be sent after the due time"
        )

    if margin_seconds * 2 < scan_interval_seconds:
        logger.warning(
            "Window width %.1fs is narrower than scan interval %.1fs; tasks may fall between scans",
            margin_seconds * 2,
            scan_interval_seconds,
        )
