# tests/test_task_window.py

from __future__ import annotations

import logging

import pytest

from taskminder.tasks.task_window import check_window_policy, compute_window

from .conftest import MINUTE, T0


def test_window_is_centered_on_lead_time() -> None:
    w = compute_window(T0, lead_time_seconds=10 * MINUTE, margin_seconds=1 * MINUTE)
    assert w.start_ts == T0 + 9 * MINUTE
    assert w.end_ts == T0 + 11 * MINUTE
    assert w.width == 2 * MINUTE

    assert w.contains(T0 + 10 * MINUTE)
    assert w.contains(w.start_ts)
    assert not w.contains(w.end_ts)
    assert not w.contains(T0 + 20 * MINUTE)


def test_consecutive_windows_tile_without_gaps() -> None:
    # margin == interval / 2: every instant belongs to exactly one window.
    lead, margin, interval = 10 * MINUTE, 30.0, 60.0
    due = T0 + 10 * MINUTE + 17.0
    hits = [
        k
        for k in range(-5, 5)
        if compute_window(T0 + k * interval, lead_time_seconds=lead, margin_seconds=margin).contains(due)
    ]
    assert len(hits) == 1


def test_policy_rejects_impossible_settings() -> None:
    with pytest.raises(ValueError):
        check_window_policy(scan_interval_seconds=0, lead_time_seconds=600, margin_seconds=60)
    with pytest.raises(ValueError):
        check_window_policy(scan_interval_seconds=60, lead_time_seconds=600, margin_seconds=-1)
    with pytest.raises(ValueError):
        check_window_policy(scan_interval_seconds=60, lead_time_seconds=60, margin_seconds=120)


def test_policy_warns_when_window_narrower_than_interval(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="taskminder.tasks.task_window"):
        check_window_policy(scan_interval_seconds=60, lead_time_seconds=600, margin_seconds=10)
    assert "narrower than scan interval" in caplog.text
