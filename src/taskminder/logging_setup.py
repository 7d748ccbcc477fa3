# src/taskminder/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Logger name prefixes whose console output is capped separately from the app
# level. Longest matching prefix wins.
_CONSOLE_FLOORS: dict[str, int] = {
    # Per-send lines; the per-cycle report already summarizes them.
    "taskminder.tasks.task_dispatcher": logging.WARNING,
    "taskminder.connectors.smtp_": logging.WARNING,
}


class _ConsoleLevelFilter(logging.Filter):
    """
    Per-logger minimum levels for the interactive console.

    taskminder loggers use app_level unless a more specific floor applies;
    anything else (aiosmtplib, asyncio, py.warnings) only shows at ERROR+.
    """

    def __init__(self, app_level: int, floors: dict[str, int]) -> None:
        super().__init__()
        self._app_level = app_level
        self._floors = sorted(floors.items(), key=lambda kv: len(kv[0]), reverse=True)

    def min_level(self, name: str) -> int:
        for prefix, level in self._floors:
            if name.startswith(prefix):
                return level
        if name.startswith("taskminder."):
            return self._app_level
        return logging.ERROR

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= self.min_level(record.name)


def _level(name: str | None, default: int) -> int:
    if not name:
        return default
    value = logging.getLevelName(str(name).upper())
    return value if isinstance(value, int) else default


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskminder",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    scheduler_console_level: str | None = None,
) -> None:
    """
    Configure logging with:
    - Console handler: app logs at console_level, per-send chatter and
      third-party libraries quieter; scheduler_console_level optionally
      raises or lowers the per-cycle reports on their own
    - taskminder.log: everything at file_level
    - reminder_alerts.log: WARNING+ from the reminder pipeline only
      (undelivered reminders, duplicates, guard failures)

    Call this ONCE, very early (before first logger.info).
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    floors = dict(_CONSOLE_FLOORS)
    if scheduler_console_level:
        floors["taskminder.tasks.task_scheduler"] = _level(scheduler_console_level, console_level)

    # Level filtering happens in the filter so per-logger floors may go below console_level.
    ch = logging.StreamHandler(sys.stderr)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleLevelFilter(console_level, floors))
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_dir / "taskminder.log"), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    ah = logging.FileHandler(str(log_dir / "reminder_alerts.log"), encoding="utf-8")
    ah.setLevel(logging.WARNING)
    ah.setFormatter(fmt)
    ah.addFilter(logging.Filter("taskminder.tasks"))
    root.addHandler(ah)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
