# src/taskminder/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole process (normal "settings layer").
- No secrets required at import time (SMTP credentials are optional).
- Scheduler cadence and window policy are plain durations in seconds.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKMINDER"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    scheduler_log_level: str | None

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Scheduler ----
    scan_interval_seconds: float
    lead_time_seconds: float
    window_margin_seconds: float
    dispatch_timeout_seconds: float
    max_concurrent_dispatches: int
    batch_limit: int
    catch_up_missed: bool
    shutdown_drain_seconds: float

    # ---- Connectors ----
    console_enabled: bool
    transport: str

    # ---- SMTP ----
    smtp_host: str
    smtp_port: int
    smtp_username: str | None
    smtp_password: str | None
    smtp_from: str
    smtp_start_tls: bool
    smtp_use_tls: bool
    smtp_timeout_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskminder") or "taskminder"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        scheduler_log_level = _env(_k("SCHEDULER_LOG_LEVEL"), "").strip() or None

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskminder"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        scan_interval_seconds = _env_float(_k("SCAN_INTERVAL_SECONDS"), 60.0)
        lead_time_seconds = _env_float(_k("LEAD_TIME_SECONDS"), 600.0)
        window_margin_seconds = _env_float(_k("WINDOW_MARGIN_SECONDS"), 60.0)
        dispatch_timeout_seconds = _env_float(_k("DISPATCH_TIMEOUT_SECONDS"), 30.0)
        max_concurrent_dispatches = _env_int(_k("MAX_CONCURRENT_DISPATCHES"), 16)
        batch_limit = _env_int(_k("BATCH_LIMIT"), 500)
        catch_up_missed = _env_bool(_k("CATCH_UP_MISSED"), False)
        shutdown_drain_seconds = _env_float(_k("SHUTDOWN_DRAIN_SECONDS"), 10.0)

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        smtp_host = _env(_k("SMTP_HOST"), "").strip()
        smtp_username = _env(_k("SMTP_USERNAME"), "").strip() or None
        smtp_password = _env(_k("SMTP_PASSWORD"), "") or None
        smtp_from = _env(_k("SMTP_FROM"), "").strip() or (smtp_username or "taskminder@localhost")

        # "auto" picks SMTP only when a host is configured.
        transport = _env(_k("TRANSPORT"), "auto").strip().lower() or "auto"
        if transport == "auto":
            transport = "smtp" if smtp_host else "console"

        return Settings(
            app_name=app_name,
            log_level=log_level,
            scheduler_log_level=scheduler_log_level,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            scan_interval_seconds=scan_interval_seconds,
            lead_time_seconds=lead_time_seconds,
            window_margin_seconds=window_margin_seconds,
            dispatch_timeout_seconds=dispatch_timeout_seconds,
            max_concurrent_dispatches=max_concurrent_dispatches,
            batch_limit=batch_limit,
            catch_up_missed=catch_up_missed,
            shutdown_drain_seconds=shutdown_drain_seconds,
            console_enabled=console_enabled,
            transport=transport,
            smtp_host=smtp_host,
            smtp_port=_env_int(_k("SMTP_PORT"), 587),
            smtp_username=smtp_username,
            smtp_password=smtp_password,
            smtp_from=smtp_from,
            smtp_start_tls=_env_bool(_k("SMTP_START_TLS"), True),
            smtp_use_tls=_env_bool(_k("SMTP_USE_TLS"), False),
            smtp_timeout_seconds=_env_float(_k("SMTP_TIMEOUT_SECONDS"), 20.0),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
