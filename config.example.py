# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Put SMTP credentials into .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKMINDER_APP_NAME": "App display name (default: taskminder).",
    "TASKMINDER_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    "TASKMINDER_SCHEDULER_LOG_LEVEL": "Console level for per-cycle scheduler reports only (e.g. WARNING to hide them, DEBUG to also see empty cycles; default: same as LOG_LEVEL).",
    # Paths (gitignored)
    "TASKMINDER_DATA_DIR": "Local data directory (default: .local/taskminder).",
    "TASKMINDER_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    # Scheduler
    "TASKMINDER_SCAN_INTERVAL_SECONDS": "Seconds between scans (default: 60).",
    "TASKMINDER_LEAD_TIME_SECONDS": "How long before the due time a reminder should arrive (default: 600).",
    "TASKMINDER_WINDOW_MARGIN_SECONDS": (
        "Half-width of the due-time window around now + lead time (default: 60). "
        "Keep it >= half the scan interval."
    ),
    "TASKMINDER_DISPATCH_TIMEOUT_SECONDS": "Per-reminder send timeout; a timeout counts as failed (default: 30).",
    "TASKMINDER_MAX_CONCURRENT_DISPATCHES": "Max reminders being sent at the same time (default: 16).",
    "TASKMINDER_BATCH_LIMIT": "Max candidates selected per scan (default: 500).",
    "TASKMINDER_CATCH_UP_MISSED": (
        "Also remind not-yet-due tasks whose window passed while the process was down (default: false)."
    ),
    "TASKMINDER_SHUTDOWN_DRAIN_SECONDS": "How long in-flight sends may finish at shutdown (default: 10).",
    # Connectors
    "TASKMINDER_CONSOLE_ENABLED": "Run the admin console REPL (true/false, default: true).",
    "TASKMINDER_TRANSPORT": "smtp | console | auto (default: auto = smtp when SMTP_HOST is set).",
    # SMTP
    "TASKMINDER_SMTP_HOST": "SMTP relay host.",
    "TASKMINDER_SMTP_PORT": "SMTP port (default: 587).",
    "TASKMINDER_SMTP_USERNAME": "SMTP login (optional).",
    "TASKMINDER_SMTP_PASSWORD": "SMTP password (optional).",
    "TASKMINDER_SMTP_FROM": "From address (default: SMTP username).",
    "TASKMINDER_SMTP_START_TLS": "Use STARTTLS (default: true).",
    "TASKMINDER_SMTP_USE_TLS": "Use implicit TLS, e.g. port 465 (default: false).",
    "TASKMINDER_SMTP_TIMEOUT_SECONDS": "SMTP connection timeout (default: 20).",
}
