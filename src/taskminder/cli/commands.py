# src/taskminder/cli/commands.py

from __future__ import annotations

import inspect
import logging
import sqlite3
import time
from collections.abc import Callable
from datetime import datetime
from typing import cast

from ..core.state import AppState
from ..tasks.task_api import complete_task, create_task, reopen_task, reschedule_task
from ..tasks.task_models import CycleReport, Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the admin console (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)

            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except ValueError as e:
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _ts_local(ts: float) -> str:
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _parse_int(raw: str, what: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{what} must be an integer, got {raw!r}") from None


def _parse_minutes(raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"minutes must be a number, got {raw!r}") from None


def _format_task(t: Task) -> str:
    due = _ts_local(t.due_at) if t.due_at is not None else "-"
    flags = []
    if t.is_completed:
        flags.append("done")
    if t.notified:
        flags.append("notified")
    flag_str = f" [{', '.join(flags)}]" if flags else ""
    return f"#{t.id} user={t.user_id} due={due} ({t.priority.value}) {t.title}{flag_str}"


def format_report(report: CycleReport | None) -> str:
    if report is None:
        return "Scan aborted (candidate selection failed, see logs)."
    lines = [
        f"Scan #{report.cycle}: window {_ts_local(report.window.start_ts)} .. {_ts_local(report.window.end_ts)}",
        f"  found={report.found} delivered={report.delivered} failed={report.failed} "
        f"skipped={report.skipped} in_flight={report.in_flight}",
    ]
    for task_id, reason in report.failures:
        lines.append(f"  task #{task_id}: {reason}")
    return "\n".join(lines)


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    sched = state.scheduler
    last = sched.last_report
    last_str = f"#{last.cycle} delivered={last.delivered} failed={last.failed}" if last else "-"
    return (
        "Status:\n"
        f"  Transport: {getattr(s, 'transport', '?')}\n"
        f"  Scan interval: {s.scan_interval_seconds:g}s, lead time: {s.lead_time_seconds:g}s, "
        f"margin: {s.window_margin_seconds:g}s\n"
        f"  Catch-up missed windows: {'ON' if s.catch_up_missed else 'OFF'}\n"
        f"  Scheduler: {sched.state.value}, cycles: {sched.cycles_started}, in flight: {sched.in_flight}\n"
        f"  Last report: {last_str}\n"
        f"  Tasks stored: {state.task_store.count_tasks()}"
    )


def cmd_users(state: AppState, args: list[str]) -> str:
    users = state.task_store.list_users()
    if not users:
        return "No users. Use /adduser <username> <email>."
    lines = ["Users:"]
    for u in users:
        lines.append(f"  #{u.id} {u.username} <{u.email or '-'}>")
    return "\n".join(lines)


def cmd_adduser(state: AppState, args: list[str]) -> str:
    """/adduser <username> [email]"""
    if not args:
        return "Usage: /adduser <username> [email]"
    email = args[1] if len(args) > 1 else None
    try:
        user_id = state.task_store.add_user(username=args[0], email=email)
    except sqlite3.IntegrityError:
        return f"User {args[0]} already exists."
    return f"User #{user_id} {args[0]} added."


def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <username> <minutes> <title...>"""
    if len(args) < 3:
        return "Usage: /add <username> <minutes> <title...>"
    task_id = create_task(
        state.task_store,
        username=args[0],
        title=" ".join(args[2:]),
        due_in_minutes=_parse_minutes(args[1]),
    )
    return f"Task #{task_id} added."


def cmd_tasks(state: AppState, args: list[str]) -> str:
    tasks = state.task_store.list_tasks(limit=50)
    if not tasks:
        return "No tasks."
    return "Tasks:\n" + "\n".join(f"  {_format_task(t)}" for t in tasks)


def cmd_due(state: AppState, args: list[str]) -> str:
    """/due <id> <minutes> | /due <id> none"""
    if len(args) < 2:
        return "Usage: /due <id> <minutes> | /due <id> none"
    task_id = _parse_int(args[0], "id")
    due_at = None if args[1].lower() == "none" else time.time() + _parse_minutes(args[1]) * 60
    task = reschedule_task(state.task_store, task_id, due_at)
    return f"Task {_format_task(task)}"


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <id>"
    task_id = _parse_int(args[0], "id")
    complete_task(state.task_store, task_id)
    return f"Task #{task_id} completed."


def cmd_undone(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /undone <id>"
    task_id = _parse_int(args[0], "id")
    reopen_task(state.task_store, task_id)
    return f"Task #{task_id} reopened."


def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <id>"
    task_id = _parse_int(args[0], "id")
    if not state.task_store.delete_task(task_id):
        return f"Task #{task_id} not found."
    return f"Task #{task_id} deleted."


def cmd_scan(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """Run one reminder cycle now (in the scheduler's own loop)."""
    runner = state.runner
    if runner is None or not runner.is_alive():
        return "Scheduler is not running."
    if emit:
        emit("[SCAN] Running one reminder cycle...")
    report = runner.run_cycle_now(state, timeout=max(5.0, state.settings.dispatch_timeout_seconds + 5.0))
    return format_report(report)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show scheduler settings and counters.")
registry.register("users", cmd_users, help_text="List users.")
registry.register("adduser", cmd_adduser, help_text="Add a user: /adduser <username> [email].")
registry.register("add", cmd_add, help_text="Add a task: /add <username> <minutes> <title...>.")
registry.register("tasks", cmd_tasks, help_text="List tasks.", aliases=["ls"])
registry.register("due", cmd_due, help_text="Move due time: /due <id> <minutes|none>.")
registry.register("done", cmd_done, help_text="Complete a task: /done <id>.")
registry.register("undone", cmd_undone, help_text="Reopen a task: /undone <id>.")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.")
registry.register("scan", cmd_scan, help_text="Run one reminder cycle now.")
