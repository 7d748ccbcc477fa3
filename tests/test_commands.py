# tests/test_commands.py

from __future__ import annotations

from taskminder.cli.commands import CommandRegistry, format_report, registry
from taskminder.tasks.task_models import CycleReport, ScanWindow


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert reg.handle(state, "/a x y") == "h2:x,y"
    assert reg.handle(state, "/AA") == "h2:"
    assert reg.handle(state, "/b", emit=notes.append) == "h3"
    assert called == {"h2": 2, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_command_registry_turns_value_error_into_reply(state) -> None:
    reg = CommandRegistry()

    def boom(state, args):
        raise ValueError("bad input")

    reg.register("boom", boom, "boom")
    assert reg.handle(state, "/boom") == "Error: bad input"


def test_help_lists_registered_commands(state) -> None:
    reply = registry.handle(state, "/help") or ""
    for name in ("/status", "/adduser", "/add", "/tasks", "/due", "/done", "/scan"):
        assert name in reply


def test_user_and_task_commands(state) -> None:
    assert registry.handle(state, "/adduser bob bob@example.com") == "User #1 bob added."
    assert registry.handle(state, "/adduser bob other@example.com") == "User bob already exists."
    assert "bob <bob@example.com>" in (registry.handle(state, "/users") or "")

    assert registry.handle(state, "/add bob 30 Buy milk") == "Task #1 added."
    listing = registry.handle(state, "/ls") or ""
    assert "#1" in listing and "Buy milk" in listing

    assert registry.handle(state, "/done 1") == "Task #1 completed."
    assert "done" in (registry.handle(state, "/tasks") or "")
    assert registry.handle(state, "/undone 1") == "Task #1 reopened."
    assert not state.task_store.get_task(1).is_completed

    assert registry.handle(state, "/rm 1") == "Task #1 deleted."
    assert registry.handle(state, "/rm 1") == "Task #1 not found."
    assert registry.handle(state, "/tasks") == "No tasks."


def test_add_for_unknown_user_is_an_error(state) -> None:
    reply = registry.handle(state, "/add nobody 10 x") or ""
    assert reply.startswith("Error:")
    assert state.task_store.count_tasks() == 0


def test_due_resets_notified_flag(state, alice) -> None:
    task_id = state.task_store.add_task(user_id=alice, title="x", due_at=1_000.0)
    assert state.task_store.mark_notified(task_id)

    reply = registry.handle(state, f"/due {task_id} 15") or ""
    assert reply.startswith(f"Task #{task_id}")
    assert not state.task_store.get_task(task_id).notified

    assert registry.handle(state, f"/due {task_id} none")
    assert state.task_store.get_task(task_id).due_at is None

    assert (registry.handle(state, "/due abc 15") or "").startswith("Error: id must be an integer")


def test_status_and_scan_without_runner(state) -> None:
    status = registry.handle(state, "/status") or ""
    assert "Transport: console" in status
    assert "Catch-up missed windows: OFF" in status
    assert registry.handle(state, "/scan") == "Scheduler is not running."


def test_format_report() -> None:
    report = CycleReport(cycle=3, window=ScanWindow(0.0, 120.0), found=2, delivered=1, failed=1)
    report.failures.append((7, "timeout after 30s"))
    text = format_report(report)
    assert text.startswith("Scan #3:")
    assert "found=2 delivered=1 failed=1" in text
    assert "task #7: timeout after 30s" in text
    assert "aborted" in format_report(None)
