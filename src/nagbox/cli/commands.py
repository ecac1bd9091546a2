# src/nagbox/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace

from ..core.state import AppState
from ..core.time_utils import format_interval, format_started, ts_local
from ..tasks.errors import StoreError
from ..tasks.status import state_of
from ..tasks.task_models import Task, TaskState

CommandHandler = Callable[[AppState, list[str], str | None, str | None], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /list, /stop, ...)."""

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
        user_id: str | None = None,
        room_id: str | None = None,
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

        return handler(state, args, user_id, room_id)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


def _parse_id(raw: str) -> int | None:
    try:
        task_id = int(raw.lstrip("#"))
    except ValueError:
        return None
    return task_id if task_id >= 0 else None


def _parse_interval(raw: str) -> int | None:
    """Minutes between reminders. Zero and negatives are rejected here, at the editing layer."""
    try:
        minutes = int(raw)
    except ValueError:
        return None
    return minutes if minutes > 0 else None


def _load_task(state: AppState, task_id: int) -> Task | None:
    try:
        return state.task_store.get_task(task_id)
    except StoreError:
        logger.exception("get_task failed task_id=%s", task_id)
        return None


_STATE_LABELS = {
    TaskState.INACTIVE: "off",
    TaskState.ACTIVE_SEEN: "on",
    TaskState.ACTIVE_UNSEEN: "on, NAGGING",
}


def _describe(task: Task) -> str:
    line = f"#{task.id} [{_STATE_LABELS[state_of(task)]}] {task.title} (every {format_interval(task.interval)})"
    if task.active:
        line += f"\n     {format_started(task.last_started_at)}; next at {ts_local(task.next_fire_at)}"
    return line


# ---- handlers ----


def cmd_help(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    try:
        tasks = state.task_store.list_tasks()
        next_ts = state.task_store.closest_fire_at()
    except StoreError:
        logger.exception("status query failed")
        return "Task store is unavailable right now."

    active = sum(1 for t in tasks if t.active)
    unseen = sum(1 for t in tasks if state_of(t) == TaskState.ACTIVE_UNSEEN)
    next_str = ts_local(next_ts) if next_ts is not None else "nothing scheduled"
    return (
        "Status:\n"
        f"  Tasks: {len(tasks)} ({active} on, {unseen} waiting for acknowledgement)\n"
        f"  Next reminder: {next_str}"
    )


def cmd_list(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    try:
        tasks = state.task_store.list_tasks()
    except StoreError:
        logger.exception("list_tasks failed")
        return "Task store is unavailable right now."
    if not tasks:
        return "No tasks yet. Add one with /add <minutes> <title>."
    return "\n".join(["Tasks:"] + [f"  {_describe(t)}" for t in tasks])


def cmd_add(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    """
    /add <minutes> <title>   -> create a task that is off
    /add <title>             -> same, with the default interval
    """
    if not args:
        return "Usage: /add <minutes> <title>"

    interval = getattr(state.settings, "default_interval_minutes", 5)
    title_parts = args
    if args[0].lstrip("-").isdigit():
        parsed = _parse_interval(args[0])
        if parsed is None:
            return "Interval must be a positive number of minutes."
        interval = parsed
        title_parts = args[1:]

    title = " ".join(title_parts).strip()
    if not title:
        return "Task title is required."

    state.service.create_task(Task(title=title, interval=interval))
    return f"Adding task {title!r} (every {format_interval(interval)}). Turn it on with /on <id>."


def cmd_edit(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    """
    /edit <id> <minutes> [new title]

    Changes apply from the next reminder; an already scheduled one keeps its time.
    """
    if len(args) < 2:
        return "Usage: /edit <id> <minutes> [new title]"

    task_id = _parse_id(args[0])
    if task_id is None:
        return f"Invalid task id: {args[0]}"
    interval = _parse_interval(args[1])
    if interval is None:
        return "Interval must be a positive number of minutes."

    task = _load_task(state, task_id)
    if task is None:
        return f"No task #{task_id}."

    title = " ".join(args[2:]).strip() or task.title
    state.service.update_task(replace(task, title=title, interval=interval))
    return f"Updating task #{task_id}: {title!r} every {format_interval(interval)}."


def _toggle(state: AppState, args: list[str], active: bool) -> str:
    if not args:
        return f"Usage: /{'on' if active else 'off'} <id>"
    task_id = _parse_id(args[0])
    if task_id is None:
        return f"Invalid task id: {args[0]}"
    state.service.set_active(task_id, active)
    return f"Turning task #{task_id} {'on' if active else 'off'}."


def cmd_on(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    return _toggle(state, args, True)


def cmd_off(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    return _toggle(state, args, False)


def cmd_delete(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    if not args:
        return "Usage: /delete <id>"
    task_id = _parse_id(args[0])
    if task_id is None:
        return f"Invalid task id: {args[0]}"

    task = _load_task(state, task_id)
    if task is None:
        return f"No task #{task_id}."

    with state.lock:
        state.last_deleted = task
    state.service.delete_task(task_id)
    return f"Deleting task #{task_id} {task.title!r}. Use /undo to bring it back."


def cmd_undo(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    with state.lock:
        task = state.last_deleted
        state.last_deleted = None
    if task is None:
        return "Nothing to undo."
    state.service.restore_task(task)
    return f"Restoring task #{task.id} {task.title!r}."


def cmd_dismiss(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    """
    /dismiss       -> acknowledge every current reminder
    /dismiss <id>  -> acknowledge one
    """
    if not args:
        state.service.dismiss(None)
        return "Dismissed all reminders."
    task_id = _parse_id(args[0])
    if task_id is None:
        return f"Invalid task id: {args[0]}"
    state.service.dismiss(task_id)
    return f"Dismissed reminder for task #{task_id}."


def cmd_stop(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    if not args:
        return "Usage: /stop <id>"
    task_id = _parse_id(args[0])
    if task_id is None:
        return f"Invalid task id: {args[0]}"
    state.service.stop_task(task_id)
    return f"Stopping task #{task_id}."


def cmd_check(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    state.service.check_now()
    return "Checking for due reminders."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show task counts and the next reminder time.")
registry.register("list", cmd_list, help_text="List tasks.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Create a task: /add <minutes> <title>.")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> <minutes> [title].")
registry.register("on", cmd_on, help_text="Start reminding about a task: /on <id>.", aliases=["start"])
registry.register("off", cmd_off, help_text="Stop reminding about a task: /off <id>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("undo", cmd_undo, help_text="Restore the last deleted task.")
registry.register("dismiss", cmd_dismiss, help_text="Acknowledge reminders: /dismiss [id].")
registry.register("stop", cmd_stop, help_text="Turn a task off from its reminder: /stop <id>.")
registry.register("check", cmd_check, help_text="Check for due reminders now.")
