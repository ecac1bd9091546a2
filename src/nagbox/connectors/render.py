# src/nagbox/connectors/render.py

from __future__ import annotations

from collections.abc import Sequence

from ..core.time_utils import format_interval
from ..tasks.task_models import Task

INBOX_MAX_LINES = 5


def _plural_tasks(n: int) -> str:
    return "1 task needs your attention" if n == 1 else f"{n} tasks need your attention"


def render_batch(tasks: Sequence[Task], *, app_name: str = "nagbox") -> str:
    """
    Render the text of one reminder notification.

    One task: its title and interval with a stop hint.
    Several: a summary header plus an inbox-style list. Above INBOX_MAX_LINES
    titles, the first four are listed and the rest collapsed into "+N more".
    """
    if not tasks:
        return ""

    if len(tasks) == 1:
        task = tasks[0]
        return (
            f"[{app_name}] {task.title}\n"
            f"  Reminding every {format_interval(task.interval)}. "
            f"/dismiss {task.id} or /stop {task.id}"
        )

    lines = [f"[{app_name}] {_plural_tasks(len(tasks))}"]
    if len(tasks) <= INBOX_MAX_LINES:
        shown = list(tasks)
        overflow = 0
    else:
        shown = list(tasks[: INBOX_MAX_LINES - 1])
        overflow = len(tasks) - len(shown)

    for task in shown:
        lines.append(f"  #{task.id} {task.title}")
    if overflow:
        lines.append(f"  +{overflow} more")
    lines.append("  /dismiss to acknowledge all, /stop <id> to turn one off")
    return "\n".join(lines)
