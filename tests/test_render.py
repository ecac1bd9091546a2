# tests/test_render.py

from __future__ import annotations

from nagbox.connectors.render import render_batch
from nagbox.tasks.task_models import Task


def test_empty_batch_renders_nothing() -> None:
    assert render_batch([]) == ""


def test_single_task() -> None:
    text = render_batch([Task(id=3, title="Drink water", interval=1)], app_name="nag")

    assert text.startswith("[nag] Drink water")
    assert "every 1 minute." in text
    assert "/stop 3" in text


def test_several_tasks_listed() -> None:
    tasks = [Task(id=i, title=f"t{i}") for i in range(1, 4)]
    lines = render_batch(tasks).splitlines()

    assert lines[0] == "[nagbox] 3 tasks need your attention"
    assert lines[1:4] == ["  #1 t1", "  #2 t2", "  #3 t3"]
    assert "more" not in "\n".join(lines)


def test_long_batch_is_collapsed() -> None:
    tasks = [Task(id=i, title=f"t{i}") for i in range(1, 8)]
    lines = render_batch(tasks).splitlines()

    assert [ln for ln in lines if ln.startswith("  #")] == ["  #1 t1", "  #2 t2", "  #3 t3", "  #4 t4"]
    assert "  +3 more" in lines
