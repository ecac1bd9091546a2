# src/nagbox/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..tasks.task_models import Task
from ..tasks.task_service import NagService
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    """
    Process-wide wiring shared by connectors and slash commands.

    Built once by cli.bootstrap; nothing here is a lazily created global.
    """

    settings: Any
    task_store: TaskStore
    service: NagService

    # Snapshot of the most recently deleted task, kept by the command layer for /undo.
    last_deleted: Task | None = None
    lock: threading.Lock = field(default_factory=threading.Lock)
