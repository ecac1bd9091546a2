# src/nagbox/connectors/matrix_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional, Set

from nio import MatrixRoom, RoomMessageText

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..core.time_utils import now_ms
from ..tasks.task_models import Task
from .matrix_client import connect_matrix, ensure_joined
from .render import render_batch

logger = logging.getLogger(__name__)


def room_allowlist(settings_rooms: list[str]) -> Optional[Set[str]]:
    rooms = [r.strip() for r in (settings_rooms or []) if str(r).strip()]
    return set(rooms) if rooms else None


async def _send_text(client, *, room_id: str, text: str) -> None:
    await client.room_send(
        room_id=room_id,
        message_type="m.room.message",
        content={"msgtype": "m.text", "body": text},
    )


class MatrixNotifier:
    """
    Posts reminder batches to a Matrix room.

    show_batch() is called from the engine worker thread; the actual send is
    scheduled on the connector's own event loop and not awaited, so a slow
    homeserver never stalls the engine. Until the connector is attached,
    batches are dropped with a debug log.
    """

    def __init__(
        self,
        *,
        app_name: str = "nagbox",
        notify_room: str = "",
        allowed_rooms: Optional[Set[str]] = None,
    ) -> None:
        self._app_name = app_name
        self._notify_room = (notify_room or "").strip()
        self._allowed_rooms = allowed_rooms
        self._client: Any = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def notify_room(self) -> str:
        return self._notify_room

    def attach(self, client: Any, loop: asyncio.AbstractEventLoop) -> None:
        self._client = client
        self._loop = loop

    def detach(self) -> None:
        self._client = None
        self._loop = None

    def pick_room(self) -> str | None:
        """Configured room, else the first allowed room, else any joined room."""
        if self._notify_room:
            return self._notify_room
        if self._allowed_rooms:
            return sorted(self._allowed_rooms)[0]
        client = self._client
        if client is not None and getattr(client, "rooms", None):
            return next(iter(client.rooms.keys()))
        return None

    def show_batch(self, tasks: Sequence[Task]) -> None:
        loop = self._loop
        if self._client is None or loop is None or loop.is_closed():
            logger.debug("Matrix not connected; %d reminders not posted", len(tasks))
            return
        text = render_batch(tasks, app_name=self._app_name)
        if not text:
            return
        asyncio.run_coroutine_threadsafe(self.send_text(text), loop)

    async def send_text(self, text: str) -> bool:
        client = self._client
        room_id = self.pick_room()
        if client is None or not room_id:
            logger.warning("No Matrix room to post reminders to")
            return False
        try:
            await _send_text(client, room_id=room_id, text=text)
        except Exception:
            logger.exception("Failed to post reminder to room %s.", room_id)
            return False
        logger.info("Reminder posted to room %s.", room_id)
        return True


async def _run_matrix_bot(state: AppState, notifier: MatrixNotifier, stop_event: asyncio.Event) -> None:
    """
    Matrix connector (async):

    init -> attach notifier -> command callback -> sync loop

    Shutdown model:
    - main thread sets stop_event via loop.call_soon_threadsafe(stop_event.set)
    - we run a manual sync loop so we can exit promptly.
    """
    settings = state.settings

    if not settings.matrix_homeserver or not settings.matrix_user_id:
        logger.error("Matrix is enabled but not configured (homeserver/user_id).")
        return

    startup_ts = now_ms()
    allowed_rooms = room_allowlist(getattr(settings, "matrix_rooms", []) or [])
    logger.info("Matrix allowed_rooms=%s", allowed_rooms if allowed_rooms is not None else "ALL")

    client = await connect_matrix(settings)
    if client is None:
        logger.error("Matrix client creation failed; connector will stop.")
        return

    notifier.attach(client, asyncio.get_running_loop())

    async def message_callback(room: MatrixRoom, event: RoomMessageText) -> None:
        # Ignore history from before startup and our own messages.
        ts = getattr(event, "server_timestamp", None)
        if ts is not None and ts <= startup_ts:
            return
        if event.sender == client.user_id:
            return
        if allowed_rooms is not None and room.room_id not in allowed_rooms:
            return

        body = (event.body or "").strip()
        if not body.startswith("/"):
            return

        logger.info("Matrix <%s> %s: %r", room.display_name, event.sender, body)
        try:
            resp = command_registry.handle(state, body, user_id=event.sender, room_id=room.room_id)
        except Exception:
            logger.exception("Command handler crashed.")
            resp = "Internal error while handling a command."

        if resp:
            try:
                await _send_text(client, room_id=room.room_id, text=resp)
            except Exception:
                logger.exception("Failed to send command reply.")

    client.add_event_callback(message_callback, RoomMessageText)

    try:
        logger.info("Matrix initial sync...")
        await client.sync(timeout=30000, full_state=True)
        logger.info("Matrix initial sync done. Joined rooms: %d", len(client.rooms))
        await ensure_joined(client, notifier.notify_room)

        while not stop_event.is_set():
            await client.sync(timeout=30000, full_state=False)

    except asyncio.CancelledError:
        logger.info("Matrix connector cancelled.")
    except Exception:
        logger.exception("Matrix connector crashed.")
    finally:
        notifier.detach()
        with contextlib.suppress(Exception):
            await client.close()
        logger.info("Matrix connector stopped.")


@dataclass
class MatrixBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal Matrix stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_matrix_in_background(state: AppState, notifier: MatrixNotifier) -> MatrixBackgroundRunner | None:
    """
    Start the Matrix connector in a background thread with its own event loop,
    so the blocking console REPL and the engine worker can run alongside it.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_matrix_bot(state, notifier, stop_event))
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="nagbox-matrix", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Matrix thread did not initialize properly.")
        return None

    logger.info("Matrix background thread started.")
    return MatrixBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
