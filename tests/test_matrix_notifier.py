# tests/test_matrix_notifier.py

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from nagbox.connectors.matrix_connector import MatrixNotifier, room_allowlist
from nagbox.tasks.task_models import Task


class FakeMatrixClient:
    def __init__(self, rooms: dict[str, object] | None = None, fail: bool = False) -> None:
        self.rooms = rooms or {}
        self.fail = fail
        self.sent: list[tuple[str, dict]] = []

    async def room_send(self, *, room_id, message_type, content, ignore_unverified_devices=False):
        if self.fail:
            raise RuntimeError("homeserver down")
        self.sent.append((room_id, content))
        return SimpleNamespace(event_id="$evt")


def test_room_allowlist() -> None:
    assert room_allowlist([]) is None
    assert room_allowlist([" ", ""]) is None
    assert room_allowlist(["!a:x", " !b:x "]) == {"!a:x", "!b:x"}


def test_pick_room_prefers_configured_then_allowlist_then_joined() -> None:
    client = FakeMatrixClient(rooms={"!joined:x": object()})
    loop = asyncio.new_event_loop()
    try:
        n = MatrixNotifier(notify_room="!cfg:x", allowed_rooms={"!b:x", "!a:x"})
        n.attach(client, loop)
        assert n.pick_room() == "!cfg:x"

        n = MatrixNotifier(allowed_rooms={"!b:x", "!a:x"})
        assert n.pick_room() == "!a:x"

        n = MatrixNotifier()
        assert n.pick_room() is None
        n.attach(client, loop)
        assert n.pick_room() == "!joined:x"
    finally:
        loop.close()


def test_show_batch_without_connection_is_a_noop() -> None:
    MatrixNotifier().show_batch([Task(id=1, title="a")])


@pytest.mark.asyncio
async def test_send_text_posts_to_room() -> None:
    client = FakeMatrixClient()
    n = MatrixNotifier(notify_room="!room:x")
    n.attach(client, asyncio.get_running_loop())

    assert await n.send_text("hello") is True
    assert client.sent == [("!room:x", {"msgtype": "m.text", "body": "hello"})]


@pytest.mark.asyncio
async def test_send_text_failure_is_reported() -> None:
    n = MatrixNotifier(notify_room="!room:x")
    n.attach(FakeMatrixClient(fail=True), asyncio.get_running_loop())

    assert await n.send_text("hello") is False


@pytest.mark.asyncio
async def test_show_batch_from_another_thread() -> None:
    client = FakeMatrixClient()
    n = MatrixNotifier(app_name="nag", notify_room="!room:x")
    n.attach(client, asyncio.get_running_loop())

    # The engine worker calls show_batch from its own thread.
    await asyncio.to_thread(n.show_batch, [Task(id=1, title="water")])
    for _ in range(50):
        if client.sent:
            break
        await asyncio.sleep(0.01)

    assert len(client.sent) == 1
    assert client.sent[0][1]["body"].startswith("[nag] water")
