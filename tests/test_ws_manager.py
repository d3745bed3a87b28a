import pytest

from telephone.transport.ws_manager import WSManager


class FakeSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.closed_with = None
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(data)

    async def close(self, code=1000):
        self.closed_with = code


async def _manager(n, fail=()):
    wsman = WSManager()
    sockets = {}
    for i in range(n):
        ws = FakeSocket(fail=i in fail)
        sockets[f"c{i}"] = ws
        await wsman.add(f"c{i}", ws)
        await wsman.bind(f"c{i}", "room", f"p{i}")
    return wsman, sockets


@pytest.mark.asyncio
async def test_bind_and_session_snapshot():
    wsman = WSManager()
    await wsman.add("c1", FakeSocket())
    assert (await wsman.session("c1")).room_id is None

    await wsman.bind("c1", "room", "p1")
    s = await wsman.session("c1")
    assert (s.conn_id, s.room_id, s.player_id) == ("c1", "room", "p1")
    assert await wsman.room_size("room") == 1

    await wsman.unbind("c1")
    assert (await wsman.session("c1")).player_id is None
    assert await wsman.room_size("room") == 0


@pytest.mark.asyncio
async def test_deliver_targets_and_excludes():
    wsman, sockets = await _manager(3)
    events = [
        {"type": "phase_changed", "data": {}},
        {"type": "task_assigned", "data": {"task": {"chainIndex": 2}}, "targets": ["p2"]},
    ]
    await wsman.deliver("room", events, exclude_conn_id="c0")

    assert sockets["c0"].sent == []
    assert sockets["c1"].sent == [{"type": "phase_changed", "data": {}}]
    assert sockets["c2"].sent == [
        {"type": "phase_changed", "data": {}},
        {"type": "task_assigned", "data": {"task": {"chainIndex": 2}}},
    ]


@pytest.mark.asyncio
async def test_targeted_event_reaches_excluded_sender():
    wsman, sockets = await _manager(2)
    await wsman.deliver("room", [{"type": "task_assigned", "data": {}, "targets": ["p0"]}], exclude_conn_id="c0")
    assert sockets["c0"].sent == [{"type": "task_assigned", "data": {}}]


@pytest.mark.asyncio
async def test_dead_socket_does_not_block_others():
    wsman, sockets = await _manager(3, fail={1})
    await wsman.broadcast("room", {"type": "time_update", "data": {"timeLeft": 5}})
    assert len(sockets["c0"].sent) == 1
    assert len(sockets["c2"].sent) == 1


@pytest.mark.asyncio
async def test_remove_returns_last_binding_and_close_all():
    wsman, sockets = await _manager(2)
    session = await wsman.remove("c0")
    assert (session.room_id, session.player_id) == ("room", "p0")
    assert await wsman.remove("c0") is None

    await wsman.close_all()
    assert sockets["c1"].closed_with == 1001
    assert await wsman.room_size("room") == 0
