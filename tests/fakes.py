from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from telephone.domain.common.locks import RoomLocks
from telephone.domain.lifecycle.handlers import create_room, handle_join
from telephone.settings import Settings
from telephone.store.memory_repo import MemoryRepo
from telephone.store.models import Room
from telephone.transport.protocols import InJoinRoom
from telephone.transport.ws_manager import Session


class FakeTimers:
    def __init__(self):
        self.started: List[Tuple[str, float, object, int]] = []
        self.stopped: List[str] = []
        self.running: Dict[str, Tuple[object, int]] = {}

    def start(self, room_id, duration, *, phase, round_no):
        self.started.append((room_id, duration, phase, round_no))
        self.running[room_id] = (phase, round_no)

    def stop(self, room_id):
        self.stopped.append(room_id)
        return self.running.pop(room_id, None) is not None

    def is_running(self, room_id):
        return room_id in self.running


class FakeWS:
    def __init__(self):
        self.bindings: Dict[str, Tuple[str, str]] = {}
        self.delivered: List[Tuple[str, list]] = []

    async def bind(self, conn_id, room_id, player_id):
        self.bindings[conn_id] = (room_id, player_id)

    async def unbind(self, conn_id):
        self.bindings.pop(conn_id, None)

    async def deliver(self, room_id, events, exclude_conn_id=None):
        self.delivered.append((room_id, list(events)))

    def session(self, conn_id) -> Session:
        room_id, player_id = self.bindings.get(conn_id, (None, None))
        return Session(conn_id=conn_id, room_id=room_id, player_id=player_id)


class FakeApp:
    def __init__(self, repo=None, settings: Optional[Settings] = None):
        self.state = type("State", (), {
            "repo": repo or MemoryRepo(),
            "timers": FakeTimers(),
            "wsman": FakeWS(),
            "locks": RoomLocks(),
            "settings": settings or Settings(),
        })()


async def seed_room(app, n_players: int = 4, **room_fields) -> Tuple[Room, List[Session]]:
    """Create a room and join n players over fake connections c0..c{n-1}."""
    room = await create_room(app.state.repo, app.state.settings, **room_fields)
    sessions = []
    for i in range(n_players):
        conn_id = f"c{i}"
        msg = InJoinRoom(data={"roomCode": room.code, "playerName": f"P{i}"})
        await handle_join(app=app, session=Session(conn_id=conn_id), msg=msg)
        sessions.append(app.state.wsman.session(conn_id))
    return await app.state.repo.get_room(room.id), sessions


def types_of(events) -> List[str]:
    out = []
    for e in events:
        out.append(e["type"] if isinstance(e, dict) else e.type)
    return out
