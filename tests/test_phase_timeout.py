import pytest

from telephone.domain.game.handlers import (
    handle_phase_timeout,
    handle_start_game,
    handle_submit_drawing,
    handle_submit_prompt,
)
from telephone.domain.lifecycle.handlers import handle_disconnect
from telephone.store.models import GamePhase, PlayerStatus
from telephone.transport.protocols import InStartGame, InSubmitDrawing, InSubmitPrompt

from tests.fakes import FakeApp, seed_room, types_of


async def _started(n=4, **room_fields):
    app = FakeApp()
    room, sessions = await seed_room(app, n, **room_fields)
    await handle_start_game(app=app, session=sessions[0], msg=InStartGame(data={"roomId": room.id}))
    return app, room, sessions


async def _prompt(app, room, session, text):
    msg = InSubmitPrompt(data={"roomId": room.id, "prompt": text})
    return await handle_submit_prompt(app=app, session=session, msg=msg)


async def _draw(app, room, session, image):
    msg = InSubmitDrawing(data={"roomId": room.id, "canvasData": "{}", "imageUrl": image})
    return await handle_submit_drawing(app=app, session=session, msg=msg)


@pytest.mark.asyncio
async def test_timeout_finishes_stragglers_and_advances():
    app, room, sessions = await _started()
    await _prompt(app, room, sessions[0], "prompt 0")
    await _prompt(app, room, sessions[1], "prompt 1")

    events = await handle_phase_timeout(app, room.id, GamePhase.WRITING, 1)

    assert types_of(events)[0] == "phase_changed"
    assert events[0].data["timedOut"] is True
    assert (room.current_phase, room.current_round) == (GamePhase.DRAWING, 2)
    assert all(p.status == PlayerStatus.WAITING for p in room.players)

    chains = await app.state.repo.get_game_chains_by_room(room.id)
    assert [len(c.steps) for c in chains] == [1, 1, 0, 0]

    # delivered under the room lock, straight to the gateway
    assert len(app.state.wsman.delivered) == 1
    assert app.state.wsman.delivered[0][0] == room.id


@pytest.mark.asyncio
async def test_empty_chain_means_no_task():
    app, room, sessions = await _started()
    await _prompt(app, room, sessions[0], "prompt 0")
    await _prompt(app, room, sessions[1], "prompt 1")
    events = await handle_phase_timeout(app, room.id, GamePhase.WRITING, 1)

    # seats 3 and 0 draw chains 0 and 1; seats 1 and 2 got chains nobody wrote in
    targets = sorted(t for e in events if isinstance(e, dict) for t in e["targets"])
    assert targets == sorted([room.players[0].id, room.players[3].id])

    to_sender, _ = await _draw(app, room, sessions[1], "img")
    assert to_sender[0].code == "NO_TASK"
    assert to_sender[0].message == "No prompt found for this player"


@pytest.mark.asyncio
async def test_stale_expiry_is_ignored():
    app, room, sessions = await _started()
    for i, s in enumerate(sessions):
        await _prompt(app, room, s, f"prompt {i}")
    assert room.current_phase == GamePhase.DRAWING
    before = room.model_dump()

    events = await handle_phase_timeout(app, room.id, GamePhase.WRITING, 1)

    assert events == []
    assert room.model_dump() == before
    assert app.state.wsman.delivered == []


@pytest.mark.asyncio
async def test_expiry_for_deleted_room_is_ignored():
    app = FakeApp()
    assert await handle_phase_timeout(app, "gone", GamePhase.DRAWING, 2) == []


@pytest.mark.asyncio
async def test_disconnect_mid_drawing_then_timeout():
    app, room, sessions = await _started()
    for i, s in enumerate(sessions):
        await _prompt(app, room, s, f"prompt {i}")
    assert room.current_phase == GamePhase.DRAWING

    gone = sessions[2].player_id
    await handle_disconnect(app=app, session=sessions[2])
    assert room.find_player(gone) is not None
    assert app.state.timers.is_running(room.id)

    for i in (0, 1, 3):
        await _draw(app, room, sessions[i], f"img-{i}")
    assert room.current_phase == GamePhase.DRAWING
    assert room.find_player(gone).status == PlayerStatus.WAITING

    events = await handle_phase_timeout(app, room.id, GamePhase.DRAWING, 2)

    assert events[0].data["phase"] == "guessing"
    assert (room.current_phase, room.current_round) == (GamePhase.GUESSING, 3)
    chains = await app.state.repo.get_game_chains_by_room(room.id)
    round_two = [s for c in chains for s in c.steps if s.round == 2]
    assert len(round_two) == 3
    assert gone not in {s.player_id for s in round_two}
