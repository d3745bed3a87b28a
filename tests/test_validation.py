from telephone.domain.common.validation import (
    has_connected_players,
    is_full,
    is_game_active,
    is_host,
    is_name_taken,
)
from telephone.domain.common.snapshot import chains_public, room_public
from telephone.store.models import GameChain, GameMode, GamePhase, Player, Room, Step, StepType


def _room(**fields):
    return Room(id="r1", code="ABC123", **fields)


def test_is_host():
    host = Player(id="p1", name="A", is_host=True)
    other = Player(id="p2", name="B")
    room = _room(host_id="p1", players=[host, other])
    assert is_host(host, room) is True
    assert is_host(other, room) is False
    assert is_host(None, room) is False


def test_name_taken_is_case_sensitive():
    room = _room(players=[Player(id="p1", name="Ana")])
    assert is_name_taken(room, "Ana") is True
    assert is_name_taken(room, "ana") is False


def test_is_full():
    players = [Player(id=f"p{i}", name=f"P{i}") for i in range(4)]
    assert is_full(_room(max_players=4, players=players)) is True
    assert is_full(_room(max_players=5, players=players)) is False


def test_game_active_and_connected():
    room = _room(players=[Player(id="p1", name="A", connected=False)])
    assert is_game_active(room) is False
    assert has_connected_players(room) is False
    room.current_phase = GamePhase.GUESSING
    room.players[0].connected = True
    assert is_game_active(room) is True
    assert has_connected_players(room) is True


def test_room_snapshot_is_camel_case_without_session():
    room = _room(host_id="p1", players=[Player(id="p1", name="A", is_host=True, session_id="conn-1")])
    snap = room_public(room)
    assert snap["hostId"] == "p1"
    assert snap["currentPhase"] == "lobby"
    assert snap["players"][0]["isHost"] is True
    assert "sessionId" not in snap["players"][0]


def test_chains_redacted_only_for_hidden_modes():
    chain = GameChain(id="c", room_id="r1", chain_index=0, final_result="cat",
                      steps=[Step(type=StepType.PROMPT, player_id="p1", content="cat", round=1, timestamp=0)])

    secret = _room(game_mode=GameMode.SECRET, current_phase=GamePhase.DRAWING)
    assert chains_public(secret, [chain])[0]["steps"][0]["content"] == ""
    assert chains_public(secret, [chain])[0]["finalResult"] is None

    secret.current_phase = GamePhase.RESULTS
    assert chains_public(secret, [chain])[0]["steps"][0]["content"] == "cat"

    normal = _room(current_phase=GamePhase.DRAWING)
    assert chains_public(normal, [chain])[0]["finalResult"] == "cat"
