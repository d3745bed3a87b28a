# telephone/domain/common/snapshot.py
from __future__ import annotations

from typing import Any, Dict, List

from telephone.domain.common.modes import mode_config
from telephone.store.models import Drawing, GameChain, GamePhase, Guess, Player, Room

_PRIVATE_PLAYER_FIELDS = {"session_id"}


def player_public(player: Player) -> Dict[str, Any]:
    return player.model_dump(by_alias=True, mode="json", exclude=_PRIVATE_PLAYER_FIELDS)


def room_public(room: Room) -> Dict[str, Any]:
    """
    Room state as clients see it. Transport references never leave the server.
    """
    data = room.model_dump(by_alias=True, mode="json", exclude={"players"})
    data["players"] = [player_public(p) for p in room.players]
    return data


def hides_contents(room: Room) -> bool:
    """Modes with hidden prompts keep submitted contents back until results."""
    return mode_config(room.game_mode).hidden_prompts and room.current_phase != GamePhase.RESULTS


def chains_public(room: Room, chains: List[GameChain]) -> List[Dict[str, Any]]:
    """
    Chains for result rendering.
    """
    redact = hides_contents(room)
    out: List[Dict[str, Any]] = []
    for c in chains:
        data = c.model_dump(by_alias=True, mode="json")
        if redact:
            for step in data["steps"]:
                step["content"] = ""
            data["finalResult"] = None
        out.append(data)
    return out


def drawings_public(room: Room, drawings: List[Drawing]) -> List[Dict[str, Any]]:
    redact = hides_contents(room)
    out: List[Dict[str, Any]] = []
    for d in drawings:
        data = d.model_dump(by_alias=True, mode="json")
        if redact:
            data.update(prompt="", canvasData="", imageUrl="")
        out.append(data)
    return out


def guesses_public(room: Room, guesses: List[Guess]) -> List[Dict[str, Any]]:
    redact = hides_contents(room)
    out: List[Dict[str, Any]] = []
    for g in guesses:
        data = g.model_dump(by_alias=True, mode="json")
        if redact:
            data["guess"] = ""
        out.append(data)
    return out
