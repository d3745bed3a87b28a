# telephone/transport/protocols.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Union
from pydantic import BaseModel, Field, ValidationError


# =========================
# Incoming (Client -> Server)
# Envelope: {"type": "...", "data": {...}}
# =========================

class InBase(BaseModel):
    type: str


class RoomRef(BaseModel):
    roomId: str = Field(min_length=1)


class JoinRoomData(BaseModel):
    roomCode: str = Field(min_length=1, max_length=16)
    playerName: str = Field(min_length=1, max_length=50)


class DrawingUpdateData(RoomRef):
    canvasData: str


class SubmitDrawingData(RoomRef):
    canvasData: str
    imageUrl: str = Field(min_length=1)


class SubmitPromptData(RoomRef):
    prompt: str = Field(min_length=1, max_length=200)


class SubmitGuessData(RoomRef):
    guess: str = Field(min_length=1, max_length=200)


# ---- Lifecycle ----

class InJoinRoom(InBase):
    type: Literal["join_room"] = "join_room"
    data: JoinRoomData


class InLeaveRoom(InBase):
    type: Literal["leave_room"] = "leave_room"
    data: RoomRef


class InStartGame(InBase):
    type: Literal["start_game"] = "start_game"
    data: RoomRef


# ---- Gameplay ----

class InDrawingUpdate(InBase):
    """Live preview only, never persisted."""
    type: Literal["drawing_update"] = "drawing_update"
    data: DrawingUpdateData


class InSubmitDrawing(InBase):
    type: Literal["submit_drawing"] = "submit_drawing"
    data: SubmitDrawingData


class InSubmitPrompt(InBase):
    type: Literal["submit_prompt"] = "submit_prompt"
    data: SubmitPromptData


class InSubmitGuess(InBase):
    type: Literal["submit_guess"] = "submit_guess"
    data: SubmitGuessData


IncomingMessage = Union[
    InJoinRoom,
    InLeaveRoom,
    InStartGame,
    InDrawingUpdate,
    InSubmitDrawing,
    InSubmitPrompt,
    InSubmitGuess,
]


# =========================
# Outgoing (Server -> Client)
# =========================

class OutBase(BaseModel):
    type: str


class OutError(OutBase):
    type: Literal["error"] = "error"
    code: str
    message: str


class OutEvent(OutBase):
    data: Dict[str, Any] = Field(default_factory=dict)


class OutRoomJoined(OutEvent):
    type: Literal["room_joined"] = "room_joined"      # {room, playerId}


class OutPlayerJoined(OutEvent):
    type: Literal["player_joined"] = "player_joined"  # {player, room}


class OutPlayerLeft(OutEvent):
    type: Literal["player_left"] = "player_left"      # {playerId, room}


class OutPlayerDisconnected(OutEvent):
    type: Literal["player_disconnected"] = "player_disconnected"  # {playerId, room}


class OutGameStarted(OutEvent):
    type: Literal["game_started"] = "game_started"    # {room}


class OutDrawingUpdated(OutEvent):
    type: Literal["drawing_updated"] = "drawing_updated"  # {playerId, canvasData}


class OutPromptSubmitted(OutEvent):
    type: Literal["prompt_submitted"] = "prompt_submitted"  # {playerId, room}


class OutDrawingSubmitted(OutEvent):
    type: Literal["drawing_submitted"] = "drawing_submitted"  # {playerId, room}


class OutGuessSubmitted(OutEvent):
    type: Literal["guess_submitted"] = "guess_submitted"  # {playerId, room}


class OutPhaseChanged(OutEvent):
    type: Literal["phase_changed"] = "phase_changed"  # {room, phase, round, timedOut}


class OutTaskAssigned(OutEvent):
    type: Literal["task_assigned"] = "task_assigned"  # {task}


class OutGameResults(OutEvent):
    type: Literal["game_results"] = "game_results"    # {chains}


class OutTimeUpdate(OutEvent):
    type: Literal["time_update"] = "time_update"      # {timeLeft}


OutgoingEvent = Union[
    OutError,
    OutRoomJoined,
    OutPlayerJoined,
    OutPlayerLeft,
    OutPlayerDisconnected,
    OutGameStarted,
    OutDrawingUpdated,
    OutPromptSubmitted,
    OutDrawingSubmitted,
    OutGuessSubmitted,
    OutPhaseChanged,
    OutTaskAssigned,
    OutGameResults,
    OutTimeUpdate,
]


# =========================
# Parser helpers
# =========================

_INCOMING_BY_TYPE = {
    "join_room": InJoinRoom,
    "leave_room": InLeaveRoom,
    "start_game": InStartGame,
    "drawing_update": InDrawingUpdate,
    "submit_drawing": InSubmitDrawing,
    "submit_prompt": InSubmitPrompt,
    "submit_guess": InSubmitGuess,
}


def parse_incoming(payload: Any) -> IncomingMessage:
    """
    Convert raw dict -> validated message model.
    Raises ValidationError if invalid.
    """
    t = payload.get("type") if isinstance(payload, dict) else None
    if not isinstance(t, str):
        raise ValidationError.from_exception_data(
            title="IncomingMessage",
            line_errors=[{"loc": ("type",), "input": payload, "type": "missing"}],
        )

    cls = _INCOMING_BY_TYPE.get(t)
    if cls is None:
        raise ValueError(f"Unknown message type: {t}")

    return cls.model_validate(payload)


def targeted(event: OutBase, player_ids: List[str]) -> Dict[str, Any]:
    """Event delivered only to the listed players instead of the whole room."""
    return {**event.model_dump(mode="json"), "targets": list(player_ids)}


def dump_events(events: List[Any]) -> List[Dict[str, Any]]:
    """
    Convert pydantic events -> JSON dicts (targeted dicts pass through).
    """
    return [e if isinstance(e, dict) else e.model_dump(mode="json") for e in events]
