# telephone/transport/rooms_api.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from telephone.domain.common.snapshot import chains_public, drawings_public, guesses_public, room_public
from telephone.domain.lifecycle.handlers import RoomCreationError, create_room
from telephone.domain.queries import get_drawings, get_guesses, get_room_by_id_or_code, resolve_player_task
from telephone.store.models import GameMode

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rooms", tags=["rooms"])


class CreateRoomBody(BaseModel):
    hostName: str = Field(min_length=1, max_length=50)
    gameMode: GameMode = GameMode.NORMAL
    maxPlayers: Optional[int] = Field(default=None, ge=4, le=15)
    totalRounds: Optional[int] = Field(default=None, ge=1)
    writingTime: Optional[int] = Field(default=None, gt=0)
    drawingTime: Optional[int] = Field(default=None, gt=0)
    guessingTime: Optional[int] = Field(default=None, gt=0)


async def _room_or_404(request: Request, key: str):
    room = await get_room_by_id_or_code(request.app.state.repo, key)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


@router.post("")
async def create_room_route(body: CreateRoomBody, request: Request):
    """
    Create an empty room. hostName only gates creation; the host is whoever
    joins first over the websocket.
    """
    if not body.hostName.strip():
        raise HTTPException(status_code=400, detail="Host name is required")

    try:
        room = await create_room(
            request.app.state.repo,
            request.app.state.settings,
            game_mode=body.gameMode,
            max_players=body.maxPlayers,
            total_rounds=body.totalRounds,
            writing_time=body.writingTime,
            drawing_time=body.drawingTime,
            guessing_time=body.guessingTime,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RoomCreationError as e:
        logger.error("room creation failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    return {"room": room_public(room)}


@router.get("/{code_or_id}")
async def get_room_route(code_or_id: str, request: Request):
    room = await _room_or_404(request, code_or_id)
    return {"room": room_public(room)}


@router.get("/{room_id}/drawings")
async def list_drawings(room_id: str, request: Request, round: Optional[int] = None):
    room = await _room_or_404(request, room_id)
    drawings = await get_drawings(request.app.state.repo, room.id, round)
    return {"drawings": drawings_public(room, drawings)}


@router.get("/{room_id}/guesses")
async def list_guesses(room_id: str, request: Request, round: Optional[int] = None):
    room = await _room_or_404(request, room_id)
    guesses = await get_guesses(request.app.state.repo, room.id, round)
    return {"guesses": guesses_public(room, guesses)}


@router.get("/{room_id}/chains")
async def list_chains(room_id: str, request: Request):
    room = await _room_or_404(request, room_id)
    chains = await request.app.state.repo.get_game_chains_by_room(room.id)
    return {"chains": chains_public(room, chains)}


@router.get("/{room_id}/players/{player_id}/task")
async def get_player_task(room_id: str, player_id: str, request: Request):
    room = await _room_or_404(request, room_id)
    if room.find_player(player_id) is None:
        raise HTTPException(status_code=404, detail="Player not found")
    task = await resolve_player_task(request.app.state.repo, room, player_id)
    if task is None:
        raise HTTPException(status_code=404, detail="No task for this player")
    return {"task": task.model_dump(by_alias=True, mode="json", exclude_none=True)}
