# telephone/store/models.py
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GamePhase(str, Enum):
    LOBBY = "lobby"
    WRITING = "writing"
    DRAWING = "drawing"
    GUESSING = "guessing"
    RESULTS = "results"


class GameMode(str, Enum):
    NORMAL = "normal"
    SECRET = "secret"
    SCORE = "score"
    MASTERPIECE = "masterpiece"


class PlayerStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"
    # wire value only; disconnects are tracked by Player.connected
    DISCONNECTED = "disconnected"


class StepType(str, Enum):
    PROMPT = "prompt"
    DRAWING = "drawing"
    GUESS = "guess"


class StoreModel(BaseModel):
    """
    Base for everything the store keeps.
    Python side uses snake_case, the wire uses camelCase (roomId, currentPhase, ...).
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Player(StoreModel):
    id: str
    name: str = Field(min_length=1, max_length=50)
    score: int = 0
    status: PlayerStatus = PlayerStatus.WAITING
    is_host: bool = False
    connected: bool = True
    session_id: Optional[str] = None   # opaque transport reference, never public
    joined_at: int = 0


class Room(StoreModel):
    id: str
    code: str = Field(min_length=6, max_length=6)
    host_id: str = ""
    players: List[Player] = Field(default_factory=list)  # join order == rotation order
    max_players: int = Field(default=12, ge=4, le=15)
    game_mode: GameMode = GameMode.NORMAL
    current_phase: GamePhase = GamePhase.LOBBY
    current_round: int = 0
    total_rounds: int = Field(default=6, ge=1)
    writing_time: int = 60
    drawing_time: int = 180
    guessing_time: int = 60
    created_at: int = 0
    last_activity: int = 0
    phase_started_at: int = 0

    def player_index(self, player_id: str) -> Optional[int]:
        for i, p in enumerate(self.players):
            if p.id == player_id:
                return i
        return None

    def find_player(self, player_id: str) -> Optional[Player]:
        idx = self.player_index(player_id)
        return None if idx is None else self.players[idx]

    def all_finished(self) -> bool:
        return bool(self.players) and all(p.status == PlayerStatus.FINISHED for p in self.players)


class Step(StoreModel):
    type: StepType
    player_id: str
    content: str        # prompt/guess text or drawing image reference
    round: int
    timestamp: int


class GameChain(StoreModel):
    id: str
    room_id: str
    chain_index: int
    steps: List[Step] = Field(default_factory=list)
    final_result: Optional[str] = None


class Drawing(StoreModel):
    id: str
    room_id: str
    player_id: str
    round: int
    chain_index: int
    prompt: str
    canvas_data: str
    image_url: str = ""
    time_spent: int = 0
    created_at: int = 0


class Guess(StoreModel):
    id: str
    room_id: str
    player_id: str
    drawing_id: str
    round: int
    chain_index: int
    guess: str = Field(max_length=200)
    points: int = 0
    time_spent: int = 0
    created_at: int = 0


class Task(StoreModel):
    chain_index: int
    prompt: Optional[str] = None
    drawing_image_url: Optional[str] = None
    drawing_id: Optional[str] = None
