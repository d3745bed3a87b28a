# telephone/domain/common/validation.py
from __future__ import annotations

from typing import Optional

from telephone.store.models import GamePhase, Player, Room


def is_host(player: Optional[Player], room: Room) -> bool:
    """Check if player is the room host."""
    return player is not None and player.is_host and room.host_id == player.id


def is_name_taken(room: Room, name: str) -> bool:
    """Exact, case-sensitive comparison."""
    return any(p.name == name for p in room.players)


def is_full(room: Room) -> bool:
    return len(room.players) >= room.max_players


def is_game_active(room: Room) -> bool:
    return room.current_phase != GamePhase.LOBBY


def has_connected_players(room: Room) -> bool:
    return any(p.connected for p in room.players)
