# telephone/store/redis_keys.py
from __future__ import annotations

from dataclasses import dataclass

ROOMS_SET = "rooms"  # SET room_id


def code_key(code: str) -> str:
    return f"code:{code.upper()}"  # STRING -> room_id


def drawing_key(drawing_id: str) -> str:
    return f"drawing:{drawing_id}"  # STRING json


def guess_key(guess_id: str) -> str:
    return f"guess:{guess_id}"  # STRING json


def chain_owner_key(chain_id: str) -> str:
    return f"chain:{chain_id}"  # STRING -> room_id


@dataclass(frozen=True)
class RK:
    """
    Redis Key builder for room-scoped keys.
    """
    room_id: str

    # ---- Core ----
    def room(self) -> str:
        return f"room:{self.room_id}"  # HASH field -> json value

    def players(self) -> str:
        return f"room:{self.room_id}:players"  # HASH pid -> json

    def order(self) -> str:
        return f"room:{self.room_id}:order"  # LIST pid (join order)

    # ---- Submitted work ----
    def drawings(self) -> str:
        return f"room:{self.room_id}:drawings"  # LIST drawing_id

    def guesses(self) -> str:
        return f"room:{self.room_id}:guesses"  # LIST guess_id

    # ---- Chains ----
    def chains(self) -> str:
        return f"room:{self.room_id}:chains"  # HASH chain_id -> json

    def chain_index(self) -> str:
        return f"room:{self.room_id}:chain_index"  # HASH index -> chain_id

    # ---- Global keys owned by this room ----
    def refs(self) -> str:
        return f"room:{self.room_id}:refs"  # SET code/drawing/guess/chain keys

    # ---- Convenience: all keys to TTL-refresh ----
    def all_room_keys(self) -> list[str]:
        return [
            self.room(),
            self.refs(),
            self.players(),
            self.order(),
            self.drawings(),
            self.guesses(),
            self.chains(),
            self.chain_index(),
        ]
