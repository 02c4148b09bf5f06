import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .engine import HandCricketGame
from .events import utc_now
from .matchmaking import QueueEntry

COMPLETED = 'completed'
ABANDONED = 'abandoned'

_ROOM_SUFFIX_CHARS = string.ascii_lowercase + string.digits


@dataclass
class Player:
    handle: str
    display_name: str

    def to_dict(self):
        return {'id': self.handle, 'name': self.display_name}


@dataclass
class Room:
    room_id: str
    players: Tuple[Player, Player]
    game: HandCricketGame
    created_at: datetime = field(default_factory=utc_now)

    @property
    def handles(self) -> Tuple[str, str]:
        return self.players[0].handle, self.players[1].handle

    def opponent(self, handle: str) -> Player:
        first, second = self.players
        return second if handle == first.handle else first

    def roster(self) -> List[Dict[str, str]]:
        return [p.to_dict() for p in self.players]


def generate_room_id() -> str:
    suffix = ''.join(random.choices(_ROOM_SUFFIX_CHARS, k=9))
    return f"room_{int(time.time() * 1000)}_{suffix}"


class RoomRegistry:
    """Owns the live rooms and the handle -> room index."""

    def __init__(self, channel, observers, logger, id_factory=generate_room_id):
        self._channel = channel
        self._observers = observers
        self._logger = logger
        self._id_factory = id_factory
        self._rooms: Dict[str, Room] = {}
        self._by_handle: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._rooms)

    def live_rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def find_room_by_handle(self, handle: str) -> Optional[Room]:
        room_id = self._by_handle.get(handle)
        return self._rooms.get(room_id) if room_id else None

    def create_room(self, first: QueueEntry, second: QueueEntry) -> Room:
        """Pair two queue entries into a fresh room and open its log session."""
        room_id = self._new_room_id()
        players = (
            Player(handle=first.handle, display_name=first.display_name),
            Player(handle=second.handle, display_name=second.display_name),
        )
        room = Room(room_id=room_id, players=players, game=HandCricketGame(room_id, (first.handle, second.handle)))
        self._rooms[room_id] = room
        for player in players:
            self._by_handle[player.handle] = room_id
            self._channel.join(player.handle, room_id)

        self._observers.start_session(room_id, room.roster())
        self._logger.info(f"[match] room={room_id} players={first.handle},{second.handle}")
        return room

    def retire_room(self, room_id: str, status: str = COMPLETED) -> Optional[Room]:
        """Remove a room from the live set and close its log session. Idempotent."""
        room = self._rooms.pop(room_id, None)
        if room is None:
            return None
        for player in room.players:
            self._by_handle.pop(player.handle, None)
            self._channel.leave(player.handle, room_id)
        winner = room.game.winner if status == COMPLETED else None
        self._observers.end_session(room_id, room.game.final_score(), winner, status)
        self._logger.info(f"[retire] room={room_id} status={status} winner={winner}")
        return room

    def _new_room_id(self) -> str:
        while True:
            room_id = self._id_factory()
            if room_id not in self._rooms:
                return room_id
            self._logger.warning(f"[room-id-collision] room={room_id} regenerating")
