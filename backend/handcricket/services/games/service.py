"""Matchmaking and game coordination service.

One ``HandCricketService`` is created per application and owns every piece
of process-wide mutable state: the waiting queue and the live rooms. All
inbound operations run under a single lock, so each message is applied to
completion (state changed, events recorded, messages sent) before the next
one from any connection is looked at.
"""

import logging
import threading
from typing import Any, Iterable, Optional

from .engine import Phase
from .events import GameEvent, GameOver, GameStarted, MoveMade, PlayerLeft, RoleChosen, RoundResolved, TossWon
from .matchmaking import MatchmakingQueue
from .observers import GameObserver, ObserverSet
from .rooms import ABANDONED, COMPLETED, Room, RoomRegistry


class HandCricketService:
    def __init__(self, channel, observers: Iterable[GameObserver] = (), logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.channel = channel
        self.observers = ObserverSet(observers, self.logger)
        self.rooms = RoomRegistry(channel, self.observers, self.logger)
        self.queue = MatchmakingQueue(channel, is_playing=self._is_playing)
        self._lock = threading.RLock()

    def join_queue(self, handle: str, display_name: str) -> Optional[Room]:
        """Queue a connection and pair waiting players. Returns the last room formed."""
        with self._lock:
            if not self.queue.enqueue(handle, display_name):
                return None
            self.logger.info(f"[queue] handle={handle} name={display_name} waiting={len(self.queue)}")
            room = None
            pair = self.queue.dequeue_pair()
            while pair is not None:
                room = self.rooms.create_room(*pair)
                self._publish(room, [room.game.emit(GameStarted, players=room.roster())])
                pair = self.queue.dequeue_pair()
            return room

    def toss_choice(self, handle: str, choice: Any) -> None:
        with self._lock:
            room = self.rooms.find_room_by_handle(handle)
            if room is not None:
                self._publish(room, room.game.choose_toss(handle, choice))

    def batting_choice(self, handle: str, choice: Any) -> None:
        with self._lock:
            room = self.rooms.find_room_by_handle(handle)
            if room is not None:
                self._publish(room, room.game.choose_role(handle, choice))

    def make_move(self, handle: str, number: Any) -> None:
        with self._lock:
            room = self.rooms.find_room_by_handle(handle)
            if room is not None:
                self._publish(room, room.game.submit_move(handle, number))

    def disconnect(self, handle: str) -> None:
        """Drop a connection from the queue, abandoning its room if it had one."""
        with self._lock:
            self.queue.remove(handle)
            room = self.rooms.find_room_by_handle(handle)
            if room is None:
                return
            self._publish(room, [room.game.emit(PlayerLeft, actor=handle)])
            self.rooms.retire_room(room.room_id, status=ABANDONED)

    def close(self) -> None:
        """Abandon every live room and empty the queue."""
        with self._lock:
            for room in self.rooms.live_rooms():
                self.rooms.retire_room(room.room_id, status=ABANDONED)
            for handle in self.queue.handles():
                self.queue.remove(handle)

    def _is_playing(self, handle: str) -> bool:
        return self.rooms.find_room_by_handle(handle) is not None

    def _publish(self, room: Room, events: list) -> None:
        for event in events:
            self.observers.record(event)
            self._deliver(room, event)
        if room.game.finished:
            self.rooms.retire_room(room.room_id, status=COMPLETED)

    def _deliver(self, room: Room, event: GameEvent) -> None:
        """Translate one event into messages scoped to the room's players."""
        if isinstance(event, GameStarted):
            self.channel.broadcast(room.room_id, 'match-found', {'roomId': room.room_id, 'players': event.players})
        elif isinstance(event, TossWon):
            self.channel.send(event.actor, 'toss-won', {'choice': event.choice})
            self.channel.send(room.opponent(event.actor).handle, 'toss-lost', {'opponentChoice': event.choice})
        elif isinstance(event, RoleChosen):
            self.channel.broadcast(room.room_id, 'game-start', {
                'currentBatsman': event.batsman,
                'currentBowler': event.bowler,
                'phase': Phase.IN_PROGRESS.value,
            })
        elif isinstance(event, MoveMade):
            self.channel.send(room.opponent(event.actor).handle, 'opponent-move', {'number': event.number})
        elif isinstance(event, RoundResolved):
            self.channel.broadcast(room.room_id, 'move-result', event.move_result())
        elif isinstance(event, GameOver):
            self.channel.broadcast(room.room_id, 'game-finished', event.result)
        elif isinstance(event, PlayerLeft):
            self.channel.send(room.opponent(event.actor).handle, 'opponent-disconnected', {})
