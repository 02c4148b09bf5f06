"""Typed events emitted by a hand cricket room.

Every variant shares ``id``, ``room_id``, ``timestamp`` and ``actor`` and
carries only the fields relevant to it. Observers (the game log) serialize
whichever variant they receive through ``to_record``.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, ClassVar, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


@dataclass(frozen=True, kw_only=True)
class GameEvent:
    type: ClassVar[str] = 'event'

    id: str
    room_id: str
    timestamp: datetime = field(default_factory=utc_now)
    actor: Optional[str] = None

    def payload(self) -> dict[str, Any]:
        """Variant-specific fields, camelCased for the wire and the log files."""
        base = {f.name for f in fields(GameEvent)}
        return {_camel(f.name): getattr(self, f.name) for f in fields(self) if f.name not in base}

    def to_record(self, player_name: Optional[str] = None) -> dict[str, Any]:
        return {
            'id': self.id,
            'gameId': self.room_id,
            'timestamp': self.timestamp.isoformat(),
            'type': self.type,
            'playerId': self.actor,
            'playerName': player_name,
            'data': self.payload(),
        }


@dataclass(frozen=True, kw_only=True)
class GameStarted(GameEvent):
    type: ClassVar[str] = 'game_start'

    players: list[dict[str, str]]


@dataclass(frozen=True, kw_only=True)
class TossWon(GameEvent):
    type: ClassVar[str] = 'toss'

    choice: str


@dataclass(frozen=True, kw_only=True)
class RoleChosen(GameEvent):
    type: ClassVar[str] = 'batting_choice'

    choice: str
    batsman: str
    bowler: str


@dataclass(frozen=True, kw_only=True)
class MoveMade(GameEvent):
    type: ClassVar[str] = 'move'

    number: int
    role: str
    innings: int


@dataclass(frozen=True, kw_only=True)
class RoundResolved(GameEvent):
    batsman_move: int
    bowler_move: int
    is_out: bool
    runs: int
    batsman: str
    bowler: str
    current_score: int
    new_innings: bool = False
    target_score: Optional[int] = None
    game_end: bool = False
    winner: Optional[str] = None

    def move_result(self) -> dict[str, Any]:
        """The ``move-result`` message body sent to both players."""
        result = {
            'batsmanMove': self.batsman_move,
            'bowlerMove': self.bowler_move,
            'isOut': self.is_out,
            'runs': self.runs,
            'batsmanId': self.batsman,
            'bowlerId': self.bowler,
            'gameEnd': self.game_end,
            'winner': self.winner,
            'newInnings': self.new_innings,
        }
        if self.target_score is not None:
            result['targetScore'] = self.target_score
        return result


@dataclass(frozen=True, kw_only=True)
class RunsScored(RoundResolved):
    type: ClassVar[str] = 'runs'


@dataclass(frozen=True, kw_only=True)
class WicketTaken(RoundResolved):
    type: ClassVar[str] = 'out'


@dataclass(frozen=True, kw_only=True)
class InningsChanged(GameEvent):
    type: ClassVar[str] = 'innings_change'

    batsman: str
    bowler: str
    target_score: int


@dataclass(frozen=True, kw_only=True)
class GameOver(GameEvent):
    type: ClassVar[str] = 'game_over'

    winner: str
    final_score: dict[str, dict[str, int]]
    result: dict[str, Any]


@dataclass(frozen=True, kw_only=True)
class PlayerLeft(GameEvent):
    type: ClassVar[str] = 'abandoned'


@dataclass(frozen=True, kw_only=True)
class GameEnded(GameEvent):
    type: ClassVar[str] = 'game_end'

    final_score: dict[str, dict[str, int]]
    winner: Optional[str]
    duration: int
    total_moves: int
    status: str


class EventSequence:
    """Allocates ordered, room-unique event ids."""

    def __init__(self, room_id: str):
        self.room_id = room_id
        self._counter = itertools.count(1)

    def make(self, cls: type[GameEvent], **kwargs: Any) -> GameEvent:
        seq = next(self._counter)
        return cls(id=f"{self.room_id}_{seq:04d}_{cls.type}", room_id=self.room_id, **kwargs)
