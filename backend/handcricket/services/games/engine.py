"""Authoritative hand cricket state machine, one instance per room.

Transitions:

    toss --toss-choice--> choose_role --batting-choice--> in_progress --> finished

Every public method evaluates one inbound message against the current state
and returns the events it emitted. A message that fails its guard returns an
empty list and leaves the state untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .events import (
    EventSequence,
    GameEvent,
    GameOver,
    InningsChanged,
    MoveMade,
    RoleChosen,
    RoundResolved,
    RunsScored,
    TossWon,
    WicketTaken,
)

TOSS_CHOICES = ('heads', 'tails')
ROLE_CHOICES = ('bat', 'bowl')


class Phase(str, Enum):
    TOSS = 'toss'
    CHOOSE_ROLE = 'choose_role'
    IN_PROGRESS = 'in_progress'
    FINISHED = 'finished'


@dataclass
class RoundMoves:
    """The two move slots of the round being played."""

    batsman: Optional[int] = None
    bowler: Optional[int] = None

    @property
    def complete(self) -> bool:
        return self.batsman is not None and self.bowler is not None

    def clear(self) -> None:
        self.batsman = None
        self.bowler = None


@dataclass
class GameState:
    players: tuple[str, str]
    phase: Phase = Phase.TOSS
    toss_winner: Optional[str] = None
    current_batsman: Optional[str] = None
    current_bowler: Optional[str] = None
    innings: int = 1
    scores: dict[str, int] = field(default_factory=dict)
    outs: dict[str, int] = field(default_factory=dict)
    target_score: int = 0
    pending: RoundMoves = field(default_factory=RoundMoves)

    def __post_init__(self) -> None:
        first, second = self.players
        if first == second:
            raise ValueError('a game needs two distinct players')
        self.scores = {first: 0, second: 0}
        self.outs = {first: 0, second: 0}

    def opponent_of(self, handle: str) -> str:
        first, second = self.players
        return second if handle == first else first

    def role_of(self, handle: str) -> Optional[str]:
        if handle == self.current_batsman:
            return 'batsman'
        if handle == self.current_bowler:
            return 'bowler'
        return None


def is_move(number: Any) -> bool:
    # bool is an int subclass; true/false is not a move.
    # Negative values would let a score go down.
    return isinstance(number, int) and not isinstance(number, bool) and number >= 0


class HandCricketGame:
    def __init__(self, room_id: str, players: tuple[str, str]):
        self.room_id = room_id
        self.state = GameState(players=tuple(players))
        self.winner: Optional[str] = None
        self._events = EventSequence(room_id)

    @property
    def finished(self) -> bool:
        return self.state.phase is Phase.FINISHED

    def emit(self, cls: type[GameEvent], **kwargs: Any) -> GameEvent:
        return self._events.make(cls, **kwargs)

    def final_score(self) -> dict[str, dict[str, int]]:
        return {
            handle: {'runs': self.state.scores[handle], 'outs': self.state.outs[handle]}
            for handle in self.state.players
        }

    def choose_toss(self, handle: str, choice: Any) -> list[GameEvent]:
        """First valid toss choice wins the toss; later ones are ignored."""
        state = self.state
        if state.phase is not Phase.TOSS or state.toss_winner is not None:
            return []
        if handle not in state.players or choice not in TOSS_CHOICES:
            return []
        state.toss_winner = handle
        state.phase = Phase.CHOOSE_ROLE
        return [self.emit(TossWon, actor=handle, choice=choice)]

    def choose_role(self, handle: str, choice: Any) -> list[GameEvent]:
        state = self.state
        if state.phase is not Phase.CHOOSE_ROLE or handle != state.toss_winner:
            return []
        if choice not in ROLE_CHOICES:
            return []
        opponent = state.opponent_of(handle)
        if choice == 'bat':
            state.current_batsman, state.current_bowler = handle, opponent
        else:
            state.current_batsman, state.current_bowler = opponent, handle
        for player in state.players:
            state.scores[player] = 0
            state.outs[player] = 0
        state.pending.clear()
        state.phase = Phase.IN_PROGRESS
        return [self.emit(
            RoleChosen,
            actor=handle,
            choice=choice,
            batsman=state.current_batsman,
            bowler=state.current_bowler,
        )]

    def submit_move(self, handle: str, number: Any) -> list[GameEvent]:
        """Record one player's move and resolve the round once both are in."""
        state = self.state
        if state.phase is not Phase.IN_PROGRESS or not is_move(number):
            return []
        role = state.role_of(handle)
        if role is None or getattr(state.pending, role) is not None:
            return []
        setattr(state.pending, role, number)
        events = [self.emit(MoveMade, actor=handle, number=number, role=role, innings=state.innings)]
        if state.pending.complete:
            events.extend(self._resolve_round())
        return events

    def _resolve_round(self) -> list[GameEvent]:
        state = self.state
        batsman, bowler = state.current_batsman, state.current_bowler
        batsman_move, bowler_move = state.pending.batsman, state.pending.bowler
        state.pending.clear()

        if batsman_move == bowler_move:
            state.outs[batsman] += 1
            if state.innings == 1:
                state.target_score = state.scores[batsman] + 1
                state.innings = 2
                state.current_batsman, state.current_bowler = bowler, batsman
                return [
                    self._round_event(
                        WicketTaken, batsman, bowler, batsman_move, bowler_move,
                        new_innings=True, target_score=state.target_score,
                    ),
                    self.emit(InningsChanged, batsman=bowler, bowler=batsman, target_score=state.target_score),
                ]
            # chaser bowled out: the defending side wins
            return self._finish(self._round_event(
                WicketTaken, batsman, bowler, batsman_move, bowler_move, game_end=True, winner=bowler,
            ))

        state.scores[batsman] += batsman_move
        if state.innings == 2 and state.scores[batsman] >= state.target_score:
            return self._finish(self._round_event(
                RunsScored, batsman, bowler, batsman_move, bowler_move, game_end=True, winner=batsman,
            ))
        return [self._round_event(RunsScored, batsman, bowler, batsman_move, bowler_move)]

    def _round_event(self, cls: type[RoundResolved], batsman: str, bowler: str,
                     batsman_move: int, bowler_move: int, **extra: Any) -> GameEvent:
        is_out = cls is WicketTaken
        return self.emit(
            cls,
            actor=batsman,
            batsman_move=batsman_move,
            bowler_move=bowler_move,
            is_out=is_out,
            runs=0 if is_out else batsman_move,
            batsman=batsman,
            bowler=bowler,
            current_score=self.state.scores[batsman],
            **extra,
        )

    def _finish(self, final_round: RoundResolved) -> list[GameEvent]:
        self.state.phase = Phase.FINISHED
        self.winner = final_round.winner
        return [
            final_round,
            self.emit(
                GameOver,
                winner=final_round.winner,
                final_score=self.final_score(),
                result=final_round.move_result(),
            ),
        ]


def replay_session(record: dict[str, Any]) -> tuple[dict[str, dict[str, int]], Optional[str]]:
    """Re-run a persisted session's inputs through a fresh game.

    Only the player inputs (toss, batting choice, moves) are replayed; the
    outcome events are recomputed. Returns ``(final_score, winner)``.
    """
    metadata = record.get('metadata') or {}
    players = tuple(p['id'] for p in metadata.get('players') or [])
    game = HandCricketGame(metadata.get('gameId') or 'replay', players)
    for event in record.get('events') or []:
        data = event.get('data') or {}
        actor = event.get('playerId')
        if event.get('type') == TossWon.type:
            game.choose_toss(actor, data.get('choice'))
        elif event.get('type') == RoleChosen.type:
            game.choose_role(actor, data.get('choice'))
        elif event.get('type') == MoveMade.type:
            game.submit_move(actor, data.get('number'))
    return game.final_score(), game.winner
