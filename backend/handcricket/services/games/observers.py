"""Fan-out of room events to pluggable observers such as the game log.

Observers are best-effort: a failing observer is reported to the operator
log and never interrupts game processing or the other observers.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Protocol

from .events import GameEvent


class GameObserver(Protocol):
    def start_session(self, room_id: str, players: list[dict[str, str]]) -> None: ...

    def record(self, event: GameEvent) -> None: ...

    def end_session(self, room_id: str, final_score: dict[str, Any],
                    winner: Optional[str], status: str) -> Any: ...


class ObserverSet:
    def __init__(self, observers: Iterable[GameObserver] = (), logger: Optional[logging.Logger] = None):
        self._observers = list(observers)
        self._logger = logger or logging.getLogger(__name__)

    def start_session(self, room_id: str, players: list[dict[str, str]]) -> None:
        self._each('start_session', room_id, players)

    def record(self, event: GameEvent) -> None:
        self._each('record', event)

    def end_session(self, room_id: str, final_score: dict[str, Any],
                    winner: Optional[str], status: str) -> None:
        self._each('end_session', room_id, final_score, winner, status)

    def _each(self, method: str, *args: Any) -> None:
        for observer in self._observers:
            try:
                getattr(observer, method)(*args)
            except Exception:
                self._logger.exception(f"[observer-error] observer={type(observer).__name__} call={method}")
