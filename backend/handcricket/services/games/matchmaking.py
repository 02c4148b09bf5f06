from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

# Broadcast group holding every waiting connection
QUEUE_GROUP = 'queue'


@dataclass(frozen=True)
class QueueEntry:
    handle: str
    display_name: str


class MatchmakingQueue:
    """FIFO of connections waiting for an opponent.

    Waiting connections are members of ``QUEUE_GROUP`` and receive
    ``online-count`` whenever the queue length changes.
    """

    def __init__(self, channel, is_playing: Optional[Callable[[str], bool]] = None):
        self._channel = channel
        self._is_playing = is_playing or (lambda handle: False)
        self._entries: 'OrderedDict[str, QueueEntry]' = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, handle: str) -> bool:
        return handle in self._entries

    def handles(self) -> list:
        return list(self._entries)

    def enqueue(self, handle: str, display_name: str) -> bool:
        """Append to the tail. Returns False if already queued or playing."""
        if handle in self._entries or self._is_playing(handle):
            return False
        self._entries[handle] = QueueEntry(handle=handle, display_name=display_name)
        self._channel.join(handle, QUEUE_GROUP)
        self._broadcast_count()
        return True

    def dequeue_pair(self) -> Optional[Tuple[QueueEntry, QueueEntry]]:
        if len(self._entries) < 2:
            return None
        _, first = self._entries.popitem(last=False)
        _, second = self._entries.popitem(last=False)
        for entry in (first, second):
            self._channel.leave(entry.handle, QUEUE_GROUP)
        self._broadcast_count()
        return first, second

    def remove(self, handle: str) -> bool:
        entry = self._entries.pop(handle, None)
        if entry is None:
            return False
        self._channel.leave(handle, QUEUE_GROUP)
        self._broadcast_count()
        return True

    def _broadcast_count(self) -> None:
        self._channel.broadcast(QUEUE_GROUP, 'online-count', {'count': len(self._entries)})
