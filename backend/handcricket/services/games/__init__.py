"""Hand cricket domain services: the waiting queue, live rooms and the game engine.

Socket handlers drive ``HandCricketService``; nothing in here talks to
Socket.IO directly, only to the channel object it is given.
"""

from .service import HandCricketService

__all__ = ['HandCricketService']
