"""Game event log sink and the session/statistics views built on it."""

from .logger import GameLogger, config_from_app, default_config

__all__ = ['GameLogger', 'config_from_app', 'default_config']
