"""Append-only recorder for game events and completed session records.

Targets, each switchable through the logging configuration:

- console: one ``[game-log]`` line per event on the operator logger
- file: per-event lines (json, csv or txt) plus one ``complete_game_*.json``
  record per session
- database: one ``GameLog`` row per session; the query API reads from it
  when enabled, otherwise from the complete-game files

Writes go through ``dispatch`` so they can run off the message-processing
path. A failed write is reported to the operator logger and dropped.
"""

from __future__ import annotations

import copy
import glob
import json
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from handcricket import db
from handcricket.models import GameLog
from handcricket.services.games.events import GameEnded, GameEvent, MoveMade, RoleChosen, utc_now

from .formats import FORMATS, format_event
from .summary import build_complete_record, build_stats

LEVELS = {'debug': logging.DEBUG, 'info': logging.INFO, 'error': logging.ERROR}
COMPLETE_PREFIX = 'complete_game_'


def default_config() -> dict[str, Any]:
    return {
        'enabled': True,
        'targets': {
            'file': {
                'enabled': True,
                'directory': './logs/games',
                'format': 'json',
                'separateFiles': True,
            },
            'console': {
                'enabled': True,
                'level': 'info',
            },
            'database': {
                'enabled': True,
            },
        },
        'retention': {
            'maxFiles': 1000,
            'maxAge': 30,
        },
    }


def config_from_app(app_config) -> dict[str, Any]:
    """Build the sink configuration from Flask config keys."""
    return merge_config(default_config(), {
        'enabled': bool(app_config.get('GAME_LOG_ENABLED', True)),
        'targets': {
            'file': {
                'enabled': True,
                'directory': app_config.get('GAME_LOG_DIR', './logs/games'),
                'format': app_config.get('GAME_LOG_FORMAT', 'json'),
                'separateFiles': bool(app_config.get('GAME_LOG_SEPARATE_FILES', True)),
            },
            'console': {
                'enabled': bool(app_config.get('GAME_LOG_CONSOLE', True)),
                'level': app_config.get('GAME_LOG_CONSOLE_LEVEL', 'info'),
            },
            'database': {
                'enabled': bool(app_config.get('GAME_LOG_DATABASE', True)),
            },
        },
        'retention': {
            'maxFiles': int(app_config.get('LOG_RETENTION_MAX_FILES', 1000)),
            'maxAge': int(app_config.get('LOG_RETENTION_MAX_AGE_DAYS', 30)),
        },
    })


def merge_config(base: dict[str, Any], overrides: Any) -> dict[str, Any]:
    """Recursively merge ``overrides`` into a copy of ``base``.

    Raises ValueError when the overrides are not an object or try to replace
    a nested section with a scalar.
    """
    if not isinstance(overrides, dict):
        raise ValueError('configuration must be a JSON object')
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, dict):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: dict[str, Any]) -> None:
    """Raise ValueError unless every setting has the type the sink relies on."""
    targets = config.get('targets')
    if not isinstance(targets, dict) or not all(
            isinstance(targets.get(name), dict) for name in ('file', 'console', 'database')):
        raise ValueError('targets must hold file, console and database objects')
    file_target = targets['file']
    flags = {
        'enabled': config.get('enabled'),
        'targets.file.enabled': file_target.get('enabled'),
        'targets.file.separateFiles': file_target.get('separateFiles'),
        'targets.console.enabled': targets['console'].get('enabled'),
        'targets.database.enabled': targets['database'].get('enabled'),
    }
    for name, value in flags.items():
        if not isinstance(value, bool):
            raise ValueError(f"{name} must be true or false")
    directory = file_target.get('directory')
    if not isinstance(directory, str) or not directory.strip():
        raise ValueError('targets.file.directory must be a non-empty string')
    if file_target.get('format') not in FORMATS:
        raise ValueError(f"unsupported log format: {file_target.get('format')}")
    if targets['console'].get('level') not in LEVELS:
        raise ValueError(f"unsupported console level: {targets['console'].get('level')}")
    retention = config.get('retention')
    if not isinstance(retention, dict):
        raise ValueError('retention must be an object')
    for key in ('maxFiles', 'maxAge'):
        value = retention.get(key)
        # bool is an int subclass
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValueError(f"retention.{key} must be a non-negative integer")


@dataclass
class _Session:
    game_id: str
    start_time: datetime
    players: list[dict[str, str]]
    events: list[dict[str, Any]] = field(default_factory=list)
    total_moves: int = 0

    def player_name(self, handle: Optional[str]) -> Optional[str]:
        for player in self.players:
            if player['id'] == handle:
                return player['name']
        return None

    def assign_roles(self, batsman: str, bowler: str) -> None:
        for player in self.players:
            if player['id'] == batsman:
                player['role'] = 'batsman'
            elif player['id'] == bowler:
                player['role'] = 'bowler'


def _run_inline(fn: Callable, *args: Any) -> None:
    fn(*args)


class GameLogger:
    def __init__(self, config: Optional[dict[str, Any]] = None, logger: Optional[logging.Logger] = None,
                 dispatch: Optional[Callable] = None, app=None):
        self.config = merge_config(default_config(), config or {})
        self.logger = logger or logging.getLogger(__name__)
        self.active_sessions: dict[str, _Session] = {}
        self._dispatch = dispatch or _run_inline
        self._app = app
        self._write_lock = threading.Lock()
        self.initialize()

    @property
    def directory(self) -> str:
        return self.config['targets']['file']['directory']

    @property
    def _file_enabled(self) -> bool:
        return bool(self.config['targets']['file'].get('enabled'))

    @property
    def _database_enabled(self) -> bool:
        return self._app is not None and bool(self.config['targets']['database'].get('enabled'))

    def initialize(self) -> None:
        if self._file_enabled:
            os.makedirs(self.directory, exist_ok=True)

    def update_config(self, overrides: Any) -> dict[str, Any]:
        """Merge ``overrides`` into the live config.

        Raises ValueError, leaving the current config in place, when the
        merged result is invalid or its log directory cannot be created.
        """
        merged = merge_config(self.config, overrides)
        validate_config(merged)
        file_target = merged['targets']['file']
        if file_target['enabled']:
            try:
                os.makedirs(file_target['directory'], exist_ok=True)
            except OSError as exc:
                raise ValueError(f"cannot use log directory {file_target['directory']}: {exc}") from exc
        self.config = merged
        fmt = file_target['format']
        self.logger.info(f"[game-log-config] directory={self.directory} format={fmt} enabled={merged['enabled']}")
        return self.config

    # ---- recording ----

    def start_session(self, room_id: str, players: list[dict[str, str]]) -> None:
        if not self.config['enabled']:
            return
        self.active_sessions[room_id] = _Session(
            game_id=room_id,
            start_time=utc_now(),
            players=[{**p, 'role': None} for p in players],
        )

    def record(self, event: GameEvent) -> None:
        """Fire-and-forget: never raises into the caller."""
        if not self.config['enabled']:
            return
        try:
            session = self.active_sessions.get(event.room_id)
            entry = event.to_record(session.player_name(event.actor) if session else None)
            if session is not None:
                session.events.append(entry)
                if isinstance(event, MoveMade):
                    session.total_moves += 1
                elif isinstance(event, RoleChosen):
                    session.assign_roles(event.batsman, event.bowler)
            console = self.config['targets']['console']
            if console.get('enabled'):
                level = LEVELS.get(console.get('level'), logging.INFO)
                self.logger.log(level, f"[game-log] {json.dumps(entry)}")
            if self._file_enabled:
                self._dispatch(self._append_event, entry)
        except Exception:
            self.logger.exception(f"[game-log-error] stage=record game={event.room_id} type={event.type}")

    def end_session(self, room_id: str, final_score: dict[str, Any], winner: Optional[str],
                    status: str = 'completed') -> Optional[dict[str, Any]]:
        """Close a session and persist its complete record. Returns the record."""
        session = self.active_sessions.get(room_id)
        if session is None:
            return None
        end_time = utc_now()
        self.record(GameEnded(
            id=f"{room_id}_end",
            room_id=room_id,
            timestamp=end_time,
            final_score=final_score,
            winner=winner,
            duration=int((end_time - session.start_time).total_seconds() * 1000),
            total_moves=session.total_moves,
            status=status,
        ))
        self.active_sessions.pop(room_id, None)
        record = build_complete_record(
            game_id=room_id,
            start_time=session.start_time,
            end_time=end_time,
            players=session.players,
            events=session.events,
            total_moves=session.total_moves,
            final_score=final_score,
            winner=winner,
            status=status,
        )
        if self._file_enabled:
            self._dispatch(self._write_complete, record)
        if self._database_enabled:
            self._dispatch(self._store_complete, record)
        return record

    def _event_path(self, entry: dict[str, Any]) -> str:
        day = entry['timestamp'][:10]
        fmt = self.config['targets']['file']['format']
        if self.config['targets']['file'].get('separateFiles'):
            filename = f"game_{entry['gameId']}_{day}.{fmt}"
        else:
            filename = f"handcricket_{day}.{fmt}"
        return os.path.join(self.directory, filename)

    def _append_event(self, entry: dict[str, Any]) -> None:
        try:
            content = format_event(entry, self.config['targets']['file']['format'])
            with self._write_lock:
                with open(self._event_path(entry), 'a', encoding='utf-8') as fh:
                    fh.write(content)
        except Exception:
            self.logger.exception(f"[game-log-error] target=file game={entry.get('gameId')} type={entry.get('type')}")

    def _complete_path(self, record: dict[str, Any]) -> str:
        meta = record['metadata']
        return os.path.join(self.directory, f"{COMPLETE_PREFIX}{meta['gameId']}_{meta['startTime'][:10]}.json")

    def _write_complete(self, record: dict[str, Any]) -> None:
        try:
            with self._write_lock:
                with open(self._complete_path(record), 'w', encoding='utf-8') as fh:
                    json.dump(record, fh, indent=2)
        except Exception:
            self.logger.exception(f"[game-log-error] target=file game={record['metadata']['gameId']} stage=complete")

    def _store_complete(self, record: dict[str, Any]) -> None:
        with self._app.app_context():
            try:
                db.session.add(GameLog.from_record(record))
                db.session.commit()
            except Exception:
                db.session.rollback()
                self.logger.exception(f"[game-log-error] target=database game={record['metadata']['gameId']}")

    # ---- queries ----

    def get_game_logs(self, game_id: Optional[str] = None) -> list[dict[str, Any]]:
        """Completed session records, newest first, optionally for one game."""
        if self._database_enabled:
            with self._app.app_context():
                query = GameLog.query
                if game_id:
                    query = query.filter_by(game_id=game_id)
                return [row.to_dict() for row in query.order_by(GameLog.start_time.desc()).all()]
        if not self._file_enabled or not os.path.isdir(self.directory):
            return []
        logs = []
        for path in glob.glob(os.path.join(self.directory, f"{COMPLETE_PREFIX}*.json")):
            try:
                with open(path, encoding='utf-8') as fh:
                    record = json.load(fh)
            except (OSError, ValueError):
                self.logger.warning(f"[game-log-skip] file={os.path.basename(path)} unreadable")
                continue
            if game_id and record.get('metadata', {}).get('gameId') != game_id:
                continue
            logs.append(record)
        logs.sort(key=lambda r: r.get('metadata', {}).get('startTime') or '', reverse=True)
        return logs

    def get_game_stats(self) -> dict[str, Any]:
        return build_stats(self.get_game_logs())

    def describe(self) -> dict[str, Any]:
        return {
            'logDirectory': self.directory,
            'totalGames': len(self.get_game_logs()),
            'currentSessions': len(self.active_sessions),
        }

    # ---- retention ----

    def cleanup_old_logs(self, now: Optional[float] = None) -> list[str]:
        """Delete log files older than ``retention.maxAge`` days and trim to ``maxFiles``.

        Returns the names of the deleted files.
        """
        now = now if now is not None else time.time()
        retention = self.config['retention']
        max_age = int(retention.get('maxAge', 30)) * 24 * 60 * 60
        max_files = int(retention.get('maxFiles', 1000))
        deleted = []

        if self._file_enabled and os.path.isdir(self.directory):
            paths = [os.path.join(self.directory, name) for name in os.listdir(self.directory)]
            paths = sorted((p for p in paths if os.path.isfile(p)), key=os.path.getmtime, reverse=True)
            kept = []
            for path in paths:
                if now - os.path.getmtime(path) > max_age:
                    self._remove(path, deleted)
                else:
                    kept.append(path)
            for path in kept[max_files:]:
                self._remove(path, deleted)

        if self._database_enabled:
            cutoff = datetime.fromtimestamp(now, timezone.utc).replace(tzinfo=None) - timedelta(seconds=max_age)
            with self._app.app_context():
                removed = GameLog.query.filter(GameLog.start_time < cutoff).delete()
                db.session.commit()
            if removed:
                self.logger.info(f"[game-log-cleanup] target=database removed={removed}")
        return deleted

    def _remove(self, path: str, deleted: list[str]) -> None:
        try:
            os.remove(path)
            deleted.append(os.path.basename(path))
            self.logger.info(f"[game-log-cleanup] deleted={os.path.basename(path)}")
        except OSError:
            self.logger.exception(f"[game-log-error] stage=cleanup file={os.path.basename(path)}")
