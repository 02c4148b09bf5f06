"""Builders for persisted session records and aggregate statistics.

A session record has the shape::

    {
        "metadata": {gameId, startTime, endTime, duration, totalMoves,
                     players, winner, finalScore, status, version},
        "events": [{...event, relativeTimestamp}],
        "summary": {gameStats, playerStats, timeline},
    }

Durations and relative timestamps are in milliseconds.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from .formats import describe_event

RECORD_VERSION = '1.0'
RECENT_GAMES = 10


def _millis(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() * 1000)


def build_complete_record(*, game_id: str, start_time: datetime, end_time: datetime,
                          players: list[dict[str, Any]], events: list[dict[str, Any]],
                          total_moves: int, final_score: dict[str, Any],
                          winner: Optional[str], status: str) -> dict[str, Any]:
    duration = _millis(start_time, end_time)
    timed = [
        {**event, 'relativeTimestamp': _millis(start_time, datetime.fromisoformat(event['timestamp']))}
        for event in events
    ]
    metadata = {
        'version': RECORD_VERSION,
        'gameId': game_id,
        'startTime': start_time.isoformat(),
        'endTime': end_time.isoformat(),
        'duration': duration,
        'totalMoves': total_moves,
        'players': players,
        'winner': winner,
        'finalScore': final_score,
        'status': status,
    }
    return {'metadata': metadata, 'events': timed, 'summary': build_summary(metadata, timed)}


def build_summary(metadata: dict[str, Any], events: list[dict[str, Any]]) -> dict[str, Any]:
    duration = metadata.get('duration') or 0
    final_score = metadata.get('finalScore') or {}
    total_moves = metadata.get('totalMoves') or 0

    player_stats = {}
    for player in metadata.get('players') or []:
        score = final_score.get(player['id']) or {}
        player_stats[player['id']] = {
            'name': player['name'],
            'totalEvents': sum(1 for e in events if e.get('playerId') == player['id']),
            'finalRuns': score.get('runs', 0),
            'finalOuts': score.get('outs', 0),
            'isWinner': metadata.get('winner') == player['id'],
        }

    return {
        'gameStats': {
            'totalEvents': len(events),
            'gameLength': duration,
            'averageTimePerMove': duration / max(total_moves, 1) if duration else 0,
            'outs': sum(1 for e in events if e.get('type') == 'out'),
            'totalRuns': sum((score or {}).get('runs', 0) for score in final_score.values()),
        },
        'playerStats': player_stats,
        'timeline': [
            {
                'timestamp': e['timestamp'],
                'relativeTime': e.get('relativeTimestamp', 0),
                'type': e['type'],
                'description': describe_event(e),
            }
            for e in events
        ],
    }


def build_stats(logs: list[dict[str, Any]]) -> dict[str, Any]:
    """Aggregate statistics over session records ordered newest first."""
    total_duration = sum((log.get('metadata') or {}).get('duration') or 0 for log in logs)
    stats = {
        'totalGames': len(logs),
        'totalDuration': total_duration,
        'averageGameDuration': total_duration / len(logs) if logs else 0,
        'totalMoves': sum((log.get('metadata') or {}).get('totalMoves') or 0 for log in logs),
        'playerStats': {},
        'recentGames': logs[:RECENT_GAMES],
    }
    for log in logs:
        metadata = log.get('metadata') or {}
        final_score = metadata.get('finalScore') or {}
        for player in metadata.get('players') or []:
            entry = stats['playerStats'].setdefault(player['name'], {
                'gamesPlayed': 0,
                'gamesWon': 0,
                'totalRuns': 0,
                'totalOuts': 0,
            })
            entry['gamesPlayed'] += 1
            if metadata.get('winner') == player['id']:
                entry['gamesWon'] += 1
            score = final_score.get(player['id'])
            if score:
                entry['totalRuns'] += score.get('runs', 0)
                entry['totalOuts'] += score.get('outs', 0)
    return stats
