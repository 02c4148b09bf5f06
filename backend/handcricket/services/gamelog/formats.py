import csv
import io
import json

FORMATS = ('json', 'csv', 'txt')


def format_event(entry, fmt='json'):
    """Render one event record as a line (or block) for the event log file."""
    if fmt == 'json':
        return json.dumps(entry, indent=2) + '\n'
    if fmt == 'csv':
        buf = io.StringIO()
        csv.writer(buf, lineterminator='\n').writerow([
            entry['timestamp'],
            entry['gameId'],
            entry['type'],
            entry.get('playerId') or '',
            entry.get('playerName') or '',
            json.dumps(entry.get('data') or {}),
        ])
        return buf.getvalue()
    if fmt == 'txt':
        who = entry.get('playerName') or entry.get('playerId') or '-'
        return f"[{entry['timestamp']}] {entry['gameId']} - {entry['type']}: {who} - {json.dumps(entry.get('data') or {})}\n"
    raise ValueError(f"unsupported log format: {fmt}")


def describe_event(entry):
    data = entry.get('data') or {}
    who = entry.get('playerName') or entry.get('playerId')
    kind = entry.get('type')
    if kind == 'game_start':
        return f"Game started with players: {', '.join(p['name'] for p in data.get('players', []))}"
    if kind == 'toss':
        return f"{who} won the toss and chose {data.get('choice')}"
    if kind == 'batting_choice':
        return f"{who} chose to {data.get('choice')}"
    if kind == 'move':
        return f"{who} played {data.get('number')} as {data.get('role')}"
    if kind == 'out':
        return f"{who} got out! {data.get('batsmanMove')} vs {data.get('bowlerMove')}"
    if kind == 'runs':
        return f"{data.get('runs')} run(s) scored by {who}"
    if kind == 'innings_change':
        return f"Innings changed - roles switched, target {data.get('targetScore')}"
    if kind == 'game_over':
        return f"Winner decided: {data.get('winner')}"
    if kind == 'abandoned':
        return f"{who} disconnected, game abandoned"
    if kind == 'game_end':
        return f"Game ended. Winner: {data.get('winner')}. Duration: {round((data.get('duration') or 0) / 1000)}s"
    return json.dumps(data)
