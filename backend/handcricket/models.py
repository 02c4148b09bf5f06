from handcricket import db
from datetime import datetime, timezone
import json


def _utc_naive(value):
    """Parse an ISO timestamp into a naive UTC datetime for the DB column."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class GameLog(db.Model):
    """A completed (or abandoned) game session, indexed for the query API."""
    __tablename__ = 'game_log'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default='completed') # completed, abandoned
    winner = db.Column(db.String(64), nullable=True)
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=True)
    duration = db.Column(db.Integer, default=0) # milliseconds
    total_moves = db.Column(db.Integer, default=0)
    # Full session record (metadata, events, summary) as JSON
    record = db.Column(db.Text, nullable=False)

    @classmethod
    def from_record(cls, record):
        meta = record['metadata']
        return cls(
            game_id=meta['gameId'],
            status=meta.get('status') or 'completed',
            winner=meta.get('winner'),
            start_time=_utc_naive(meta['startTime']),
            end_time=_utc_naive(meta['endTime']) if meta.get('endTime') else None,
            duration=meta.get('duration') or 0,
            total_moves=meta.get('totalMoves') or 0,
            record=json.dumps(record),
        )

    def to_dict(self):
        return json.loads(self.record)
