from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

logs = Blueprint('logs', __name__)


def _game_logger():
    return current_app.extensions['game_logger']


@logs.errorhandler(Exception)
def handle_unexpected_error(exc):
    if isinstance(exc, HTTPException):
        return exc
    current_app.logger.exception(f"[api-error] path={request.path}")
    return jsonify({'success': False, 'error': str(exc) or type(exc).__name__}), 500


@logs.route('/logs', methods=['GET'])
def list_logs():
    game_id = request.args.get('gameId')
    data = _game_logger().get_game_logs(game_id)
    return jsonify({'success': True, 'data': data, 'count': len(data)})


@logs.route('/stats', methods=['GET'])
def game_stats():
    return jsonify({
        'success': True,
        'data': _game_logger().get_game_stats(),
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })


@logs.route('/game-logs', methods=['GET'])
def game_log():
    game_id = request.args.get('gameId')
    if not game_id:
        return jsonify({'success': False, 'error': 'gameId parameter required'}), 400
    records = _game_logger().get_game_logs(game_id)
    if not records:
        return jsonify({'success': False, 'error': 'Game not found'}), 404
    # Most recent record for the id
    return jsonify({'success': True, 'data': records[0], 'gameId': game_id})


@logs.route('/config', methods=['GET', 'POST'])
def logging_config():
    game_logger = _game_logger()
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'config': game_logger.config,
            'description': game_logger.describe(),
        })

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'success': False, 'error': 'Invalid JSON'}), 400
    try:
        config = game_logger.update_config(data)
    except ValueError as exc:
        return jsonify({'success': False, 'error': str(exc)}), 400
    return jsonify({'success': True, 'message': 'Configuration updated', 'config': config})
