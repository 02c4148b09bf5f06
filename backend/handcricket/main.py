from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the hand cricket server!'})

@main.route('/health')
def health():
    service = current_app.extensions['handcricket']
    return jsonify({
        'status': 'healthy',
        'waiting': len(service.queue),
        'liveRooms': len(service.rooms),
    })
