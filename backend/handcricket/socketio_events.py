from flask import current_app, request
from flask_socketio import emit

from handcricket import socketio

NAMESPACE = '/'


class SocketIOChannel:
    """Addressed delivery over Socket.IO: one connection or one room group."""

    def __init__(self, sio, namespace=NAMESPACE):
        self._sio = sio
        self._namespace = namespace

    def send(self, handle, event, payload):
        self._sio.emit(event, payload, to=handle, namespace=self._namespace)

    def broadcast(self, group, event, payload):
        self._sio.emit(event, payload, to=group, namespace=self._namespace)

    def join(self, handle, group):
        self._sio.server.enter_room(handle, group, namespace=self._namespace)

    def leave(self, handle, group):
        self._sio.server.leave_room(handle, group, namespace=self._namespace)


def _service():
    return current_app.extensions['handcricket']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _field(data, key):
    return data.get(key) if isinstance(data, dict) else None


def handle_connect():
    current_app.logger.info(f"[connect] handle={_get_sid()}")
    emit('connected', {'id': _get_sid()})


def handle_disconnect(*args):
    current_app.logger.info(f"[disconnect] handle={_get_sid()}")
    _service().disconnect(_get_sid())


def handle_join_queue(data=None):
    # Older clients send the display name as a bare string
    name = data if isinstance(data, str) else _field(data, 'displayName') or _field(data, 'name')
    if not isinstance(name, str) or not name.strip():
        return
    _service().join_queue(_get_sid(), name.strip())


def handle_make_move(data=None):
    _service().make_move(_get_sid(), _field(data, 'number'))


def handle_toss_choice(data=None):
    _service().toss_choice(_get_sid(), _field(data, 'choice'))


def handle_batting_choice(data=None):
    _service().batting_choice(_get_sid(), _field(data, 'choice'))


def register_socketio_handlers(namespace: str = NAMESPACE) -> None:
    """Register Socket.IO event handlers.

    Events without a handler are ignored by Socket.IO, so unknown message
    types never reach the game service.
    """
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('join-queue', handle_join_queue, namespace=namespace)
    socketio.on_event('make-move', handle_make_move, namespace=namespace)
    socketio.on_event('toss-choice', handle_toss_choice, namespace=namespace)
    socketio.on_event('batting-choice', handle_batting_choice, namespace=namespace)
