import os
import sys
import logging
from collections import defaultdict

import pytest

# Ensure the backend root (containing the `handcricket` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from handcricket import create_app, db, socketio
from handcricket.services.gamelog import GameLogger
from handcricket.services.games import HandCricketService


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = '*'
    GAME_LOG_ENABLED = True
    GAME_LOG_FORMAT = 'json'
    GAME_LOG_SEPARATE_FILES = True
    GAME_LOG_CONSOLE = False
    GAME_LOG_CONSOLE_LEVEL = 'info'
    GAME_LOG_DATABASE = True
    LOG_RETENTION_MAX_FILES = 1000
    LOG_RETENTION_MAX_AGE_DAYS = 30


class FakeChannel:
    """In-memory stand-in for the Socket.IO channel.

    Each delivery is stored with the set of handles it reached at send time.
    """

    def __init__(self):
        self.groups = defaultdict(set)
        self.deliveries = []

    def send(self, handle, event, payload):
        self.deliveries.append((frozenset([handle]), event, payload))

    def broadcast(self, group, event, payload):
        self.deliveries.append((frozenset(self.groups[group]), event, payload))

    def join(self, handle, group):
        self.groups[group].add(handle)

    def leave(self, handle, group):
        self.groups[group].discard(handle)

    def inbox(self, handle, event=None):
        return [
            (name, payload) for recipients, name, payload in self.deliveries
            if handle in recipients and (event is None or name == event)
        ]

    def payloads(self, handle, event):
        return [payload for _, payload in self.inbox(handle, event)]

    def clear(self):
        self.deliveries.clear()


@pytest.fixture()
def channel():
    return FakeChannel()


@pytest.fixture()
def game_logger(tmp_path):
    return GameLogger(
        {'targets': {'file': {'directory': str(tmp_path / 'games')}, 'console': {'enabled': False}}},
        logger=logging.getLogger('handcricket.tests'),
    )


@pytest.fixture()
def service(channel, game_logger):
    svc = HandCricketService(channel, observers=[game_logger], logger=logging.getLogger('handcricket.tests'))
    yield svc
    svc.close()


@pytest.fixture()
def flask_app(tmp_path):
    config = type('RunConfig', (TestConfig,), {'GAME_LOG_DIR': str(tmp_path / 'games')})
    application = create_app(config)
    with application.app_context():
        yield application
        application.extensions['handcricket'].close()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def connect(flask_app):
    """Factory for Socket.IO test clients; all are disconnected on teardown."""
    clients = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
